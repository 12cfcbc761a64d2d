"""
Redis客户端
"""
from typing import Optional
from redis.asyncio import Redis
from redis.asyncio.lock import Lock
from app.config import settings


class RedisClient:
    """Redis异步客户端封装"""

    _instance: Optional[Redis] = None

    @classmethod
    async def get_instance(cls) -> Redis:
        """获取Redis单例"""
        if cls._instance is None:
            cls._instance = Redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
            )
        return cls._instance

    @classmethod
    async def close(cls):
        """关闭Redis连接"""
        if cls._instance:
            await cls._instance.aclose()
            cls._instance = None

    @classmethod
    async def lock(cls, name: str, timeout: int) -> Lock:
        """
        创建分布式锁

        Args:
            name: 锁名称
            timeout: 锁自动过期时间（秒），防止进程崩溃后锁无法释放

        Returns:
            未获取的锁对象
        """
        redis = await cls.get_instance()
        return redis.lock(name, timeout=timeout, blocking=False)
