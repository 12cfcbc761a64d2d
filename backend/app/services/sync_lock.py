"""
集成同步锁：同一集成同一时间只允许一个同步任务

- memory: 进程内asyncio.Lock，适用于单进程部署
- redis: Redis分布式锁（带过期时间），适用于多worker部署
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Awaitable, Callable, Dict, Optional

from redis.exceptions import LockError

from app.core.exceptions import SyncInProgressError
from app.utils.redis_client import RedisClient

logger = logging.getLogger(__name__)


class SyncLockManager(ABC):
    """同步锁接口"""

    @abstractmethod
    def acquire(self, integration_id: Any) -> AsyncContextManager[None]:
        """
        获取集成的同步锁（不等待）

        Raises:
            SyncInProgressError: 该集成已有同步在进行
        """
        pass


class InMemorySyncLockManager(SyncLockManager):
    """进程内同步锁"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def acquire(self, integration_id: Any) -> AsyncIterator[None]:
        key = str(integration_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked():
            raise SyncInProgressError(integration_id)

        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
            # 无人持有时移除，避免锁表无限增长
            if not lock.locked() and self._locks.get(key) is lock:
                del self._locks[key]

    def is_locked(self, integration_id: Any) -> bool:
        lock = self._locks.get(str(integration_id))
        return lock is not None and lock.locked()


class RedisSyncLockManager(SyncLockManager):
    """基于Redis的分布式同步锁"""

    key_prefix = "sync-lock:"

    def __init__(
        self,
        timeout_seconds: int = 300,
        lock_factory: Optional[Callable[[str, int], Awaitable[Any]]] = None,
    ):
        """
        Args:
            timeout_seconds: 锁自动过期时间
            lock_factory: (name, timeout) -> 锁对象，默认使用RedisClient.lock
        """
        self.timeout_seconds = timeout_seconds
        self.lock_factory = lock_factory or RedisClient.lock

    @asynccontextmanager
    async def acquire(self, integration_id: Any) -> AsyncIterator[None]:
        lock = await self.lock_factory(f"{self.key_prefix}{integration_id}", self.timeout_seconds)
        if not await lock.acquire():
            raise SyncInProgressError(integration_id)

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # 同步耗时超过锁过期时间，锁已被自动释放
                logger.warning(f"释放同步锁失败: integration_id={integration_id} - {str(e)}")


def create_sync_lock_manager(backend: str, timeout_seconds: int = 300) -> SyncLockManager:
    """
    按配置创建同步锁

    Args:
        backend: memory | redis
        timeout_seconds: Redis锁过期时间

    Raises:
        ValueError: 未知的锁后端
    """
    if backend == "memory":
        return InMemorySyncLockManager()
    if backend == "redis":
        return RedisSyncLockManager(timeout_seconds=timeout_seconds)
    raise ValueError(f"未知的同步锁后端: {backend}. 可用: memory, redis")
