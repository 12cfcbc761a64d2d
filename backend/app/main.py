"""
FastAPI主应用
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.core.error_handlers import register_exception_handlers
from app.database.session import engine
from app.database.base import Base
from app.integrations.registry import ProviderRegistry
from app.utils.redis_client import RedisClient

# 配置日志
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动
    logger.info(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} 启动中...")

    # 创建数据库表（仅开发环境，生产使用Alembic）
    if settings.DEBUG:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("📊 数据库表创建完成（开发模式）")

    logger.info(f"✅ {settings.APP_NAME} 启动成功！同步锁: {settings.SYNC_LOCK_BACKEND}")
    logger.info(f"📍 API文档: http://{settings.HOST}:{settings.PORT}/docs")

    yield

    # 关闭
    logger.info(f"👋 {settings.APP_NAME} 关闭中...")

    # 关闭Provider HTTP客户端
    await ProviderRegistry.close_default()

    # 关闭Redis连接
    await RedisClient.close()

    # 关闭数据库连接
    await engine.dispose()
    logger.info("✅ 数据库连接已关闭")


# 创建FastAPI应用
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="健康数据第三方集成 - Strava / Fitbit / Lose It! 连接与同步",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS if not settings.DEBUG else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 统一错误响应
register_exception_handlers(app)


# 健康检查端点
@app.get("/")
async def root():
    """根路径 - API信息"""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """健康检查"""
    return {"status": "ok"}


# 注册路由
from app.api.v1 import integrations

app.include_router(integrations.router, prefix="/api/v1/integrations", tags=["第三方集成"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
