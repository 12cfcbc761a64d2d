"""
API依赖项
"""
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
import uuid

from app.config import settings
from app.database.session import AsyncSessionLocal
from app.integrations.registry import ProviderRegistry
from app.repositories import IntegrationRepository, HealthEntryRepository
from app.services.integration_sync import IntegrationSyncService, SyncPolicy
from app.services.oauth_state import OAuthStateCodec
from app.services.sync_lock import SyncLockManager, create_sync_lock_manager

# JWT Bearer认证
security = HTTPBearer()

# 同步锁必须在进程内共享
_lock_manager: Optional[SyncLockManager] = None


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> uuid.UUID:
    """
    从JWT中解析当前用户ID（令牌由用户服务签发）

    Raises:
        HTTPException: 认证失败
    """
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
        user_id_str: str = payload.get("sub")
        if user_id_str is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="无效的认证凭证",
            )
        return uuid.UUID(user_id_str)
    except (JWTError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭证",
        )


def get_sync_lock_manager() -> SyncLockManager:
    """获取进程内共享的同步锁"""
    global _lock_manager
    if _lock_manager is None:
        _lock_manager = create_sync_lock_manager(
            settings.SYNC_LOCK_BACKEND, settings.SYNC_LOCK_TIMEOUT_SECONDS
        )
    return _lock_manager


def build_integration_service(registry: Optional[ProviderRegistry] = None) -> IntegrationSyncService:
    """按配置组装同步服务"""
    return IntegrationSyncService(
        integration_store=IntegrationRepository(AsyncSessionLocal),
        health_store=HealthEntryRepository(AsyncSessionLocal),
        registry=registry or ProviderRegistry.get_default(),
        state_codec=OAuthStateCodec(
            settings.OAUTH_STATE_SECRET, ttl_minutes=settings.OAUTH_STATE_TTL_MINUTES
        ),
        redirect_uri=settings.OAUTH_REDIRECT_URI,
        lock_manager=get_sync_lock_manager(),
        policy=SyncPolicy(
            default_days=settings.SYNC_DEFAULT_DAYS,
            refresh_leeway_minutes=settings.TOKEN_REFRESH_LEEWAY_MINUTES,
            sync_all_concurrency=settings.SYNC_ALL_CONCURRENCY,
            sync_all_timeout_seconds=settings.SYNC_ALL_TIMEOUT_SECONDS,
        ),
    )


def get_provider_registry() -> ProviderRegistry:
    return ProviderRegistry.get_default()


def get_integration_service(
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> IntegrationSyncService:
    """同步服务依赖"""
    return build_integration_service(registry)
