"""
第三方集成API
"""
import logging
from typing import List, Optional
import uuid
from fastapi import APIRouter, Depends, status

from app.api.dependencies import (
    get_current_user_id,
    get_integration_service,
    get_provider_registry,
)
from app.integrations.base import ProviderName
from app.integrations.registry import ProviderRegistry
from app.schemas.integration import (
    CallbackRequest,
    ConnectionCompleted,
    ConnectionInitiated,
    ConnectRequest,
    DisconnectResponse,
    IntegrationSummary,
    ProviderInfo,
    SyncOptions,
    SyncResult,
)
from app.services.integration_sync import IntegrationSyncService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/connect", response_model=ConnectionInitiated)
async def connect_provider(
    request: ConnectRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: IntegrationSyncService = Depends(get_integration_service),
):
    """
    发起连接

    返回第三方授权页URL，前端跳转后由第三方回调到OAUTH_REDIRECT_URI
    """
    return await service.initiate_connection(user_id, request.provider)


@router.post("/callback", response_model=ConnectionCompleted, status_code=status.HTTP_201_CREATED)
async def oauth_callback(
    request: CallbackRequest,
    service: IntegrationSyncService = Depends(get_integration_service),
):
    """
    OAuth回调

    用户身份由state确定，不依赖登录态
    """
    return await service.complete_connection(request.code, request.state)


@router.get("/", response_model=List[IntegrationSummary])
async def list_integrations(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: IntegrationSyncService = Depends(get_integration_service),
):
    """当前用户的全部集成"""
    return await service.get_user_integrations(user_id)


@router.get("/providers/info", response_model=List[ProviderInfo])
async def list_providers(registry: ProviderRegistry = Depends(get_provider_registry)):
    """支持的数据源"""
    return [registry.get_provider_info(name) for name in ProviderName]


@router.post("/sync-all", response_model=List[SyncResult])
async def sync_all(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: IntegrationSyncService = Depends(get_integration_service),
):
    """同步当前用户的全部ACTIVE集成，单个失败不影响其他"""
    return await service.sync_all_integrations(user_id)


@router.post("/{integration_id}/sync", response_model=SyncResult)
async def sync_integration(
    integration_id: uuid.UUID,
    options: Optional[SyncOptions] = None,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: IntegrationSyncService = Depends(get_integration_service),
):
    """同步单个集成"""
    await service.get_owned_integration(integration_id, user_id)
    return await service.sync_health_data(integration_id, options or SyncOptions())


@router.delete("/{integration_id}", response_model=DisconnectResponse)
async def disconnect_integration(
    integration_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: IntegrationSyncService = Depends(get_integration_service),
):
    """断开连接"""
    await service.disconnect_integration(integration_id, user_id)
    return DisconnectResponse(success=True, message="已断开连接")

