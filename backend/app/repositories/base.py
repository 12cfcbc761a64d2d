"""
同步引擎依赖的存储接口
"""
from abc import ABC, abstractmethod
from datetime import datetime, date
from typing import List, Optional
import uuid

from app.integrations.base import (
    ProviderName,
    IntegrationStatus,
    OAuthCredentials,
    ExternalHealthRecord,
)
from app.models.integration import Integration
from app.models.health_entry import HealthEntry


class IntegrationStore(ABC):
    """集成存储"""

    @abstractmethod
    async def find_by_id(self, integration_id: uuid.UUID) -> Optional[Integration]:
        pass

    @abstractmethod
    async def find_by_user_id_and_provider(
        self, user_id: uuid.UUID, provider: ProviderName
    ) -> Optional[Integration]:
        pass

    @abstractmethod
    async def find_active_by_user_id(self, user_id: uuid.UUID) -> List[Integration]:
        """状态为ACTIVE的集成"""
        pass

    @abstractmethod
    async def find_by_user_id(self, user_id: uuid.UUID) -> List[Integration]:
        pass

    @abstractmethod
    async def create(
        self, user_id: uuid.UUID, provider: ProviderName, credentials: OAuthCredentials
    ) -> Integration:
        """
        创建ACTIVE状态的集成

        Raises:
            ConflictError: 该用户已连接此Provider
        """
        pass

    @abstractmethod
    async def update_credentials(
        self, integration_id: uuid.UUID, credentials: OAuthCredentials
    ) -> Integration:
        pass

    @abstractmethod
    async def update_status(
        self, integration_id: uuid.UUID, status: IntegrationStatus
    ) -> Integration:
        """更新状态；恢复为ACTIVE时同时清除同步错误"""
        pass

    @abstractmethod
    async def update_last_synced(self, integration_id: uuid.UUID, synced_at: datetime) -> Integration:
        """记录同步成功时间并清除同步错误"""
        pass

    @abstractmethod
    async def record_sync_error(self, integration_id: uuid.UUID, message: str) -> Integration:
        """记录同步错误，状态置为ERROR"""
        pass

    @abstractmethod
    async def delete(self, integration_id: uuid.UUID) -> None:
        pass


class HealthRecordStore(ABC):
    """每日健康数据存储"""

    @abstractmethod
    async def find_by_user_and_date(self, user_id: uuid.UUID, day: date) -> Optional[HealthEntry]:
        pass

    @abstractmethod
    async def create(
        self, user_id: uuid.UUID, record: ExternalHealthRecord, source: str
    ) -> HealthEntry:
        pass

    @abstractmethod
    async def replace(
        self, entry_id: uuid.UUID, record: ExternalHealthRecord, source: str
    ) -> HealthEntry:
        """用外部数据整体覆盖已有记录"""
        pass
