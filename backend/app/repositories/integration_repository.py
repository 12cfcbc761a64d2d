"""
集成存储（SQLAlchemy实现）
"""
import logging
from datetime import datetime
from typing import List, Optional
import uuid
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import ConflictError, NotFoundError
from app.integrations.base import ProviderName, IntegrationStatus, OAuthCredentials
from app.models.integration import Integration
from app.repositories.base import IntegrationStore
from app.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)


class IntegrationRepository(IntegrationStore):
    """
    集成存储

    每个操作使用独立会话并立即提交，保证并发同步互不干扰，
    且同步失败时记录的错误状态不会随请求回滚。
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_by_id(self, integration_id: uuid.UUID) -> Optional[Integration]:
        async with self.session_factory() as db:
            return await db.get(Integration, integration_id)

    async def find_by_user_id_and_provider(
        self, user_id: uuid.UUID, provider: ProviderName
    ) -> Optional[Integration]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Integration).where(
                    Integration.user_id == user_id,
                    Integration.provider == provider,
                )
            )
            return result.scalar_one_or_none()

    async def find_active_by_user_id(self, user_id: uuid.UUID) -> List[Integration]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Integration)
                .where(
                    Integration.user_id == user_id,
                    Integration.status == IntegrationStatus.ACTIVE,
                )
                .order_by(Integration.created_at)
            )
            return list(result.scalars().all())

    async def find_by_user_id(self, user_id: uuid.UUID) -> List[Integration]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Integration)
                .where(Integration.user_id == user_id)
                .order_by(Integration.created_at)
            )
            return list(result.scalars().all())

    async def create(
        self, user_id: uuid.UUID, provider: ProviderName, credentials: OAuthCredentials
    ) -> Integration:
        now = utc_now()
        integration = Integration(
            id=uuid.uuid4(),
            user_id=user_id,
            provider=provider,
            access_token=credentials.access_token,
            refresh_token=credentials.refresh_token,
            expires_at=credentials.expires_at,
            scope=credentials.scope,
            token_type=credentials.token_type,
            status=IntegrationStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        async with self.session_factory() as db:
            db.add(integration)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise ConflictError(
                    f"已连接{provider.value}，请先断开后再重新连接",
                    details={"provider": provider.value},
                )

        logger.info(f"创建集成: user_id={user_id}, provider={provider.value}, id={integration.id}")
        return integration

    async def _update(self, integration_id: uuid.UUID, **values) -> Integration:
        async with self.session_factory() as db:
            integration = await db.get(Integration, integration_id)
            if integration is None:
                raise NotFoundError("集成", integration_id)

            for key, value in values.items():
                setattr(integration, key, value)
            integration.updated_at = utc_now()

            await db.commit()
            return integration

    async def update_credentials(
        self, integration_id: uuid.UUID, credentials: OAuthCredentials
    ) -> Integration:
        return await self._update(
            integration_id,
            access_token=credentials.access_token,
            refresh_token=credentials.refresh_token,
            expires_at=credentials.expires_at,
            scope=credentials.scope,
            token_type=credentials.token_type,
        )

    async def update_status(
        self, integration_id: uuid.UUID, status: IntegrationStatus
    ) -> Integration:
        values = {"status": status}
        if status == IntegrationStatus.ACTIVE:
            values["sync_error_message"] = None
        return await self._update(integration_id, **values)

    async def update_last_synced(self, integration_id: uuid.UUID, synced_at: datetime) -> Integration:
        return await self._update(integration_id, last_synced_at=synced_at, sync_error_message=None)

    async def record_sync_error(self, integration_id: uuid.UUID, message: str) -> Integration:
        return await self._update(
            integration_id, status=IntegrationStatus.ERROR, sync_error_message=message
        )

    async def delete(self, integration_id: uuid.UUID) -> None:
        async with self.session_factory() as db:
            await db.execute(delete(Integration).where(Integration.id == integration_id))
            await db.commit()
        logger.info(f"删除集成: id={integration_id}")
