"""
第三方集成同步服务

负责OAuth连接生命周期（发起、完成、断开）以及健康数据同步：
刷新令牌 -> 拉取 -> 校验 -> 去重 -> 保存。
"""
import asyncio
import logging
import time
from datetime import timedelta
from typing import List, Optional, Union
import uuid
from pydantic import BaseModel

from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    IntegrationError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    OAuthStateError,
    UnauthorizedError,
)
from app.integrations.base import (
    HealthDataProvider,
    IntegrationStatus,
    OAuthCredentials,
    ProviderName,
    validate_external_record,
)
from app.integrations.registry import ProviderRegistry
from app.models.integration import Integration
from app.repositories.base import IntegrationStore, HealthRecordStore
from app.schemas.integration import (
    ConnectionCompleted,
    ConnectionInitiated,
    IntegrationSummary,
    SyncOptions,
    SyncResult,
)
from app.services.oauth_state import OAuthStateCodec
from app.services.sync_lock import SyncLockManager, InMemorySyncLockManager
from app.utils.datetime_helper import Clock, ensure_utc, utc_now

# sync_all_integrations未指定timeout时使用策略中的超时配置
POLICY_TIMEOUT = object()


class SyncPolicy(BaseModel):
    """同步策略参数"""

    default_days: int = 7
    refresh_leeway_minutes: int = 5
    sync_all_concurrency: int = 3
    sync_all_timeout_seconds: Optional[float] = None


class IntegrationSyncService:
    """第三方集成同步服务"""

    def __init__(
        self,
        integration_store: IntegrationStore,
        health_store: HealthRecordStore,
        registry: ProviderRegistry,
        state_codec: OAuthStateCodec,
        redirect_uri: str,
        lock_manager: Optional[SyncLockManager] = None,
        policy: Optional[SyncPolicy] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.integration_store = integration_store
        self.health_store = health_store
        self.registry = registry
        self.state_codec = state_codec
        self.redirect_uri = redirect_uri
        self.lock_manager = lock_manager or InMemorySyncLockManager()
        self.policy = policy or SyncPolicy()
        self.clock = clock or utc_now
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # 连接生命周期
    # ------------------------------------------------------------------

    async def initiate_connection(
        self, user_id: uuid.UUID, provider: ProviderName
    ) -> ConnectionInitiated:
        """
        发起连接，返回第三方授权URL

        Args:
            user_id: 用户ID
            provider: 数据源

        Returns:
            授权URL、state及其过期时间

        Raises:
            ConflictError: 该Provider已处于连接状态
        """
        existing = await self.integration_store.find_by_user_id_and_provider(user_id, provider)
        if existing and existing.status == IntegrationStatus.ACTIVE:
            raise ConflictError(
                f"已连接{provider.value}，请先断开后再重新连接",
                details={"provider": provider.value, "integration_id": str(existing.id)},
            )

        adapter = self.registry.get_provider(provider)
        state = self.state_codec.encode(user_id, provider, self.redirect_uri)
        authorization = adapter.get_authorization_url(state)

        self.logger.info(f"发起连接: user_id={user_id}, provider={provider.value}")

        return ConnectionInitiated(
            auth_url=authorization.auth_url,
            state=authorization.state,
            expires_at=authorization.expires_at,
        )

    async def complete_connection(self, code: str, state: str) -> ConnectionCompleted:
        """
        OAuth回调：校验state，用授权码换取令牌并保存

        Raises:
            InvalidRequestError: state无效/过期，或授权码换取失败
        """
        try:
            oauth_state = self.state_codec.decode(state)
        except OAuthStateError as e:
            self.logger.warning(f"OAuth回调state无效: {e.message}")
            raise InvalidRequestError(
                f"无效的OAuth state: {e.message}", details={"reason": e.code}
            )

        provider = oauth_state.provider
        adapter = self.registry.get_provider(provider)

        try:
            credentials = await adapter.exchange_code_for_token(code)
        except IntegrationError as e:
            self.logger.error(f"授权码换取令牌失败: provider={provider.value} - {e.message}")
            raise InvalidRequestError(
                f"连接{provider.value}失败: {e.message}",
                details={"provider": provider.value, "reason": e.code},
            )

        existing = await self.integration_store.find_by_user_id_and_provider(
            oauth_state.user_id, provider
        )
        if existing:
            await self.integration_store.update_credentials(existing.id, credentials)
            integration = await self.integration_store.update_status(
                existing.id, IntegrationStatus.ACTIVE
            )
            self.logger.info(f"重新连接: user_id={oauth_state.user_id}, provider={provider.value}")
        else:
            integration = await self.integration_store.create(
                oauth_state.user_id, provider, credentials
            )
            self.logger.info(f"新建连接: user_id={oauth_state.user_id}, provider={provider.value}")

        return ConnectionCompleted(
            id=integration.id, provider=integration.provider, status=integration.status
        )

    async def disconnect_integration(
        self, integration_id: uuid.UUID, requesting_user_id: uuid.UUID
    ) -> None:
        """
        断开连接：尽力撤销第三方授权，然后删除本地记录

        Raises:
            NotFoundError: 集成不存在
            AuthorizationError: 不是集成的所有者
        """
        integration = await self.get_owned_integration(integration_id, requesting_user_id)

        adapter = self.registry.get_provider(integration.provider)
        try:
            await adapter.revoke_access(self._credentials_of(integration))
        except Exception as e:
            self.logger.warning(
                f"撤销第三方授权失败，继续删除本地记录: "
                f"integration_id={integration_id}, provider={integration.provider.value} - {str(e)}"
            )

        await self.integration_store.delete(integration_id)
        self.logger.info(f"已断开连接: integration_id={integration_id}")

    # ------------------------------------------------------------------
    # 数据同步
    # ------------------------------------------------------------------

    async def sync_health_data(
        self, integration_id: uuid.UUID, options: Optional[SyncOptions] = None
    ) -> SyncResult:
        """
        同步单个集成的健康数据

        同一集成同一时间只允许一个同步任务。

        Args:
            integration_id: 集成ID
            options: 时间范围与是否强制覆盖

        Returns:
            同步结果

        Raises:
            NotFoundError: 集成不存在
            InvalidStateError: 集成状态不是ACTIVE/ERROR
            SyncInProgressError: 该集成正在同步
            UnauthorizedError: 凭证失效需要重新连接
            ProviderUnavailableError: 第三方服务不可用
        """
        async with self.lock_manager.acquire(integration_id):
            return await self._sync(integration_id, options or SyncOptions())

    async def _sync(self, integration_id: uuid.UUID, options: SyncOptions) -> SyncResult:
        started = time.perf_counter()

        integration = await self.integration_store.find_by_id(integration_id)
        if integration is None:
            raise NotFoundError("集成", integration_id)

        if integration.status not in (IntegrationStatus.ACTIVE, IntegrationStatus.ERROR):
            raise InvalidStateError(
                f"集成未激活（{integration.status.value}），请重新连接",
                details={"integration_id": str(integration_id), "status": integration.status.value},
            )

        provider = integration.provider
        end_date = ensure_utc(options.end_date) if options.end_date else self.clock()
        if options.start_date:
            start_date = ensure_utc(options.start_date)
        else:
            start_date = end_date - timedelta(days=self.policy.default_days)

        if start_date > end_date:
            raise InvalidRequestError(
                "开始时间不能晚于结束时间",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )

        self.logger.info(
            f"开始同步: integration_id={integration_id}, provider={provider.value}, "
            f"range={start_date.isoformat()} to {end_date.isoformat()}, force={options.force_resync}"
        )

        adapter = self.registry.get_provider(provider)
        credentials = self._credentials_of(integration)
        needs_refresh = self._needs_refresh(credentials)

        if needs_refresh and not credentials.refresh_token:
            message = f"{provider.value}访问令牌已过期且无刷新令牌，请重新连接"
            # 先记录错误信息，再标记为EXPIRED（非ACTIVE状态不会清空错误信息）
            await self.integration_store.record_sync_error(integration_id, message)
            await self.integration_store.update_status(integration_id, IntegrationStatus.EXPIRED)
            raise UnauthorizedError(message, details={"integration_id": str(integration_id)})

        try:
            if needs_refresh:
                credentials = await self._refresh_credentials(integration_id, adapter, credentials)
            records = await adapter.fetch_health_data(credentials, start_date, end_date)
        except Exception as e:
            message = e.message if isinstance(e, IntegrationError) else str(e)
            self.logger.error(f"同步失败: integration_id={integration_id} - {message}")
            try:
                await self.integration_store.record_sync_error(integration_id, message)
            except Exception as record_error:
                self.logger.error(f"记录同步错误失败: integration_id={integration_id} - {str(record_error)}")
            raise

        synced, skipped, errors = 0, 0, 0
        error_messages: List[str] = []

        for record in records:
            validation_errors = validate_external_record(record)
            if validation_errors:
                errors += 1
                error_messages.extend(validation_errors)
                continue

            try:
                existing = await self.health_store.find_by_user_and_date(
                    integration.user_id, record.date
                )
                if existing and not options.force_resync:
                    self.logger.debug(f"当天数据已存在，跳过: date={record.date}")
                    skipped += 1
                    continue

                if existing:
                    await self.health_store.replace(existing.id, record, provider.value)
                else:
                    await self.health_store.create(integration.user_id, record, provider.value)
                synced += 1
            except Exception as e:
                errors += 1
                error_messages.append(f"{record.date.isoformat()} 保存失败: {str(e)}")
                self.logger.error(f"保存健康数据失败: date={record.date} - {str(e)}")

        await self.integration_store.update_last_synced(integration_id, self.clock())
        if integration.status == IntegrationStatus.ERROR:
            await self.integration_store.update_status(integration_id, IntegrationStatus.ACTIVE)

        duration_ms = int((time.perf_counter() - started) * 1000)
        self.logger.info(
            f"同步完成: integration_id={integration_id}, provider={provider.value}, "
            f"synced={synced}, skipped={skipped}, errors={errors}, duration={duration_ms}ms"
        )

        return SyncResult(
            integration_id=integration_id,
            provider=provider,
            start_date=start_date,
            end_date=end_date,
            records_synced=synced,
            records_skipped=skipped,
            errors=errors,
            duration_ms=duration_ms,
            error_messages=error_messages or None,
        )

    async def sync_all_integrations(
        self, user_id: uuid.UUID, timeout: Union[float, None, object] = POLICY_TIMEOUT
    ) -> List[SyncResult]:
        """
        并发同步用户所有ACTIVE集成

        单个集成失败只记录日志，不影响其他集成。

        Args:
            user_id: 用户ID
            timeout: 整体超时时间（秒），超时仍未完成的同步被取消并忽略；
                不传时使用策略中的配置，显式传None表示不限时

        Returns:
            成功完成的同步结果
        """
        integrations = await self.integration_store.find_active_by_user_id(user_id)
        if not integrations:
            return []

        if timeout is POLICY_TIMEOUT:
            timeout = self.policy.sync_all_timeout_seconds

        semaphore = asyncio.Semaphore(self.policy.sync_all_concurrency)

        async def run(integration: Integration) -> SyncResult:
            async with semaphore:
                return await self.sync_health_data(integration.id)

        tasks = [asyncio.create_task(run(integration)) for integration in integrations]
        done, pending = await asyncio.wait(tasks, timeout=timeout)

        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self.logger.warning(f"批量同步超时，已取消{len(pending)}个同步: user_id={user_id}")

        results = []
        for integration, task in zip(integrations, tasks):
            if task not in done:
                continue
            error = task.exception()
            if error is not None:
                self.logger.error(
                    f"批量同步中单个集成失败: integration_id={integration.id}, "
                    f"provider={integration.provider.value} - {str(error)}"
                )
                continue
            results.append(task.result())

        self.logger.info(
            f"批量同步完成: user_id={user_id}, 成功{len(results)}/{len(integrations)}"
        )
        return results

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------

    async def get_user_integrations(self, user_id: uuid.UUID) -> List[IntegrationSummary]:
        """用户的全部集成（不含令牌）"""
        integrations = await self.integration_store.find_by_user_id(user_id)
        return [IntegrationSummary.model_validate(integration) for integration in integrations]

    async def get_owned_integration(
        self, integration_id: uuid.UUID, user_id: uuid.UUID
    ) -> Integration:
        """
        获取属于该用户的集成

        Raises:
            NotFoundError: 集成不存在
            AuthorizationError: 不是集成的所有者
        """
        integration = await self.integration_store.find_by_id(integration_id)
        if integration is None:
            raise NotFoundError("集成", integration_id)
        if integration.user_id != user_id:
            raise AuthorizationError()
        return integration

    async def get_active_integrations(self, user_id: uuid.UUID) -> List[Integration]:
        return await self.integration_store.find_active_by_user_id(user_id)

    # ------------------------------------------------------------------
    # 令牌
    # ------------------------------------------------------------------

    def _needs_refresh(self, credentials: OAuthCredentials) -> bool:
        """已过期或即将在leeway内过期"""
        leeway = timedelta(minutes=self.policy.refresh_leeway_minutes)
        return self.clock() + leeway >= credentials.expires_at

    async def _refresh_credentials(
        self,
        integration_id: uuid.UUID,
        adapter: HealthDataProvider,
        credentials: OAuthCredentials,
    ) -> OAuthCredentials:
        self.logger.info(f"访问令牌即将过期，自动刷新: integration_id={integration_id}")
        refreshed = await adapter.refresh_access_token(credentials.refresh_token)
        await self.integration_store.update_credentials(integration_id, refreshed)
        return refreshed

    @staticmethod
    def _credentials_of(integration: Integration) -> OAuthCredentials:
        return OAuthCredentials(
            access_token=integration.access_token,
            refresh_token=integration.refresh_token,
            expires_at=ensure_utc(integration.expires_at),
            scope=integration.scope,
            token_type=integration.token_type or "Bearer",
        )
