"""Pytest fixtures for integration sync tests."""

import os

# Settings requires these secrets; set them before anything imports app.config
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("OAUTH_STATE_SECRET", "test-oauth-state-secret")

import asyncio
import uuid
from datetime import datetime, date, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from app.core.exceptions import NotFoundError, ConflictError
from app.integrations.base import (
    HealthDataProvider,
    ProviderName,
    IntegrationStatus,
    OAuthCredentials,
    AuthorizationUrl,
    ExternalHealthRecord,
)
from app.integrations.registry import ProviderRegistry
from app.models.integration import Integration
from app.models.health_entry import HealthEntry
from app.repositories.base import IntegrationStore, HealthRecordStore
from app.services.integration_sync import IntegrationSyncService, SyncPolicy
from app.services.oauth_state import OAuthStateCodec
from app.services.sync_lock import InMemorySyncLockManager

NOW = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)
REDIRECT_URI = "https://app.example.com/integrations/callback"


class FixedClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeIntegrationStore(IntegrationStore):
    """In-memory IntegrationStore."""

    def __init__(self, clock: FixedClock):
        self.clock = clock
        self.items: Dict[uuid.UUID, Integration] = {}
        self.deleted: List[uuid.UUID] = []
        self.status_updates: List[IntegrationStatus] = []

    def add(
        self,
        user_id: uuid.UUID,
        provider: ProviderName,
        status: IntegrationStatus = IntegrationStatus.ACTIVE,
        expires_at: Optional[datetime] = None,
        refresh_token: Optional[str] = "refresh-token",
    ) -> Integration:
        integration = Integration(
            id=uuid.uuid4(),
            user_id=user_id,
            provider=provider,
            access_token="access-token",
            refresh_token=refresh_token,
            expires_at=expires_at or self.clock() + timedelta(hours=1),
            scope=None,
            token_type="Bearer",
            status=status,
            last_synced_at=None,
            sync_error_message=None,
            created_at=self.clock(),
            updated_at=self.clock(),
        )
        self.items[integration.id] = integration
        return integration

    def _get(self, integration_id: uuid.UUID) -> Integration:
        if integration_id not in self.items:
            raise NotFoundError("集成", integration_id)
        return self.items[integration_id]

    async def find_by_id(self, integration_id):
        return self.items.get(integration_id)

    async def find_by_user_id_and_provider(self, user_id, provider):
        for integration in self.items.values():
            if integration.user_id == user_id and integration.provider == provider:
                return integration
        return None

    async def find_active_by_user_id(self, user_id):
        return [
            i for i in self.items.values()
            if i.user_id == user_id and i.status == IntegrationStatus.ACTIVE
        ]

    async def find_by_user_id(self, user_id):
        return [i for i in self.items.values() if i.user_id == user_id]

    async def create(self, user_id, provider, credentials):
        if await self.find_by_user_id_and_provider(user_id, provider):
            raise ConflictError("already connected")
        integration = self.add(user_id, provider, expires_at=credentials.expires_at)
        integration.access_token = credentials.access_token
        integration.refresh_token = credentials.refresh_token
        integration.scope = credentials.scope
        return integration

    async def update_credentials(self, integration_id, credentials):
        integration = self._get(integration_id)
        integration.access_token = credentials.access_token
        integration.refresh_token = credentials.refresh_token
        integration.expires_at = credentials.expires_at
        integration.scope = credentials.scope
        return integration

    async def update_status(self, integration_id, status):
        integration = self._get(integration_id)
        integration.status = status
        if status == IntegrationStatus.ACTIVE:
            integration.sync_error_message = None
        self.status_updates.append(status)
        return integration

    async def update_last_synced(self, integration_id, synced_at):
        integration = self._get(integration_id)
        integration.last_synced_at = synced_at
        integration.sync_error_message = None
        return integration

    async def record_sync_error(self, integration_id, message):
        integration = self._get(integration_id)
        integration.status = IntegrationStatus.ERROR
        integration.sync_error_message = message
        return integration

    async def delete(self, integration_id):
        self.items.pop(integration_id, None)
        self.deleted.append(integration_id)


class FakeHealthStore(HealthRecordStore):
    """In-memory HealthRecordStore keyed by (user_id, date)."""

    def __init__(self):
        self.entries: Dict[tuple, HealthEntry] = {}
        self.fail_on: set = set()

    async def find_by_user_and_date(self, user_id, day):
        return self.entries.get((user_id, day))

    def _fill(self, entry: HealthEntry, record: ExternalHealthRecord, source: str) -> HealthEntry:
        entry.steps = record.steps
        entry.weight = record.weight
        entry.calories_burned = record.calories_burned
        entry.exercise_minutes = record.exercise_minutes
        entry.sleep_minutes = record.sleep_minutes
        entry.heart_rate = record.heart_rate
        entry.distance = record.distance
        entry.active_minutes = record.active_minutes
        entry.resting_heart_rate = record.resting_heart_rate
        entry.source = source
        return entry

    async def create(self, user_id, record, source):
        if record.date in self.fail_on:
            raise RuntimeError("database unavailable")
        entry = self._fill(HealthEntry(id=uuid.uuid4(), user_id=user_id, date=record.date), record, source)
        self.entries[(user_id, record.date)] = entry
        return entry

    async def replace(self, entry_id, record, source):
        for entry in self.entries.values():
            if entry.id == entry_id:
                return self._fill(entry, record, source)
        raise NotFoundError("健康数据", entry_id)


class FakeProvider(HealthDataProvider):
    """Scriptable provider adapter."""

    def __init__(self, name: ProviderName, clock: FixedClock):
        self._name = name
        self.clock = clock
        self.records: List[ExternalHealthRecord] = []
        self.fetch_error: Optional[Exception] = None
        self.fetch_delay: float = 0
        self.exchange_error: Optional[Exception] = None
        self.refresh_error: Optional[Exception] = None
        self.revoke_error: Optional[Exception] = None
        self.fetch_calls: List[OAuthCredentials] = []
        self.refresh_calls: List[str] = []
        self.revoke_calls: List[OAuthCredentials] = []
        self.closed = False

    @property
    def name(self) -> ProviderName:
        return self._name

    def get_authorization_url(self, state: str) -> AuthorizationUrl:
        return AuthorizationUrl(
            auth_url=f"https://{self._name.value.lower()}.example.com/authorize?state={state}",
            state=state,
            expires_at=self.clock() + timedelta(minutes=10),
        )

    async def exchange_code_for_token(self, code: str) -> OAuthCredentials:
        if self.exchange_error:
            raise self.exchange_error
        return OAuthCredentials(
            access_token=f"access-{code}",
            refresh_token=f"refresh-{code}",
            expires_at=self.clock() + timedelta(hours=6),
        )

    async def fetch_health_data(self, credentials, start_date, end_date):
        self.fetch_calls.append(credentials)
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fetch_error:
            raise self.fetch_error
        return list(self.records)

    async def refresh_access_token(self, refresh_token: str) -> OAuthCredentials:
        self.refresh_calls.append(refresh_token)
        if self.refresh_error:
            raise self.refresh_error
        return OAuthCredentials(
            access_token="refreshed-access",
            refresh_token="refreshed-refresh",
            expires_at=self.clock() + timedelta(hours=6),
        )

    async def revoke_access(self, credentials: OAuthCredentials) -> None:
        self.revoke_calls.append(credentials)
        if self.revoke_error:
            raise self.revoke_error

    async def close(self):
        self.closed = True


def make_record(day: date, provider: ProviderName = ProviderName.FITBIT, **values) -> ExternalHealthRecord:
    return ExternalHealthRecord(date=day, provider=provider, **values)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def integration_store(clock) -> FakeIntegrationStore:
    return FakeIntegrationStore(clock)


@pytest.fixture
def health_store() -> FakeHealthStore:
    return FakeHealthStore()


@pytest.fixture
def providers(clock) -> Dict[ProviderName, FakeProvider]:
    return {name: FakeProvider(name, clock) for name in ProviderName}


@pytest.fixture
def registry(providers) -> ProviderRegistry:
    return ProviderRegistry(providers)


@pytest.fixture
def state_codec(clock) -> OAuthStateCodec:
    return OAuthStateCodec("test-state-secret", ttl_minutes=10, clock=clock)


@pytest.fixture
def service(integration_store, health_store, registry, state_codec, clock) -> IntegrationSyncService:
    return IntegrationSyncService(
        integration_store=integration_store,
        health_store=health_store,
        registry=registry,
        state_codec=state_codec,
        redirect_uri=REDIRECT_URI,
        lock_manager=InMemorySyncLockManager(),
        policy=SyncPolicy(),
        clock=clock,
    )


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()
