"""Tests for the SQLAlchemy stores against an in-memory SQLite database."""

import uuid
from datetime import date, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.exceptions import ConflictError, NotFoundError
from app.database.base import Base
from app.integrations.base import IntegrationStatus, OAuthCredentials, ProviderName
from app.repositories import HealthEntryRepository, IntegrationRepository
from app.utils.datetime_helper import ensure_utc

from conftest import NOW, make_record


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def credentials() -> OAuthCredentials:
    return OAuthCredentials(
        access_token="access",
        refresh_token="refresh",
        expires_at=NOW + timedelta(hours=6),
        scope="activity",
    )


class TestIntegrationRepository:

    @pytest.mark.asyncio
    async def test_create_and_find(self, session_factory, credentials, user_id):
        repo = IntegrationRepository(session_factory)

        created = await repo.create(user_id, ProviderName.STRAVA, credentials)
        found = await repo.find_by_id(created.id)

        assert found.user_id == user_id
        assert found.provider == ProviderName.STRAVA
        assert found.status == IntegrationStatus.ACTIVE
        assert found.access_token == "access"
        assert ensure_utc(found.expires_at) == NOW + timedelta(hours=6)
        assert await repo.find_by_user_id_and_provider(user_id, ProviderName.STRAVA) is not None
        assert await repo.find_by_user_id_and_provider(user_id, ProviderName.FITBIT) is None

    @pytest.mark.asyncio
    async def test_one_integration_per_user_and_provider(self, session_factory, credentials, user_id):
        repo = IntegrationRepository(session_factory)
        await repo.create(user_id, ProviderName.FITBIT, credentials)

        with pytest.raises(ConflictError):
            await repo.create(user_id, ProviderName.FITBIT, credentials)

        await repo.create(uuid.uuid4(), ProviderName.FITBIT, credentials)

    @pytest.mark.asyncio
    async def test_status_and_error_bookkeeping(self, session_factory, credentials, user_id):
        repo = IntegrationRepository(session_factory)
        integration = await repo.create(user_id, ProviderName.LOSE_IT, credentials)

        await repo.record_sync_error(integration.id, "Lose It!服务暂时不可用")
        failed = await repo.find_by_id(integration.id)
        assert failed.status == IntegrationStatus.ERROR
        assert failed.sync_error_message == "Lose It!服务暂时不可用"
        assert await repo.find_active_by_user_id(user_id) == []

        await repo.update_last_synced(integration.id, NOW)
        await repo.update_status(integration.id, IntegrationStatus.ACTIVE)
        recovered = await repo.find_by_id(integration.id)
        assert recovered.status == IntegrationStatus.ACTIVE
        assert recovered.sync_error_message is None
        assert ensure_utc(recovered.last_synced_at) == NOW
        assert [i.id for i in await repo.find_active_by_user_id(user_id)] == [integration.id]

    @pytest.mark.asyncio
    async def test_update_credentials(self, session_factory, credentials, user_id):
        repo = IntegrationRepository(session_factory)
        integration = await repo.create(user_id, ProviderName.STRAVA, credentials)

        await repo.update_credentials(
            integration.id,
            OAuthCredentials(access_token="new", refresh_token=None, expires_at=NOW + timedelta(days=1)),
        )

        updated = await repo.find_by_id(integration.id)
        assert updated.access_token == "new"
        assert updated.refresh_token is None

    @pytest.mark.asyncio
    async def test_update_unknown_integration(self, session_factory):
        with pytest.raises(NotFoundError):
            await IntegrationRepository(session_factory).update_status(uuid.uuid4(), IntegrationStatus.REVOKED)

    @pytest.mark.asyncio
    async def test_delete(self, session_factory, credentials, user_id):
        repo = IntegrationRepository(session_factory)
        integration = await repo.create(user_id, ProviderName.STRAVA, credentials)

        await repo.delete(integration.id)

        assert await repo.find_by_id(integration.id) is None
        assert await repo.find_by_user_id(user_id) == []


class TestHealthEntryRepository:

    @pytest.mark.asyncio
    async def test_create_and_find_by_date(self, session_factory, user_id):
        repo = HealthEntryRepository(session_factory)
        record = make_record(date(2024, 1, 1), steps=8500, weight=75.5, raw_data={"summary": {"steps": 8500}})

        await repo.create(user_id, record, "FITBIT")
        entry = await repo.find_by_user_and_date(user_id, date(2024, 1, 1))

        assert entry.steps == 8500
        assert entry.weight == 75.5
        assert entry.source == "FITBIT"
        assert entry.raw_json == {"summary": {"steps": 8500}}
        assert await repo.find_by_user_and_date(user_id, date(2024, 1, 2)) is None
        assert await repo.find_by_user_and_date(uuid.uuid4(), date(2024, 1, 1)) is None

    @pytest.mark.asyncio
    async def test_replace_overwrites_every_metric(self, session_factory, user_id):
        repo = HealthEntryRepository(session_factory)
        entry = await repo.create(user_id, make_record(date(2024, 1, 1), steps=8500, weight=75.5), "MANUAL")

        await repo.replace(entry.id, make_record(date(2024, 1, 1), steps=9000), "FITBIT")

        replaced = await repo.find_by_user_and_date(user_id, date(2024, 1, 1))
        assert replaced.id == entry.id
        assert replaced.steps == 9000
        assert replaced.weight is None
        assert replaced.source == "FITBIT"

    @pytest.mark.asyncio
    async def test_replace_unknown_entry(self, session_factory):
        with pytest.raises(NotFoundError):
            await HealthEntryRepository(session_factory).replace(
                uuid.uuid4(), make_record(date(2024, 1, 1)), "FITBIT"
            )
