"""Tests for per-integration sync locks."""

import uuid

import pytest
from redis.exceptions import LockError

from app.core.exceptions import SyncInProgressError
from app.services.sync_lock import (
    InMemorySyncLockManager,
    RedisSyncLockManager,
    create_sync_lock_manager,
)


class FakeRedisLock:
    """Mimics redis.asyncio.lock.Lock with blocking=False."""

    held = set()

    def __init__(self, name: str, fail_release: bool = False):
        self.name = name
        self.fail_release = fail_release

    async def acquire(self) -> bool:
        if self.name in self.held:
            return False
        self.held.add(self.name)
        return True

    async def release(self) -> None:
        self.held.discard(self.name)
        if self.fail_release:
            raise LockError("Cannot release an unlocked lock")


class TestInMemoryLock:

    @pytest.mark.asyncio
    async def test_second_acquire_fails_fast(self):
        locks = InMemorySyncLockManager()
        integration_id = uuid.uuid4()

        async with locks.acquire(integration_id):
            assert locks.is_locked(integration_id)
            with pytest.raises(SyncInProgressError):
                async with locks.acquire(integration_id):
                    pass

        assert not locks.is_locked(integration_id)

    @pytest.mark.asyncio
    async def test_different_integrations_do_not_block(self):
        locks = InMemorySyncLockManager()

        async with locks.acquire(uuid.uuid4()):
            async with locks.acquire(uuid.uuid4()):
                pass

    @pytest.mark.asyncio
    async def test_released_on_error_and_cleaned_up(self):
        locks = InMemorySyncLockManager()
        integration_id = uuid.uuid4()

        with pytest.raises(RuntimeError):
            async with locks.acquire(integration_id):
                raise RuntimeError("boom")

        assert locks._locks == {}


class TestRedisLock:

    @pytest.fixture(autouse=True)
    def _reset(self):
        FakeRedisLock.held.clear()

    @pytest.mark.asyncio
    async def test_uses_prefixed_key_and_timeout(self):
        created = []

        async def factory(name, timeout):
            created.append((name, timeout))
            return FakeRedisLock(name)

        locks = RedisSyncLockManager(timeout_seconds=120, lock_factory=factory)
        integration_id = uuid.uuid4()

        async with locks.acquire(integration_id):
            pass

        assert created == [(f"sync-lock:{integration_id}", 120)]

    @pytest.mark.asyncio
    async def test_held_lock_fails_fast(self):
        async def factory(name, timeout):
            return FakeRedisLock(name)

        locks = RedisSyncLockManager(lock_factory=factory)
        integration_id = uuid.uuid4()

        async with locks.acquire(integration_id):
            with pytest.raises(SyncInProgressError):
                async with locks.acquire(integration_id):
                    pass

    @pytest.mark.asyncio
    async def test_expired_lock_on_release_is_tolerated(self):
        async def factory(name, timeout):
            return FakeRedisLock(name, fail_release=True)

        locks = RedisSyncLockManager(lock_factory=factory)

        async with locks.acquire(uuid.uuid4()):
            pass


def test_factory_selects_backend():
    assert isinstance(create_sync_lock_manager("memory"), InMemorySyncLockManager)
    assert isinstance(create_sync_lock_manager("redis", 60), RedisSyncLockManager)
    with pytest.raises(ValueError):
        create_sync_lock_manager("zookeeper")
