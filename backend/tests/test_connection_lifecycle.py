"""Tests for connect / callback / disconnect."""

import uuid

import pytest

from app.core.exceptions import (
    AuthExchangeError,
    AuthorizationError,
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    ProviderUnavailableError,
)
from app.integrations.base import IntegrationStatus, ProviderName

from conftest import REDIRECT_URI


class TestInitiateConnection:
    """Tests for initiate_connection."""

    @pytest.mark.asyncio
    async def test_returns_auth_url_with_state(self, service, state_codec, user_id):
        """Should embed a decodable state bound to the user and provider."""
        result = await service.initiate_connection(user_id, ProviderName.STRAVA)

        assert result.state in result.auth_url
        state = state_codec.decode(result.state)
        assert state.user_id == user_id
        assert state.provider == ProviderName.STRAVA
        assert state.redirect_uri == REDIRECT_URI

    @pytest.mark.asyncio
    async def test_does_not_persist_anything(self, service, integration_store, user_id):
        """Should leave the store untouched."""
        await service.initiate_connection(user_id, ProviderName.FITBIT)
        assert integration_store.items == {}

    @pytest.mark.asyncio
    async def test_active_integration_conflicts(self, service, integration_store, user_id):
        """Should refuse a second connection while one is ACTIVE."""
        integration_store.add(user_id, ProviderName.STRAVA)

        with pytest.raises(ConflictError):
            await service.initiate_connection(user_id, ProviderName.STRAVA)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status", [IntegrationStatus.REVOKED, IntegrationStatus.EXPIRED, IntegrationStatus.ERROR]
    )
    async def test_inactive_integration_does_not_block(self, service, integration_store, user_id, status):
        """Should allow reconnecting a non-active integration."""
        integration_store.add(user_id, ProviderName.STRAVA, status=status)

        result = await service.initiate_connection(user_id, ProviderName.STRAVA)
        assert result.auth_url

    @pytest.mark.asyncio
    async def test_other_provider_does_not_block(self, service, integration_store, user_id):
        """Should only conflict on the same provider."""
        integration_store.add(user_id, ProviderName.STRAVA)

        result = await service.initiate_connection(user_id, ProviderName.LOSE_IT)
        assert result.auth_url


class TestCompleteConnection:
    """Tests for complete_connection."""

    @pytest.mark.asyncio
    async def test_creates_active_integration(self, service, integration_store, user_id):
        """Should exchange the code and store the credentials."""
        initiated = await service.initiate_connection(user_id, ProviderName.FITBIT)

        completed = await service.complete_connection("abc", initiated.state)

        assert completed.provider == ProviderName.FITBIT
        assert completed.status == IntegrationStatus.ACTIVE
        stored = integration_store.items[completed.id]
        assert stored.user_id == user_id
        assert stored.access_token == "access-abc"

    @pytest.mark.asyncio
    async def test_reconnect_updates_existing_record(self, service, integration_store, user_id):
        """Should reuse the existing row and force it back to ACTIVE."""
        existing = integration_store.add(user_id, ProviderName.FITBIT, status=IntegrationStatus.ERROR)
        existing.sync_error_message = "token revoked"
        initiated = await service.initiate_connection(user_id, ProviderName.FITBIT)

        completed = await service.complete_connection("new-code", initiated.state)

        assert completed.id == existing.id
        assert len(integration_store.items) == 1
        assert existing.status == IntegrationStatus.ACTIVE
        assert existing.access_token == "access-new-code"
        assert existing.sync_error_message is None

    @pytest.mark.asyncio
    async def test_state_older_than_ten_minutes_is_rejected(self, service, clock, integration_store, user_id):
        """Should reject a state issued 11 minutes ago."""
        initiated = await service.initiate_connection(user_id, ProviderName.STRAVA)
        clock.advance(minutes=11)

        with pytest.raises(InvalidRequestError):
            await service.complete_connection("abc", initiated.state)
        assert integration_store.items == {}

    @pytest.mark.asyncio
    async def test_state_within_ten_minutes_is_accepted(self, service, clock, user_id):
        """Should accept a state issued 9 minutes ago."""
        initiated = await service.initiate_connection(user_id, ProviderName.STRAVA)
        clock.advance(minutes=9)

        completed = await service.complete_connection("abc", initiated.state)
        assert completed.status == IntegrationStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_tampered_state_is_rejected(self, service, user_id):
        """Should reject a state whose payload was modified."""
        initiated = await service.initiate_connection(user_id, ProviderName.STRAVA)
        payload, signature = initiated.state.split(".")

        with pytest.raises(InvalidRequestError):
            await service.complete_connection("abc", f"{payload}x.{signature}")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", ["not-a-state", "abc.éé", "éé.abc"])
    async def test_garbage_state_is_rejected(self, service, state):
        """Should reject a state that is not ours at all, including non-ASCII input."""
        with pytest.raises(InvalidRequestError):
            await service.complete_connection("abc", state)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [AuthExchangeError("Strava", "invalid code"), ProviderUnavailableError("Strava", "timeout")],
    )
    async def test_exchange_failure_becomes_invalid_request(
        self, service, providers, integration_store, user_id, error
    ):
        """Should wrap provider failures and persist nothing."""
        providers[ProviderName.STRAVA].exchange_error = error
        initiated = await service.initiate_connection(user_id, ProviderName.STRAVA)

        with pytest.raises(InvalidRequestError) as exc_info:
            await service.complete_connection("used-code", initiated.state)

        assert exc_info.value.details["provider"] == "STRAVA"
        assert integration_store.items == {}


class TestDisconnect:
    """Tests for disconnect_integration."""

    @pytest.mark.asyncio
    async def test_revokes_then_deletes(self, service, integration_store, providers, user_id):
        """Should revoke remotely and hard delete."""
        integration = integration_store.add(user_id, ProviderName.FITBIT)

        await service.disconnect_integration(integration.id, user_id)

        assert len(providers[ProviderName.FITBIT].revoke_calls) == 1
        assert integration.id not in integration_store.items

    @pytest.mark.asyncio
    async def test_revocation_failure_is_ignored(self, service, integration_store, providers, user_id):
        """Should still delete locally when revocation fails."""
        integration = integration_store.add(user_id, ProviderName.STRAVA)
        providers[ProviderName.STRAVA].revoke_error = ProviderUnavailableError("Strava", "down")

        await service.disconnect_integration(integration.id, user_id)

        assert integration.id in integration_store.deleted

    @pytest.mark.asyncio
    async def test_unknown_integration(self, service, user_id):
        """Should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.disconnect_integration(uuid.uuid4(), user_id)

    @pytest.mark.asyncio
    async def test_other_users_integration(self, service, integration_store, providers, user_id):
        """Should refuse and leave the integration in place."""
        integration = integration_store.add(user_id, ProviderName.STRAVA)

        with pytest.raises(AuthorizationError):
            await service.disconnect_integration(integration.id, uuid.uuid4())

        assert integration.id in integration_store.items
        assert providers[ProviderName.STRAVA].revoke_calls == []


class TestListIntegrations:
    """Tests for get_user_integrations / get_active_integrations."""

    @pytest.mark.asyncio
    async def test_summaries_do_not_expose_tokens(self, service, integration_store, user_id):
        """Should return credential-free summaries."""
        integration_store.add(user_id, ProviderName.STRAVA)
        integration_store.add(user_id, ProviderName.FITBIT, status=IntegrationStatus.REVOKED)

        summaries = await service.get_user_integrations(user_id)

        assert {s.provider for s in summaries} == {ProviderName.STRAVA, ProviderName.FITBIT}
        dumped = summaries[0].model_dump()
        assert "access_token" not in dumped
        assert "refresh_token" not in dumped

    @pytest.mark.asyncio
    async def test_active_only(self, service, integration_store, user_id):
        """Should filter to ACTIVE integrations."""
        integration_store.add(user_id, ProviderName.STRAVA)
        integration_store.add(user_id, ProviderName.FITBIT, status=IntegrationStatus.ERROR)

        active = await service.get_active_integrations(user_id)

        assert [i.provider for i in active] == [ProviderName.STRAVA]


class TestOwnership:
    """Tests for get_owned_integration."""

    @pytest.mark.asyncio
    async def test_owner_gets_integration(self, service, integration_store, user_id):
        """Should return the integration to its owner."""
        integration = integration_store.add(user_id, ProviderName.STRAVA)

        assert (await service.get_owned_integration(integration.id, user_id)) is integration

    @pytest.mark.asyncio
    async def test_other_user_is_refused(self, service, integration_store, user_id):
        """Should raise AuthorizationError for someone else's integration."""
        integration = integration_store.add(user_id, ProviderName.STRAVA)

        with pytest.raises(AuthorizationError):
            await service.get_owned_integration(integration.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_unknown_integration(self, service, user_id):
        """Should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await service.get_owned_integration(uuid.uuid4(), user_id)
