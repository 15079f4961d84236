from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.clients.shipbob_auth import OAuthTokenExchangeError, ShipBobOAuthClient, TokenGrant
from app.core.config import ShipBobSettings
from app.models.credentials import CredentialRecord
from app.services.token_manager import (
    AuthorizationCodeExchangeFailed,
    NotAuthorized,
    TokenLifecycleManager,
    TokenRefreshFailed,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeCredentialStore:
    def __init__(self, record: CredentialRecord | None = None) -> None:
        self.record = record
        self.saves: list[CredentialRecord] = []

    def load(self) -> CredentialRecord | None:
        return self.record

    def save(self, record: CredentialRecord) -> None:
        self.saves.append(record)
        self.record = record


class DummyOAuthClient:
    def __init__(self, *, error: OAuthTokenExchangeError | None = None) -> None:
        self.error = error
        self.refresh_calls: list[str] = []
        self.codes: list[str] = []

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        self.refresh_calls.append(refresh_token)
        if self.error:
            raise self.error
        return TokenGrant("refreshed-access", "rotated-refresh", 3600)

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        self.codes.append(code)
        if self.error:
            raise self.error
        return TokenGrant("initial-access", "initial-refresh", 3600)


def _manager(store, oauth_client) -> TokenLifecycleManager:
    return TokenLifecycleManager(store=store, oauth_client=oauth_client, clock=lambda: NOW)


@pytest.mark.asyncio
async def test_acquire_without_record_raises_not_authorized() -> None:
    oauth_client = DummyOAuthClient()
    manager = _manager(FakeCredentialStore(), oauth_client)

    with pytest.raises(NotAuthorized):
        await manager.acquire()
    assert oauth_client.refresh_calls == []


@pytest.mark.asyncio
async def test_acquire_returns_stored_token_while_valid() -> None:
    record = CredentialRecord(
        access_token="still-good",
        refresh_token="refresh-token",
        expires_at=NOW + timedelta(minutes=10),
    )
    store = FakeCredentialStore(record)
    oauth_client = DummyOAuthClient()

    token = await _manager(store, oauth_client).acquire()

    assert token == "still-good"
    assert oauth_client.refresh_calls == []
    assert store.saves == []


@pytest.mark.asyncio
async def test_acquire_refreshes_expired_token_and_persists() -> None:
    expired_at = NOW - timedelta(minutes=1)
    store = FakeCredentialStore(
        CredentialRecord(
            access_token="stale",
            refresh_token="refresh-token",
            expires_at=expired_at,
        )
    )
    oauth_client = DummyOAuthClient()

    token = await _manager(store, oauth_client).acquire()

    assert token == "refreshed-access"
    assert oauth_client.refresh_calls == ["refresh-token"]
    assert len(store.saves) == 1
    saved = store.saves[0]
    assert saved.access_token == "refreshed-access"
    assert saved.refresh_token == "rotated-refresh"
    assert saved.expires_at > expired_at
    assert saved.expires_at == NOW + timedelta(seconds=3600)


@pytest.mark.asyncio
async def test_token_expiring_exactly_now_is_refreshed() -> None:
    store = FakeCredentialStore(
        CredentialRecord(access_token="edge", refresh_token="r", expires_at=NOW)
    )
    oauth_client = DummyOAuthClient()

    await _manager(store, oauth_client).acquire()

    assert oauth_client.refresh_calls == ["r"]


@pytest.mark.asyncio
async def test_refresh_failure_surfaces_provider_payload_and_keeps_record() -> None:
    original = CredentialRecord(
        access_token="stale",
        refresh_token="revoked",
        expires_at=NOW - timedelta(hours=1),
    )
    store = FakeCredentialStore(original)
    oauth_client = DummyOAuthClient(
        error=OAuthTokenExchangeError(
            "Token endpoint responded with 400.", payload={"error": "invalid_grant"}
        )
    )

    with pytest.raises(TokenRefreshFailed) as excinfo:
        await _manager(store, oauth_client).acquire()

    assert excinfo.value.payload == {"error": "invalid_grant"}
    assert store.saves == []
    assert store.record is original


@pytest.mark.asyncio
async def test_exchange_authorization_code_persists_initial_record() -> None:
    store = FakeCredentialStore()
    oauth_client = DummyOAuthClient()
    manager = _manager(store, oauth_client)

    record = await manager.exchange_authorization_code("auth-code")

    assert oauth_client.codes == ["auth-code"]
    assert store.record == record
    assert record.access_token == "initial-access"
    assert record.expires_at == NOW + timedelta(seconds=3600)
    assert await manager.acquire() == "initial-access"


@pytest.mark.asyncio
async def test_exchange_failure_stores_nothing() -> None:
    store = FakeCredentialStore()
    oauth_client = DummyOAuthClient(
        error=OAuthTokenExchangeError("bad code", payload={"error": "invalid_grant"})
    )

    with pytest.raises(AuthorizationCodeExchangeFailed):
        await _manager(store, oauth_client).exchange_authorization_code("nope")
    assert store.record is None


def _real_oauth_client(body: dict) -> ShipBobOAuthClient:
    settings = ShipBobSettings(
        client_id="client",
        client_secret="secret",
        redirect_uri="https://hooks.example.com/api/oauth/callback",
    )
    return ShipBobOAuthClient(
        settings,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"access_token": 12345, "expires_in": 3600},
        {"access_token": "ok", "expires_in": 10**15},
    ],
)
async def test_malformed_refresh_body_surfaces_as_refresh_failure(body) -> None:
    original = CredentialRecord(
        access_token="stale", refresh_token="r", expires_at=NOW - timedelta(minutes=5)
    )
    store = FakeCredentialStore(original)

    with pytest.raises(TokenRefreshFailed) as excinfo:
        await _manager(store, _real_oauth_client(body)).acquire()

    assert excinfo.value.payload == body
    assert store.saves == []


@pytest.mark.asyncio
async def test_malformed_code_exchange_body_surfaces_as_exchange_failure() -> None:
    store = FakeCredentialStore()
    body = {"access_token": "ok", "refresh_token": "r", "expires_in": 10**15}

    with pytest.raises(AuthorizationCodeExchangeFailed):
        await _manager(store, _real_oauth_client(body)).exchange_authorization_code("c")
    assert store.record is None
