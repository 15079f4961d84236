from __future__ import annotations

import json

import httpx
import pytest

from app.clients.shipbob import ShipBobApiError, ShipBobClient
from app.services.token_manager import NotAuthorized
from scripts import create_webhook


class StaticTokenManager:
    def __init__(self, token: str = "access-token", *, error: Exception | None = None) -> None:
        self.token = token
        self.error = error
        self.calls = 0

    async def acquire(self) -> str:
        self.calls += 1
        if self.error:
            raise self.error
        return self.token


def _client(handler, token_manager=None) -> ShipBobClient:
    return ShipBobClient(
        api_base_url="https://api.shipbob.com/",
        token_manager=token_manager or StaticTokenManager(),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_create_webhook_sends_bearer_token_and_subscription() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"id": 12, "topic": "order_shipped"})

    tokens = StaticTokenManager("fresh-token")
    created = await _client(handler, tokens).create_webhook(
        topic="order_shipped",
        subscription_url="https://hooks.example.com/api/webhooks/shipbob/order-shipped",
        description="enrichment",
    )

    assert created == {"id": 12, "topic": "order_shipped"}
    assert tokens.calls == 1
    request = seen[0]
    assert str(request.url) == "https://api.shipbob.com/1.0/webhook"
    assert request.headers["authorization"] == "Bearer fresh-token"
    assert json.loads(request.content) == {
        "Topic": "order_shipped",
        "SubscriptionUrl": "https://hooks.example.com/api/webhooks/shipbob/order-shipped",
        "Description": "enrichment",
    }


@pytest.mark.asyncio
async def test_error_response_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="unauthorized")

    with pytest.raises(ShipBobApiError) as excinfo:
        await _client(handler).list_webhooks()

    assert excinfo.value.status_code == 401
    assert excinfo.value.payload == "unauthorized"


@pytest.mark.asyncio
async def test_missing_credential_propagates_before_any_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    tokens = StaticTokenManager(error=NotAuthorized("not connected"))
    with pytest.raises(NotAuthorized):
        await _client(handler, tokens).list_webhooks()
    assert seen == []


def test_script_reports_auth_error(monkeypatch: pytest.MonkeyPatch) -> None:
    client = _client(
        lambda request: httpx.Response(200, json={}),
        StaticTokenManager(error=NotAuthorized("not connected")),
    )
    monkeypatch.setattr(create_webhook, "get_shipbob_client", lambda: client)
    monkeypatch.setattr(create_webhook, "configure_logging", lambda *args, **kwargs: None)

    exit_code = create_webhook.main(["--url", "https://hooks.example.com/hook"])

    assert exit_code == create_webhook.EXIT_AUTH_ERROR


def test_script_creates_subscription(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    client = _client(lambda request: httpx.Response(201, json={"id": 99}))
    monkeypatch.setattr(create_webhook, "get_shipbob_client", lambda: client)
    monkeypatch.setattr(create_webhook, "configure_logging", lambda *args, **kwargs: None)

    exit_code = create_webhook.main(["--url", "https://hooks.example.com/hook"])

    assert exit_code == create_webhook.EXIT_OK
    assert '"id": 99' in capsys.readouterr().out
