from __future__ import annotations

import base64

import httpx
import pytest

from app.clients.jasper import CarrierLookupClient, CarrierLookupError, normalize_msisdn
from app.core.config import JasperSettings


class CountingLimiter:
    def __init__(self) -> None:
        self.calls = 0

    async def acquire(self) -> None:
        self.calls += 1


def _settings() -> JasperSettings:
    return JasperSettings(
        api_url="https://jasper.example.com/",
        username="jasper-user",
        api_key="jasper-key",
    )


def _client(handler, limiter=None) -> CarrierLookupClient:
    return CarrierLookupClient(
        _settings(),
        rate_limiter=limiter or CountingLimiter(),
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_lookup_returns_msisdn_with_plus_prefix() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"iccid": "8901", "msisdn": "15551234567"})

    limiter = CountingLimiter()
    result = await _client(handler, limiter).lookup_by_identifier("8901")

    assert result == "+15551234567"
    assert limiter.calls == 1
    request = seen[0]
    assert str(request.url) == "https://jasper.example.com/rws/api/v1/devices/8901"
    expected = base64.b64encode(b"jasper-user:jasper-key").decode()
    assert request.headers["authorization"] == f"Basic {expected}"


def test_normalize_keeps_existing_prefix() -> None:
    assert normalize_msisdn("+447700900000") == "+447700900000"
    assert normalize_msisdn(" 447700900000 ") == "+447700900000"


@pytest.mark.asyncio
async def test_missing_msisdn_returns_none() -> None:
    result = await _client(
        lambda request: httpx.Response(200, json={"iccid": "8901", "msisdn": None})
    ).lookup_by_identifier("8901")

    assert result is None


@pytest.mark.asyncio
async def test_empty_identifier_is_rejected_before_any_request() -> None:
    limiter = CountingLimiter()

    with pytest.raises(CarrierLookupError) as excinfo:
        await _client(lambda request: httpx.Response(200), limiter).lookup_by_identifier("")

    assert excinfo.value.error_type == "VALIDATION_ERROR"
    assert limiter.calls == 0


@pytest.mark.asyncio
async def test_error_status_is_api_error() -> None:
    with pytest.raises(CarrierLookupError) as excinfo:
        await _client(
            lambda request: httpx.Response(404, text="device not found")
        ).lookup_by_identifier("8901")

    assert excinfo.value.error_type == "API_ERROR"
    assert excinfo.value.details == {"status": 404, "data": "device not found"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exception, error_type",
    [
        (httpx.ReadTimeout, "TIMEOUT"),
        (httpx.ConnectError, "NO_RESPONSE"),
    ],
)
async def test_transport_failures_are_classified(exception, error_type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exception("boom", request=request)

    with pytest.raises(CarrierLookupError) as excinfo:
        await _client(handler).lookup_by_identifier("8901")

    assert excinfo.value.error_type == error_type


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text=""),
        httpx.Response(200, json={}),
        httpx.Response(200, json=["unexpected"]),
    ],
)
async def test_empty_body_is_no_data(response: httpx.Response) -> None:
    with pytest.raises(CarrierLookupError) as excinfo:
        await _client(lambda request: response).lookup_by_identifier("8901")

    assert excinfo.value.error_type == "NO_DATA"


@pytest.mark.asyncio
async def test_identifier_is_escaped_in_request_path() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"msisdn": "15550000000"})

    await _client(handler).lookup_by_identifier("89/01?x=1")

    assert seen[0].url.raw_path == b"/rws/api/v1/devices/89%2F01%3Fx%3D1"
