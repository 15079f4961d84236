"""Jasper device-management client mapping a SIM ICCID to its phone number."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from app.core.config import JasperSettings
from app.utils.rate_limit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


class CarrierLookupError(Exception):
    """Failure talking to Jasper, classified by ``error_type``.

    Types: ``VALIDATION_ERROR``, ``API_ERROR``, ``NO_RESPONSE``, ``TIMEOUT``,
    ``NO_DATA``, ``REQUEST_ERROR``.
    """

    def __init__(
        self, message: str, error_type: str, details: Optional[dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.details = details or {}


def normalize_msisdn(msisdn: str) -> str:
    msisdn = msisdn.strip()
    return msisdn if msisdn.startswith("+") else f"+{msisdn}"


class CarrierLookupClient:
    """Read-only, rate-limited Jasper REST client."""

    def __init__(
        self,
        settings: JasperSettings,
        *,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._limiter = rate_limiter or SlidingWindowRateLimiter(
            max_requests=settings.rate_limit,
            period_seconds=settings.rate_window_seconds,
        )
        self._transport = transport

    async def lookup_by_identifier(self, iccid: str | None) -> Optional[str]:
        """Return the device's MSISDN with a leading ``+``, or ``None`` if it has none."""
        if not iccid:
            raise CarrierLookupError("ICCID is required", "VALIDATION_ERROR")

        url = (
            f"{self._settings.api_url.rstrip('/')}/rws/api/v1/devices/"
            f"{quote(iccid, safe='')}"
        )
        await self._limiter.acquire()
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.timeout_seconds,
                auth=(self._settings.username, self._settings.api_key),
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
        except httpx.TimeoutException as exc:
            raise CarrierLookupError("Request to Jasper API timed out", "TIMEOUT") from exc
        except httpx.TransportError as exc:
            raise CarrierLookupError(
                "No response received from Jasper API",
                "NO_RESPONSE",
                {"reason": str(exc)},
            ) from exc
        except httpx.HTTPError as exc:
            raise CarrierLookupError(
                f"Error setting up request: {exc}", "REQUEST_ERROR"
            ) from exc

        if not response.is_success:
            raise CarrierLookupError(
                f"Jasper API responded with error: {response.status_code}",
                "API_ERROR",
                {"status": response.status_code, "data": response.text},
            )

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not payload or not isinstance(payload, dict):
            raise CarrierLookupError("No data received from Jasper API", "NO_DATA")

        msisdn = payload.get("msisdn")
        if not msisdn:
            logger.info("Jasper has no MSISDN for ICCID %s", iccid)
            return None
        return normalize_msisdn(str(msisdn))


__all__ = ["CarrierLookupClient", "CarrierLookupError", "normalize_msisdn"]
