"""ShipBob REST API client authenticated through the token lifecycle manager."""

from __future__ import annotations

from typing import Any, Dict, List, TYPE_CHECKING

import httpx

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.services.token_manager import TokenLifecycleManager


class ShipBobApiError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class ShipBobClient:
    """Manage webhook subscriptions on the ShipBob account."""

    def __init__(
        self,
        *,
        api_base_url: str,
        token_manager: "TokenLifecycleManager",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = api_base_url.rstrip("/")
        self._tokens = token_manager
        self._timeout = timeout
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        access_token = await self._tokens.acquire()
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method, f"{self._base_url}{path}", headers=headers, **kwargs
                )
        except httpx.HTTPError as exc:
            raise ShipBobApiError(f"ShipBob request failed: {exc}") from exc

        if not response.is_success:
            raise ShipBobApiError(
                f"ShipBob responded with {response.status_code}",
                status_code=response.status_code,
                payload=response.text,
            )
        return response

    async def create_webhook(
        self,
        *,
        topic: str,
        subscription_url: str,
        description: str = "",
    ) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            "/1.0/webhook",
            json={
                "Topic": topic,
                "SubscriptionUrl": subscription_url,
                "Description": description,
            },
        )
        return response.json()

    async def list_webhooks(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/1.0/webhook")
        return response.json()


__all__ = ["ShipBobApiError", "ShipBobClient"]
