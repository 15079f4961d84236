"""Shopify Admin API client for writing order metafields."""

from __future__ import annotations

from typing import Any, Dict

import httpx

from app.core.config import ShopifySettings


class AttributeWriteError(Exception):
    """A metafield write did not succeed."""

    def __init__(self, message: str, *, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class OrderAttributeWriter:
    """Set single-line text metafields on an order."""

    def __init__(
        self,
        settings: ShopifySettings,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    def _metafields_url(self, order_id: str) -> str:
        return (
            f"https://{self._settings.store}.myshopify.com/admin/api/"
            f"{self._settings.api_version}/orders/{order_id}/metafields.json"
        )

    async def write_attribute(self, order_id: str, key: str, value: str) -> Dict[str, Any]:
        """Create or update metafield ``key`` on ``order_id``."""
        body = {
            "metafield": {
                "namespace": self._settings.metafield_namespace,
                "key": key,
                "value": value,
                "type": "single_line_text_field",
            }
        }
        headers = {
            "X-Shopify-Access-Token": self._settings.token,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._metafields_url(order_id), json=body, headers=headers
                )
        except httpx.HTTPError as exc:
            raise AttributeWriteError(f"Shopify request failed: {exc}") from exc

        if not response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            raise AttributeWriteError(
                f"Shopify responded with {response.status_code} writing {key}",
                status_code=response.status_code,
                payload=payload,
            )
        try:
            return response.json()
        except ValueError:
            return {}


__all__ = ["AttributeWriteError", "OrderAttributeWriter"]
