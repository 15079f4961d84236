"""
ShipBob OAuth utilities.

These helpers build the consent redirect and talk to the identity provider's
token endpoint for the authorization-code and refresh-token grants.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import status

from app.core.config import ShipBobSettings

# Token lifetimes beyond ten years are treated as a malformed response.
MAX_EXPIRES_IN = 10 * 365 * 24 * 60 * 60


class InvalidOAuthStateError(Exception):
    """Raised when an OAuth state value is forged, malformed, or stale."""


class OAuthStateEncoder:
    """Sign OAuth state values so callbacks can be tied to a redirect we issued."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        body = dict(payload)
        body.setdefault("issued_at", datetime.now(timezone.utc).isoformat())
        serialized = json.dumps(body, separators=(",", ":"), sort_keys=True).encode(
            "utf-8"
        )
        signature = hmac.new(self._secret_key, serialized, sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized).decode("utf-8")

    def decode(self, token: str, *, max_age_seconds: Optional[int] = None) -> Dict[str, Any]:
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidOAuthStateError("OAuth state is not valid base64.") from exc

        signature, serialized = decoded[:32], decoded[32:]
        expected = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected):
            raise InvalidOAuthStateError("Invalid OAuth state signature.")
        payload = json.loads(serialized)

        if max_age_seconds is not None:
            try:
                issued_at = datetime.fromisoformat(payload["issued_at"])
            except (KeyError, TypeError, ValueError) as exc:
                raise InvalidOAuthStateError("Missing issued_at in OAuth state.") from exc
            if issued_at.tzinfo is None:
                issued_at = issued_at.replace(tzinfo=timezone.utc)
            age = datetime.now(timezone.utc) - issued_at
            if age > timedelta(seconds=max_age_seconds):
                raise InvalidOAuthStateError("OAuth state token has expired.")
        return payload


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint rejects a grant or returns garbage."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    refresh_token: str
    expires_in: int


class ShipBobOAuthClient:
    """Build ShipBob authorization URLs and run token grants."""

    def __init__(
        self,
        settings: ShipBobSettings,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def token_url(self) -> str:
        return self._settings.token_url

    def build_authorization_url(self, state: str) -> str:
        """Construct the consent URL the user agent is redirected to."""
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "scope": " ".join(self._settings.scopes),
            "response_mode": "query",
            "state": state,
        }
        return f"{self._settings.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenGrant:
        """Exchange a one-time authorization code for the initial tokens."""
        token_payload = await self._post_grant(
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "redirect_uri": str(self._settings.redirect_uri),
            }
        )
        refresh_token = token_payload.get("refresh_token")
        if not refresh_token:
            raise OAuthTokenExchangeError(
                "Token response did not include a refresh token.",
                payload=token_payload,
            )
        return TokenGrant(
            access_token=token_payload["access_token"],
            refresh_token=refresh_token,
            expires_in=int(token_payload["expires_in"]),
        )

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Run the refresh-token grant.

        ShipBob rotates refresh tokens; when a response omits one the
        previous token stays in use.
        """
        token_payload = await self._post_grant(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
            }
        )
        return TokenGrant(
            access_token=token_payload["access_token"],
            refresh_token=token_payload.get("refresh_token") or refresh_token,
            expires_in=int(token_payload["expires_in"]),
        )

    async def _post_grant(self, form: Dict[str, str]) -> Dict[str, Any]:
        # The token endpoint only accepts application/x-www-form-urlencoded.
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(self.token_url, data=form)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(
                f"Token endpoint unreachable: {exc}"
            ) from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                f"Token endpoint responded with {response.status_code}.",
                payload=_safe_json(response),
            )

        token_payload = _safe_json(response)
        if not isinstance(token_payload, dict):
            raise OAuthTokenExchangeError(
                "Token endpoint returned a non-JSON body.", payload=response.text
            )
        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token")
        expires_in = token_payload.get("expires_in")
        try:
            valid_expiry = (
                expires_in is not None and 0 < int(expires_in) <= MAX_EXPIRES_IN
            )
        except (TypeError, ValueError, OverflowError):
            valid_expiry = False
        if (
            not isinstance(access_token, str)
            or not access_token
            or (refresh_token is not None and not isinstance(refresh_token, str))
            or not valid_expiry
        ):
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from ShipBob.",
                payload=token_payload,
            )
        return token_payload


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


__all__ = [
    "InvalidOAuthStateError",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
    "ShipBobOAuthClient",
    "TokenGrant",
]
