"""
Acquisition, persistence, and refresh of the ShipBob access token.

Two concurrent ``acquire()`` calls that both observe an expired record will
each run a refresh grant. Nothing serializes them; whichever save lands last
is the record later calls read.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, TYPE_CHECKING

from app.clients.shipbob_auth import OAuthTokenExchangeError
from app.models.credentials import CredentialRecord

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.clients.credential_store import CredentialStore
    from app.clients.shipbob_auth import ShipBobOAuthClient

logger = logging.getLogger(__name__)


class NotAuthorized(Exception):
    """No credential is stored; the interactive OAuth flow must run first."""


class TokenRefreshFailed(Exception):
    """The refresh-token grant failed. ``payload`` holds the provider's reply."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class AuthorizationCodeExchangeFailed(Exception):
    """The authorization-code grant failed."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class TokenLifecycleManager:
    """Hands out a currently valid access token, refreshing when it lapses."""

    def __init__(
        self,
        *,
        store: "CredentialStore",
        oauth_client: "ShipBobOAuthClient",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def acquire(self) -> str:
        """Return an access token that is valid right now."""
        record = self._store.load()
        if record is None:
            raise NotAuthorized(
                "No ShipBob credential stored; complete the OAuth flow first."
            )

        now = self._clock()
        if not record.is_expired(now):
            return record.access_token

        logger.info("Access token expired at %s; refreshing", record.expires_at.isoformat())
        try:
            grant = await self._oauth.refresh_token(record.refresh_token)
        except OAuthTokenExchangeError as exc:
            logger.error("Token refresh failed: %s payload=%s", exc, exc.payload)
            raise TokenRefreshFailed(str(exc), payload=exc.payload) from exc

        refreshed = CredentialRecord.from_grant(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_in=grant.expires_in,
            issued_at=now,
        )
        self._store.save(refreshed)
        logger.info("Token refreshed; new expiry %s", refreshed.expires_at.isoformat())
        return refreshed.access_token

    async def exchange_authorization_code(self, code: str) -> CredentialRecord:
        """Complete the interactive flow and persist the initial credential."""
        issued_at = self._clock()
        try:
            grant = await self._oauth.exchange_authorization_code(code)
        except OAuthTokenExchangeError as exc:
            logger.error("Authorization code exchange failed: %s payload=%s", exc, exc.payload)
            raise AuthorizationCodeExchangeFailed(str(exc), payload=exc.payload) from exc

        record = CredentialRecord.from_grant(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_in=grant.expires_in,
            issued_at=issued_at,
        )
        self._store.save(record)
        logger.info("Stored ShipBob credential expiring at %s", record.expires_at.isoformat())
        return record


__all__ = [
    "AuthorizationCodeExchangeFailed",
    "NotAuthorized",
    "TokenLifecycleManager",
    "TokenRefreshFailed",
]
