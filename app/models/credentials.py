"""
Domain models for OAuth credential persistence.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CredentialRecord(BaseModel):
    """The single ShipBob credential the service holds at any time."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_at: datetime = Field(
        ..., description="Instant after which access_token must not be used."
    )

    @field_validator("expires_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_grant(
        cls,
        *,
        access_token: str,
        refresh_token: str,
        expires_in: int,
        issued_at: Optional[datetime] = None,
    ) -> "CredentialRecord":
        issued = issued_at or datetime.now(timezone.utc)
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=issued + timedelta(seconds=expires_in),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or datetime.now(timezone.utc))


__all__ = ["CredentialRecord"]
