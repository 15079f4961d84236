"""Schemas related to OAuth flows."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class OAuthCallbackResult(BaseModel):
    """Returned once the authorization code has been exchanged and stored."""

    status: str = Field("connected", description="Connection state of the ShipBob account.")
    expires_at: datetime = Field(..., description="When the stored access token lapses.")


__all__ = ["OAuthCallbackResult"]
