"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app and the operational
scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the process env."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


class ShipBobSettings(BaseSettings):
    """OAuth client and API configuration for ShipBob."""

    model_config = SettingsConfigDict(env_prefix="SHIPBOB_")

    client_id: str
    client_secret: str
    redirect_uri: AnyHttpUrl
    webhook_url: Optional[AnyHttpUrl] = Field(
        None,
        description="Public URL ShipBob should deliver order_shipped events to.",
    )
    auth_base_url: str = "https://auth.shipbob.com"
    api_base_url: str = "https://api.shipbob.com"
    state_ttl: int = Field(900, description="Seconds an OAuth state stays valid.")
    scopes: Annotated[tuple[str, ...], NoDecode] = (
        "orders_read",
        "webhooks_read",
        "webhooks_write",
        "offline_access",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma or space separated string."""
        if isinstance(value, (tuple, list)):
            return tuple(value)
        return tuple(scope for scope in value.replace(",", " ").split() if scope)

    @property
    def authorize_url(self) -> str:
        return f"{self.auth_base_url.rstrip('/')}/connect/authorize"

    @property
    def token_url(self) -> str:
        return f"{self.auth_base_url.rstrip('/')}/connect/token"


class ShopifySettings(BaseSettings):
    """Admin API access for writing order metafields."""

    model_config = SettingsConfigDict(env_prefix="SHOPIFY_")

    store: str
    token: str
    api_version: str = "2024-01"
    metafield_namespace: str = "custom"


class RegistrationDBSettings(BaseSettings):
    """Connection details for the device registration database."""

    model_config = SettingsConfigDict(env_prefix="MONGO_")

    uri: str
    database: Optional[str] = Field(
        None, description="Database name; defaults to the one named in the URI."
    )
    collection: str = "watchdata"
    timeout_ms: int = 5000


class JasperSettings(BaseSettings):
    """Credentials and limits for the Jasper device-management API."""

    model_config = SettingsConfigDict(env_prefix="JASPER_")

    api_url: str
    username: str
    api_key: str
    timeout_seconds: float = 5.0
    rate_limit: int = Field(50, description="Requests allowed per rolling window.")
    rate_window_seconds: float = 60.0


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        description="Secret used to derive the key that encrypts stored tokens.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    log_file: Optional[str] = Field("logs/webhook.log", validation_alias="APP_LOG_FILE")
    log_buffer_size: int = Field(500, validation_alias="APP_LOG_BUFFER_SIZE")
    credential_db_path: str = Field(
        "data/credentials.db", validation_alias="CREDENTIAL_DB_PATH"
    )
    port: int = Field(3000, validation_alias="PORT")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    shipbob: ShipBobSettings = Field(default_factory=ShipBobSettings)
    shopify: ShopifySettings = Field(default_factory=ShopifySettings)
    registration_db: RegistrationDBSettings = Field(
        default_factory=RegistrationDBSettings
    )
    jasper: JasperSettings = Field(default_factory=JasperSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "JasperSettings",
    "RegistrationDBSettings",
    "SecuritySettings",
    "ShipBobSettings",
    "ShopifySettings",
    "get_settings",
]
