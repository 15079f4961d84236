"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import (
    CarrierLookupClient,
    CredentialStore,
    DeviceLookupClient,
    OAuthStateEncoder,
    OrderAttributeWriter,
    ShipBobClient,
    ShipBobOAuthClient,
)
from app.core.config import get_settings
from app.core.logging import RecentLogBuffer, get_recent_logs
from app.services import (
    CredentialCipher,
    TokenLifecycleManager,
    WebhookEnrichmentPipeline,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the ShipBob client secret."""
    return OAuthStateEncoder(secret_key=_settings().shipbob.client_secret)


@lru_cache()
def get_shipbob_oauth_client() -> ShipBobOAuthClient:
    """Create a singleton ShipBob OAuth client."""
    return ShipBobOAuthClient(_settings().shipbob)


@lru_cache()
def get_credential_cipher() -> CredentialCipher:
    """Provide symmetric encryption for stored credentials."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.shipbob.client_secret
    return CredentialCipher(secret=secret)


@lru_cache()
def get_credential_store() -> CredentialStore:
    """Provide the durable credential record store."""
    return CredentialStore(
        _settings().credential_db_path, cipher=get_credential_cipher()
    )


@lru_cache()
def get_token_manager() -> TokenLifecycleManager:
    """Provide the process-wide ShipBob token lifecycle manager."""
    return TokenLifecycleManager(
        store=get_credential_store(),
        oauth_client=get_shipbob_oauth_client(),
    )


@lru_cache()
def get_shipbob_client() -> ShipBobClient:
    """Provide a ShipBob API client that authenticates via the token manager."""
    return ShipBobClient(
        api_base_url=_settings().shipbob.api_base_url,
        token_manager=get_token_manager(),
    )


@lru_cache()
def get_order_attribute_writer() -> OrderAttributeWriter:
    """Provide the Shopify metafield writer."""
    return OrderAttributeWriter(_settings().shopify)


@lru_cache()
def get_device_lookup_client() -> DeviceLookupClient:
    """Provide the registration database client (connects lazily)."""
    return DeviceLookupClient(_settings().registration_db)


@lru_cache()
def get_carrier_lookup_client() -> CarrierLookupClient:
    """Provide the Jasper client; one instance so the rate limit is shared."""
    return CarrierLookupClient(_settings().jasper)


def get_enrichment_pipeline() -> WebhookEnrichmentPipeline:
    """Build the webhook enrichment pipeline from shared clients."""
    return WebhookEnrichmentPipeline(
        attribute_writer=get_order_attribute_writer(),
        device_lookup=get_device_lookup_client(),
        carrier_lookup=get_carrier_lookup_client(),
    )


def get_log_buffer() -> RecentLogBuffer:
    """Provide the in-memory buffer of recent log lines."""
    return get_recent_logs()


__all__ = [
    "get_carrier_lookup_client",
    "get_credential_cipher",
    "get_credential_store",
    "get_device_lookup_client",
    "get_enrichment_pipeline",
    "get_log_buffer",
    "get_oauth_state_encoder",
    "get_order_attribute_writer",
    "get_shipbob_client",
    "get_shipbob_oauth_client",
    "get_token_manager",
]
