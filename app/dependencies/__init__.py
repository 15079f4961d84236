"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_carrier_lookup_client,
    get_credential_cipher,
    get_credential_store,
    get_device_lookup_client,
    get_enrichment_pipeline,
    get_log_buffer,
    get_oauth_state_encoder,
    get_order_attribute_writer,
    get_shipbob_client,
    get_shipbob_oauth_client,
    get_token_manager,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
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
