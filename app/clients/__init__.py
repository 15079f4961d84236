"""Expose constructed client wrappers."""

from .credential_store import CredentialStore
from .device_registry import DeviceLookupClient, DeviceRegistration, LookupUnavailable
from .jasper import CarrierLookupClient, CarrierLookupError
from .shipbob import ShipBobApiError, ShipBobClient
from .shipbob_auth import OAuthStateEncoder, ShipBobOAuthClient
from .shopify import AttributeWriteError, OrderAttributeWriter

__all__ = [
    "AttributeWriteError",
    "CarrierLookupClient",
    "CarrierLookupError",
    "CredentialStore",
    "DeviceLookupClient",
    "DeviceRegistration",
    "LookupUnavailable",
    "OAuthStateEncoder",
    "OrderAttributeWriter",
    "ShipBobApiError",
    "ShipBobClient",
    "ShipBobOAuthClient",
]
