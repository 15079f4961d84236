"""Public schema exports."""

from .auth import OAuthCallbackResult
from .webhook import (
    InventoryItem,
    Shipment,
    ShipmentEvent,
    ShipmentProduct,
    ShipmentSummary,
    WebhookAck,
)

__all__ = [
    "InventoryItem",
    "OAuthCallbackResult",
    "Shipment",
    "ShipmentEvent",
    "ShipmentProduct",
    "ShipmentSummary",
    "WebhookAck",
]
