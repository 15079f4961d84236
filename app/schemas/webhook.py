"""
Pydantic models for ShipBob shipment webhooks and the enrichment response.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class InventoryItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    serial_numbers: List[str] = Field(default_factory=list)

    @field_validator("serial_numbers", mode="before")
    @classmethod
    def _coerce_serials(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(item) for item in value if item is not None]
        return value


class ShipmentProduct(BaseModel):
    model_config = ConfigDict(extra="allow")

    inventory_items: List[InventoryItem] = Field(default_factory=list)

    @field_validator("inventory_items", mode="before")
    @classmethod
    def _null_items(cls, value: Any) -> Any:
        return [] if value is None else value


class Shipment(BaseModel):
    model_config = ConfigDict(extra="allow")

    products: List[ShipmentProduct] = Field(default_factory=list)

    @field_validator("products", mode="before")
    @classmethod
    def _null_products(cls, value: Any) -> Any:
        return [] if value is None else value


class ShipmentEvent(BaseModel):
    """One ``order_shipped`` delivery. Only the fields we read are modelled."""

    model_config = ConfigDict(extra="allow")

    reference_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("reference_id", "orderId"),
        description="Shopify order identifier the shipment belongs to.",
    )
    shipments: List[Shipment] = Field(default_factory=list)

    @field_validator("reference_id", mode="before")
    @classmethod
    def _stringify_reference(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("shipments", mode="before")
    @classmethod
    def _null_shipments(cls, value: Any) -> Any:
        return [] if value is None else value

    def summarize(self) -> "ShipmentSummary":
        """Flatten the shipment tree into candidate serials in document order.

        Each inventory item with a non-blank serial list contributes its first
        serial; blank strings do not count.
        """
        candidates: List[str] = []
        for shipment in self.shipments:
            for product in shipment.products:
                for item in product.inventory_items:
                    serials = [s.strip() for s in item.serial_numbers if s.strip()]
                    if serials:
                        candidates.append(serials[0])
        return ShipmentSummary(
            order_reference=(self.reference_id or "").strip(),
            serial_candidates=candidates,
        )


@dataclass(frozen=True)
class ShipmentSummary:
    order_reference: str
    serial_candidates: List[str] = field(default_factory=list)

    @property
    def serial_number(self) -> Optional[str]:
        return self.serial_candidates[0] if self.serial_candidates else None


class WebhookAck(BaseModel):
    """Response returned to ShipBob after a delivery is processed."""

    success: bool = True
    order_id: str
    imei: str
    attributes: Dict[str, str] = Field(
        default_factory=dict,
        description="Outcome per attribute key: 'written' or 'failed'.",
    )


__all__ = [
    "InventoryItem",
    "Shipment",
    "ShipmentEvent",
    "ShipmentProduct",
    "ShipmentSummary",
    "WebhookAck",
]
