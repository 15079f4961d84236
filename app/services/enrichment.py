"""
Enrich Shopify orders from ShipBob shipment webhooks.

Only the ``imei`` write is essential. Registration and carrier enrichment is
best-effort: each failure is logged and the delivery still succeeds.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, TYPE_CHECKING

from pydantic import ValidationError

from app.clients.device_registry import DeviceRegistration, LookupUnavailable
from app.clients.jasper import CarrierLookupError
from app.clients.shopify import AttributeWriteError
from app.schemas.webhook import ShipmentEvent

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from app.clients.device_registry import DeviceLookupClient
    from app.clients.jasper import CarrierLookupClient
    from app.clients.shopify import OrderAttributeWriter

logger = logging.getLogger(__name__)

IMEI_KEY = "imei"
REGISTRATION_CODE_KEY = "watch_registration_code"
SIM_SERIAL_KEY = "sim_serial_number"
SIM_ICCID_KEY = "sim_iccid"
SIM_PHONE_KEY = "sim_phone_number"


class EventValidationError(Exception):
    """The delivery cannot be processed as sent. Maps to a 400."""


class MalformedEvent(EventValidationError):
    pass


class MissingOrderReference(EventValidationError):
    pass


class NoSerialNumberFound(EventValidationError):
    pass


class EnrichmentWriteFailed(Exception):
    """The essential ``imei`` write failed. Maps to a 500."""


@dataclass
class AttributeWriteResult:
    key: str
    value: str
    ok: bool
    error: Optional[str] = None


@dataclass
class EnrichmentOutcome:
    order_reference: str
    serial_number: str
    registration: Optional[DeviceRegistration] = None
    phone_number: Optional[str] = None
    carrier_error: Optional[str] = None
    writes: List[AttributeWriteResult] = field(default_factory=list)

    def attribute_status(self) -> dict[str, str]:
        return {w.key: "written" if w.ok else "failed" for w in self.writes}


class WebhookEnrichmentPipeline:
    """Turn one shipment event into metafield writes on its order."""

    def __init__(
        self,
        *,
        attribute_writer: "OrderAttributeWriter",
        device_lookup: "DeviceLookupClient",
        carrier_lookup: "CarrierLookupClient",
    ) -> None:
        self._writer = attribute_writer
        self._devices = device_lookup
        self._carrier = carrier_lookup

    async def handle(self, event: ShipmentEvent | Mapping[str, Any]) -> EnrichmentOutcome:
        if not isinstance(event, ShipmentEvent):
            logger.info("Received shipment webhook: %s", _compact(event))
            try:
                event = ShipmentEvent.model_validate(event)
            except ValidationError as exc:
                logger.warning("Rejected malformed webhook: %s", exc.errors())
                raise MalformedEvent("Webhook payload does not match the shipment shape.") from exc
        else:
            logger.info("Received shipment webhook: %s", event.model_dump_json())

        summary = event.summarize()
        if not summary.order_reference:
            logger.warning("Rejected webhook: missing order reference")
            raise MissingOrderReference("Missing order reference in payload")

        order_id = summary.order_reference
        serial_number = summary.serial_number
        if serial_number is None:
            logger.warning("Rejected webhook for order %s: no serial number found", order_id)
            raise NoSerialNumberFound("No serial number found in payload")
        logger.info("Order %s: found serial number %s", order_id, serial_number)

        outcome = EnrichmentOutcome(order_reference=order_id, serial_number=serial_number)

        try:
            await self._writer.write_attribute(order_id, IMEI_KEY, serial_number)
        except AttributeWriteError as exc:
            logger.error(
                "Order %s: essential write %s=%s failed: %s payload=%s",
                order_id,
                IMEI_KEY,
                serial_number,
                exc,
                exc.payload,
            )
            raise EnrichmentWriteFailed(f"Failed to write {IMEI_KEY} to order {order_id}") from exc
        outcome.writes.append(AttributeWriteResult(IMEI_KEY, serial_number, ok=True))
        logger.info("Order %s: wrote %s=%s", order_id, IMEI_KEY, serial_number)

        registration = await self._lookup_registration(order_id, serial_number)
        outcome.registration = registration
        if registration is None:
            logger.info("Order %s: enrichment finished (imei only)", order_id)
            return outcome

        pending = [
            (key, value)
            for key, value in (
                (REGISTRATION_CODE_KEY, registration.registration_code),
                (SIM_SERIAL_KEY, registration.sim_serial_number),
                (SIM_ICCID_KEY, registration.sim_iccid),
            )
            if value
        ]
        outcome.writes.extend(await self._write_all(order_id, pending))

        if registration.sim_iccid:
            phone_number = await self._lookup_phone_number(order_id, registration.sim_iccid, outcome)
            if phone_number:
                outcome.phone_number = phone_number
                outcome.writes.extend(
                    await self._write_all(order_id, [(SIM_PHONE_KEY, phone_number)])
                )

        failed = [w.key for w in outcome.writes if not w.ok]
        logger.info(
            "Order %s: enrichment finished; written=%s failed=%s",
            order_id,
            [w.key for w in outcome.writes if w.ok],
            failed,
        )
        return outcome

    async def _lookup_registration(
        self, order_id: str, serial_number: str
    ) -> Optional[DeviceRegistration]:
        try:
            registration = await self._devices.lookup_by_serial(serial_number)
        except LookupUnavailable as exc:
            logger.warning(
                "Order %s: registration lookup unavailable for %s, skipping enrichment: %s",
                order_id,
                serial_number,
                exc,
            )
            return None
        if registration is None:
            logger.info("Order %s: no registration record for %s", order_id, serial_number)
        else:
            logger.info("Order %s: registration record found for %s", order_id, serial_number)
        return registration

    async def _lookup_phone_number(
        self, order_id: str, iccid: str, outcome: EnrichmentOutcome
    ) -> Optional[str]:
        try:
            phone_number = await self._carrier.lookup_by_identifier(iccid)
        except CarrierLookupError as exc:
            outcome.carrier_error = exc.error_type
            logger.warning(
                "Order %s: carrier lookup for ICCID %s failed [%s]: %s %s",
                order_id,
                iccid,
                exc.error_type,
                exc,
                exc.details,
            )
            return None
        except Exception as exc:  # noqa: BLE001 - carrier enrichment never fails a delivery
            outcome.carrier_error = "UNEXPECTED"
            logger.exception("Order %s: carrier lookup for ICCID %s failed: %s", order_id, iccid, exc)
            return None

        if phone_number is None:
            logger.info("Order %s: no phone number on record for ICCID %s", order_id, iccid)
        else:
            logger.info("Order %s: carrier lookup for ICCID %s returned %s", order_id, iccid, phone_number)
        return phone_number

    async def _write_all(
        self, order_id: str, pending: List[tuple[str, str]]
    ) -> List[AttributeWriteResult]:
        """Run best-effort writes concurrently and report each outcome."""
        if not pending:
            return []
        settled = await asyncio.gather(
            *(self._writer.write_attribute(order_id, key, value) for key, value in pending),
            return_exceptions=True,
        )
        results: List[AttributeWriteResult] = []
        for (key, value), result in zip(pending, settled):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    "Order %s: best-effort write %s=%s failed: %s",
                    order_id,
                    key,
                    value,
                    result,
                )
                results.append(AttributeWriteResult(key, value, ok=False, error=str(result)))
            else:
                logger.info("Order %s: wrote %s=%s", order_id, key, value)
                results.append(AttributeWriteResult(key, value, ok=True))
        return results


def _compact(payload: Any) -> str:
    try:
        return json.dumps(payload, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return repr(payload)


__all__ = [
    "AttributeWriteResult",
    "EnrichmentOutcome",
    "EnrichmentWriteFailed",
    "EventValidationError",
    "MalformedEvent",
    "MissingOrderReference",
    "NoSerialNumberFound",
    "WebhookEnrichmentPipeline",
]
