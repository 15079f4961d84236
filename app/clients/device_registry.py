"""Read-only lookups against the device registration database."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Any, Optional

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from app.core.config import RegistrationDBSettings


class LookupUnavailable(Exception):
    """The registration database could not be queried."""


@dataclass(frozen=True)
class DeviceRegistration:
    registration_code: Optional[str] = None
    sim_serial_number: Optional[str] = None
    sim_iccid: Optional[str] = None

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "DeviceRegistration":
        return cls(
            registration_code=_text(document.get("registrationCode")),
            sim_serial_number=_text(document.get("simSerialNumber")),
            sim_iccid=_text(document.get("simICCID")),
        )


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class DeviceLookupClient:
    """Map a device serial number (IMEI) to its registration record."""

    def __init__(
        self,
        settings: RegistrationDBSettings,
        *,
        collection: Any = None,
    ) -> None:
        self._settings = settings
        self._collection = collection
        self._client: MongoClient | None = None
        self._guard = threading.Lock()

    def _get_collection(self) -> Any:
        with self._guard:
            if self._collection is None:
                self._collection = self._connect()
            return self._collection

    def _connect(self) -> Any:
        self._client = MongoClient(
            self._settings.uri,
            serverSelectionTimeoutMS=self._settings.timeout_ms,
            connectTimeoutMS=self._settings.timeout_ms,
            socketTimeoutMS=self._settings.timeout_ms,
        )
        if self._settings.database:
            database = self._client[self._settings.database]
        else:
            database = self._client.get_default_database()
        return database[self._settings.collection]

    async def lookup_by_serial(self, serial_number: str) -> Optional[DeviceRegistration]:
        """Return the registration for ``serial_number`` or ``None`` on a miss."""

        def _find() -> Optional[dict[str, Any]]:
            return self._get_collection().find_one({"imei": str(serial_number)})

        try:
            document = await asyncio.to_thread(_find)
        except PyMongoError as exc:
            raise LookupUnavailable(f"Registration lookup failed: {exc}") from exc

        if not document:
            return None
        return DeviceRegistration.from_document(document)

    def close(self) -> None:
        with self._guard:
            if self._client is not None:
                self._client.close()
                self._client = None
                self._collection = None


__all__ = ["DeviceLookupClient", "DeviceRegistration", "LookupUnavailable"]
