from __future__ import annotations

import asyncio
import time

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from app.clients import device_registry
from app.clients.device_registry import (
    DeviceLookupClient,
    DeviceRegistration,
    LookupUnavailable,
)
from app.core.config import RegistrationDBSettings


class FakeCollection:
    def __init__(self, documents=None, *, error: Exception | None = None) -> None:
        self.documents = documents or []
        self.error = error
        self.queries: list[dict] = []

    def find_one(self, query: dict):
        self.queries.append(query)
        if self.error:
            raise self.error
        for document in self.documents:
            if all(document.get(key) == value for key, value in query.items()):
                return document
        return None


def _client(collection: FakeCollection) -> DeviceLookupClient:
    settings = RegistrationDBSettings(uri="mongodb://localhost:27017/registrations")
    return DeviceLookupClient(settings, collection=collection)


@pytest.mark.asyncio
async def test_lookup_maps_registration_fields() -> None:
    collection = FakeCollection(
        [
            {
                "imei": "IMEI123",
                "registrationCode": "REG9",
                "simSerialNumber": "SIM-77",
                "simICCID": "8901260000000000001",
            }
        ]
    )

    registration = await _client(collection).lookup_by_serial("IMEI123")

    assert registration == DeviceRegistration(
        registration_code="REG9",
        sim_serial_number="SIM-77",
        sim_iccid="8901260000000000001",
    )
    assert collection.queries == [{"imei": "IMEI123"}]


@pytest.mark.asyncio
async def test_blank_fields_are_treated_as_absent() -> None:
    collection = FakeCollection([{"imei": "IMEI123", "registrationCode": "  ", "simICCID": 8901}])

    registration = await _client(collection).lookup_by_serial("IMEI123")

    assert registration.registration_code is None
    assert registration.sim_serial_number is None
    assert registration.sim_iccid == "8901"


@pytest.mark.asyncio
async def test_unknown_serial_returns_none() -> None:
    assert await _client(FakeCollection()).lookup_by_serial("UNKNOWN") is None


@pytest.mark.asyncio
async def test_database_failure_raises_lookup_unavailable() -> None:
    collection = FakeCollection(error=ServerSelectionTimeoutError("no servers"))

    with pytest.raises(LookupUnavailable):
        await _client(collection).lookup_by_serial("IMEI123")


class FakeMongoClient:
    instances: list["FakeMongoClient"] = []

    def __init__(self, uri: str, **options) -> None:
        time.sleep(0.02)
        self.uri = uri
        self.options = options
        self.closed = False
        self.collection = FakeCollection([{"imei": "IMEI123", "registrationCode": "REG9"}])
        FakeMongoClient.instances.append(self)

    def get_default_database(self):
        return {"watchdata": self.collection}

    def __getitem__(self, name: str):
        return {"watchdata": self.collection}

    def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_concurrent_first_lookups_share_one_connection(monkeypatch) -> None:
    FakeMongoClient.instances = []
    monkeypatch.setattr(device_registry, "MongoClient", FakeMongoClient)
    client = DeviceLookupClient(
        RegistrationDBSettings(uri="mongodb://localhost:27017/registrations", timeout_ms=1500)
    )

    results = await asyncio.gather(*(client.lookup_by_serial("IMEI123") for _ in range(5)))

    assert [r.registration_code for r in results] == ["REG9"] * 5
    assert len(FakeMongoClient.instances) == 1
    assert FakeMongoClient.instances[0].options["serverSelectionTimeoutMS"] == 1500

    client.close()

    assert FakeMongoClient.instances[0].closed is True
