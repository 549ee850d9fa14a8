from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timedelta, timezone

import pytest

from backoffice import config, storage
from backoffice.engine import FormSession
from backoffice.entities import get_entity
from backoffice.notifications import ToastSink
from backoffice.storage import DraftStore


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingAutosave:
    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.cancelled = 0

    def __call__(self, document: dict) -> None:
        self.calls.append(copy.deepcopy(document))

    def cancel(self) -> None:
        self.cancelled += 1

    @property
    def pending(self) -> bool:
        return False


class FakeSubmitter:
    def __init__(self, error: Exception | None = None, delay: float = 0) -> None:
        self.error = error
        self.delay = delay
        self.payloads: list[dict] = []

    async def __call__(self, payload: dict) -> dict:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return {"success": True}


def valid_hotel() -> dict:
    hotel = get_entity("hotel").empty_document()
    hotel.update(
        {
            "name": "  Azure Bay Resort ",
            "slug": "azure-bay-resort",
            "location": "Palm Jumeirah",
            "type": "Resort",
            "description": "Beachfront resort with private marina",
            "status": "Operational",
            "rating": 5,
            "year": "2020",
            "price": {"total": "AED 2.5M", "totalNumeric": 2_500_000, "currency": "AED"},
            "dimensions": {"floors": 12, "height": "120m", "heightNumeric": 120, "totalArea": 0, "landArea": 0},
            "totalRooms": 200,
            "roomsSuites": [
                {
                    "name": "Ocean Suite",
                    "size": "85 sqm",
                    "description": "Corner suite facing the gulf",
                    "features": ["Sea view", ""],
                    "count": 20,
                }
            ],
            "dining": [
                {
                    "name": "Saffron",
                    "type": "Buffet",
                    "location": "Lobby level",
                    "description": "All-day international dining",
                }
            ],
            "amenities": {"leisure": ["Infinity pool"]},
            "mainImage": "https://cdn.example.com/hotels/azure.jpg",
        }
    )
    return hotel


@pytest.fixture(autouse=True)
def _isolated_drafts(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    config.get_settings.cache_clear()
    storage._memory.clear()
    yield
    storage._memory.clear()
    config.get_settings.cache_clear()


@pytest.fixture()
def hotel_schema():
    return get_entity("hotel")


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def store(hotel_schema, clock):
    return DraftStore.for_entity(hotel_schema, clock=clock)


@pytest.fixture()
def autosave():
    return RecordingAutosave()


@pytest.fixture()
def submitter():
    return FakeSubmitter()


@pytest.fixture()
def session(hotel_schema, store, submitter, autosave):
    return FormSession(hotel_schema, store, submitter, notifier=ToastSink(), autosave=autosave)
