from __future__ import annotations

from datetime import timedelta

import redis

from backoffice import storage
from backoffice.state import DraftRecord
from backoffice.storage import DraftStore, describe_age


class FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class BrokenRedis:
    def get(self, key):
        raise redis.ConnectionError("down")

    def set(self, key, value):
        raise redis.ConnectionError("down")

    def delete(self, key):
        raise redis.ConnectionError("down")


def _draft(schema, **values):
    doc = schema.empty_document()
    doc.update(values)
    return doc


def test_empty_documents_are_not_saved(store, hotel_schema):
    assert store.save(hotel_schema.empty_document()) is False
    assert store.save(_draft(hotel_schema, name="ab")) is False
    assert store.load() is None


def test_save_and_load(store, hotel_schema, clock):
    assert store.save(_draft(hotel_schema, name="Azure Bay"))

    record = store.load()
    assert record.version == "1.0"
    assert record.document["name"] == "Azure Bay"
    assert record.saved_at == clock.now
    assert store.has_meaningful_draft()


def test_positive_number_is_meaningful(store, hotel_schema):
    assert store.save(_draft(hotel_schema, totalRooms=12))


def test_expired_draft_is_cleared(store, hotel_schema, clock):
    store.save(_draft(hotel_schema, name="Azure Bay"))
    clock.advance(days=7, minutes=1)

    assert store.load() is None
    assert store.key not in storage._memory


def test_corrupt_draft_is_cleared(store):
    storage._memory[store.key] = "{not json"
    assert store.load() is None
    assert store.key not in storage._memory


def test_meaningless_stored_draft_is_cleared(store, hotel_schema, clock):
    record = DraftRecord(document=_draft(hotel_schema, name="ab"), saved_at=clock.now)
    storage._memory[store.key] = record.model_dump_json()

    assert store.has_meaningful_draft() is False
    assert store.key not in storage._memory


def test_owner_scoped_key(hotel_schema):
    assert DraftStore.for_entity(hotel_schema, "agent-7").key == "hotel-form-draft:agent-7"
    assert DraftStore.for_entity(hotel_schema).key == "hotel-form-draft"


def test_redis_backend(hotel_schema, clock):
    fake = FakeRedis()
    store = DraftStore.for_entity(hotel_schema, client=fake, clock=clock)

    store.save(_draft(hotel_schema, name="Azure Bay"))
    assert "hotel-form-draft" in fake.data
    assert store.load().document["name"] == "Azure Bay"

    store.clear()
    assert fake.data == {}


def test_redis_failures_fall_back_to_memory(hotel_schema, clock):
    store = DraftStore.for_entity(hotel_schema, client=BrokenRedis(), clock=clock)

    assert store.save(_draft(hotel_schema, name="Azure Bay"))
    assert store.load().document["name"] == "Azure Bay"

    store.clear()
    assert store.load() is None


def test_describe_age(clock):
    saved = clock.now
    assert describe_age(saved, saved + timedelta(seconds=30)) == "Just now"
    assert describe_age(saved, saved + timedelta(minutes=1)) == "1 minute ago"
    assert describe_age(saved, saved + timedelta(minutes=45)) == "45 minutes ago"
    assert describe_age(saved, saved + timedelta(hours=2)) == "2 hours ago"
    assert describe_age(saved, saved + timedelta(days=1, hours=3)) == "1 day ago"


def test_store_describes_its_draft(store, hotel_schema, clock):
    assert store.describe_age() is None
    store.save(_draft(hotel_schema, name="Azure Bay"))
    clock.advance(hours=3)
    assert store.describe_age() == "3 hours ago"
