# tests/test_local_store_and_cache.py
"""
Local-store adapter over the memory and SQLite key-value stores, and the
client cache built on top of it.
"""
import json

import pytest

from tracker import db as dbmod
from tracker.cache import ClientCache
from tracker.config import SyncConfig
from tracker.connectors import local_store
from tracker.connectors.local_store import LocalStoreAdapter, MemoryKeyValueStore, SqlKeyValueStore
from tracker.results import E_NOT_FOUND
from tracker.seed_data import IMPORTED_REQUESTS

KEY = "patreon_request_tracker_v1"


@pytest.fixture
def sql_store(tmp_path):
    dbmod.init_db(f"sqlite:///{tmp_path / 'cache.db'}")
    return SqlKeyValueStore()


@pytest.fixture(params=["memory", "sql"])
def adapter(request, tmp_path):
    if request.param == "memory":
        store = MemoryKeyValueStore()
    else:
        dbmod.init_db(f"sqlite:///{tmp_path / 'kv.db'}")
        store = SqlKeyValueStore()
    return LocalStoreAdapter(store, KEY)


def test_empty_store_reads_empty_list(adapter):
    result = adapter.read()
    assert result.ok
    assert result.value == []


def test_append_write_remove(adapter):
    adapter.append({"id": "a", "status": "Not Started"})
    adapter.append({"id": "b", "status": "Not Started"})

    assert adapter.write({"id": "zzz", "status": "Done"}, "a").ok
    records = adapter.read().value
    assert records[0] == {"id": "a", "status": "Done"}

    missing = adapter.write({"status": "Done"}, "nope")
    assert missing.error_code == E_NOT_FOUND

    assert adapter.remove("b").ok
    assert [r["id"] for r in adapter.read().value] == ["a"]
    assert adapter.remove("b").error_code == E_NOT_FOUND


def test_clear(adapter):
    adapter.replace_all([{"id": "a"}])
    assert adapter.clear().ok
    assert adapter.read().value == []


def test_corrupt_payload_reads_as_empty():
    store = MemoryKeyValueStore()
    store.set(KEY, "{not json")
    assert LocalStoreAdapter(store, KEY).read().value == []
    store.set(KEY, json.dumps({"id": "a"}))
    assert LocalStoreAdapter(store, KEY).read().value == []


def test_separate_keys_do_not_share_data():
    store = MemoryKeyValueStore()
    LocalStoreAdapter(store, "one").append({"id": "a"})
    assert LocalStoreAdapter(store, "two").read().value == []


def test_cache_round_trip_drops_derived_days():
    cache = ClientCache.in_memory(KEY)
    cache.set(IMPORTED_REQUESTS)
    stored = cache.adapter.read().value
    assert len(stored) == 5
    assert all("daysSinceRequest" not in r for r in stored)

    items = cache.get()
    assert [i.id for i in items] == [r["id"] for r in IMPORTED_REQUESTS]
    assert all(i.days_since_request is not None for i in items)


def test_seed_if_empty_never_overwrites():
    cache = ClientCache.in_memory(KEY)
    assert cache.seed_if_empty(IMPORTED_REQUESTS) is True
    cache.apply_patch("dummy-1", {"status": "Done"})

    assert cache.seed_if_empty(IMPORTED_REQUESTS) is False
    statuses = {i.id: i.status for i in cache.get()}
    assert statuses["dummy-1"] == "Done"


def test_apply_patch_missing_id_is_noop():
    cache = ClientCache.in_memory(KEY)
    cache.set(IMPORTED_REQUESTS)
    before = cache.adapter.read().value
    assert cache.apply_patch("req-999", {"status": "Done"}) is None
    assert cache.adapter.read().value == before


def test_apply_patch_changes_only_patched_fields():
    cache = ClientCache.in_memory(KEY)
    cache.set(IMPORTED_REQUESTS)
    merged = cache.apply_patch("dummy-5", {"status": "Done", "dateCompleted": "2026-01-20"})
    assert merged.status == "Done"
    stored = {r["id"]: r for r in cache.adapter.read().value}
    assert stored["dummy-5"]["notes"] == "High detail required"
    assert stored["dummy-5"]["dateCompleted"] == "2026-01-20"
    assert stored["dummy-4"]["status"] == "Not Started"


def test_append_remove_reset():
    cache = ClientCache.in_memory(KEY)
    cache.append({"id": "new-1", "patreonName": "x"})
    assert [i.id for i in cache.get()] == ["new-1"]
    assert cache.remove("new-1") is True
    assert cache.remove("new-1") is False
    cache.append({"id": "new-2"})
    cache.reset()
    assert cache.get() == []


def test_cache_survives_in_sqlite(sql_store):
    cfg = SyncConfig(storage_key="tracker-test")
    ClientCache.from_config(cfg, store=sql_store).set(IMPORTED_REQUESTS[:2])
    # a fresh cache over the same table sees the snapshot
    reopened = ClientCache.from_config(cfg, store=SqlKeyValueStore())
    assert [i.id for i in reopened.get()] == ["dummy-1", "dummy-2"]


def test_from_config_without_store_uses_database_url(tmp_path):
    cfg = SyncConfig(storage_key="tracker-test", database_url=f"sqlite:///{tmp_path / 'client.db'}")
    ClientCache.from_config(cfg).set(IMPORTED_REQUESTS[:3])
    assert (tmp_path / "client.db").exists()
    assert len(ClientCache.from_config(cfg).get()) == 3


class FakeRedis:
    """Dict-backed client exposing the get/set/delete calls the store makes."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def delete(self, key):
        self.data.pop(key, None)


class FakeRedisModule:
    def __init__(self):
        self.client = FakeRedis()
        self.urls = []

    def from_url(self, url, decode_responses=False):
        assert decode_responses
        self.urls.append(url)
        return self.client


def test_from_config_with_redis_url_uses_redis(monkeypatch):
    fake = FakeRedisModule()
    monkeypatch.setattr(local_store, "_redis_mod", fake)
    cfg = SyncConfig(storage_key="tracker-test", redis_url="redis://cache.internal:6379/0")

    cache = ClientCache.from_config(cfg)
    assert isinstance(cache.adapter.store, local_store.RedisKeyValueStore)
    cache.set(IMPORTED_REQUESTS[:2])
    assert fake.urls == ["redis://cache.internal:6379/0"]
    assert [r["id"] for r in json.loads(fake.client.data["tracker-test"])] == ["dummy-1", "dummy-2"]

    assert [i.id for i in ClientCache.from_config(cfg).get()] == ["dummy-1", "dummy-2"]
    cache.reset()
    assert "tracker-test" not in fake.client.data


def test_redis_store_requires_the_redis_package(monkeypatch):
    monkeypatch.setattr(local_store, "_redis_mod", None)
    with pytest.raises(RuntimeError):
        ClientCache.from_config(SyncConfig(redis_url="redis://localhost:6379/0"))
