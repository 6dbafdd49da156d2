# tracker/connectors/local_store.py
"""
Local-store adapter: the whole request list as one JSON array under one
storage key of a key-value store.

Stores:
- MemoryKeyValueStore: per-process dict (default, tests)
- SqlKeyValueStore: kv_entries table through SQLAlchemy (persistent)
- RedisKeyValueStore: optional, needs the `redis` package
"""

import json
import threading
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from tracker import db as dbmod
from tracker import monitoring
from tracker.results import AdapterResult, E_IO, E_NOT_FOUND

# Optional Redis import
try:
    import redis as _redis_mod
except ImportError:
    _redis_mod = None


class MemoryKeyValueStore:
    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SqlKeyValueStore:
    """Key-value rows in the kv_entries table; call db.init_db() first."""

    def get(self, key: str) -> Optional[str]:
        from tracker.models import KeyValueEntry
        db = dbmod.SessionLocal()
        try:
            row = db.get(KeyValueEntry, key)
            return row.value_json if row else None
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        from tracker.models import KeyValueEntry
        db = dbmod.SessionLocal()
        try:
            row = db.get(KeyValueEntry, key)
            if row is None:
                db.add(KeyValueEntry(key=key, value_json=value))
            else:
                row.value_json = value
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, key: str) -> None:
        from tracker.models import KeyValueEntry
        db = dbmod.SessionLocal()
        try:
            row = db.get(KeyValueEntry, key)
            if row is not None:
                db.delete(row)
                db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()


class RedisKeyValueStore:
    def __init__(self, redis_url: str):
        if _redis_mod is None:
            raise RuntimeError("redis package not installed")
        self._client = _redis_mod.from_url(redis_url, decode_responses=True)

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def set(self, key: str, value: str) -> None:
        self._client.set(key, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)


class LocalStoreAdapter:
    name = "local"

    def __init__(self, store: Any, storage_key: str):
        self.store = store
        self.storage_key = storage_key

    def _load(self) -> List[Dict[str, Any]]:
        raw = self.store.get(self.storage_key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            monitoring.logger.warning("Local store held invalid JSON; treating as empty", extra={"key": self.storage_key})
            return []
        if not isinstance(data, list):
            return []
        return [d for d in data if isinstance(d, dict)]

    def _save(self, records: List[Dict[str, Any]]) -> None:
        self.store.set(self.storage_key, json.dumps(records))

    def read(self) -> AdapterResult:
        try:
            return AdapterResult.success(self._load())
        except Exception as e:
            monitoring.logger.warning("Local store read failed", extra={"key": self.storage_key, "error": str(e)})
            return AdapterResult.failure(E_IO, f"Local store read failed: {e}")

    def replace_all(self, records: List[Dict[str, Any]]) -> AdapterResult:
        try:
            self._save(list(records))
        except Exception as e:
            monitoring.logger.warning("Local store write failed", extra={"key": self.storage_key, "error": str(e)})
            return AdapterResult.failure(E_IO, f"Local store write failed: {e}")
        return AdapterResult.success(len(records))

    def write(self, patch: Dict[str, Any], identity: str) -> AdapterResult:
        loaded = self.read()
        if not loaded.ok:
            return loaded
        records = loaded.value
        for entry in records:
            if entry.get("id") == identity:
                entry.update({k: v for k, v in patch.items() if k != "id"})
                return self.replace_all(records)
        return AdapterResult.failure(E_NOT_FOUND, f"Request {identity} not in local store")

    def append(self, record: Dict[str, Any]) -> AdapterResult:
        loaded = self.read()
        if not loaded.ok:
            return loaded
        records = loaded.value
        records.append(dict(record))
        return self.replace_all(records)

    def remove(self, identity: str) -> AdapterResult:
        loaded = self.read()
        if not loaded.ok:
            return loaded
        records = [r for r in loaded.value if r.get("id") != identity]
        if len(records) == len(loaded.value):
            return AdapterResult.failure(E_NOT_FOUND, f"Request {identity} not in local store")
        return self.replace_all(records)

    def clear(self) -> AdapterResult:
        try:
            self.store.delete(self.storage_key)
        except Exception as e:
            return AdapterResult.failure(E_IO, f"Local store reset failed: {e}")
        return AdapterResult.success(None)
