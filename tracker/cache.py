# tracker/cache.py
"""
Client cache: the last-known-good request list kept beside the dashboard.

It is both the offline fallback for reads and the buffer that keeps
optimistic updates when the remote store did not take them.
"""

from typing import Any, Iterable, List, Mapping, Optional, Union

from tracker import monitoring
from tracker.config import SyncConfig
from tracker import db as dbmod
from tracker.connectors.local_store import (
    LocalStoreAdapter, MemoryKeyValueStore, RedisKeyValueStore, SqlKeyValueStore,
)
from tracker.processors.normalizer import merge_patch, normalize_requests
from tracker.schemas import RequestItem, RequestPatch, Vocabulary

Record = Union[RequestItem, Mapping[str, Any]]


class ClientCache:
    def __init__(self, adapter: LocalStoreAdapter, vocabulary: Optional[Vocabulary] = None):
        self.adapter = adapter
        self.vocabulary = vocabulary

    @classmethod
    def in_memory(cls, storage_key: str) -> "ClientCache":
        return cls(LocalStoreAdapter(MemoryKeyValueStore(), storage_key))

    @classmethod
    def from_config(cls, config: SyncConfig, store: Any = None) -> "ClientCache":
        """
        Cache over `store`; when none is given, Redis if REDIS_URL is set,
        otherwise the kv_entries table at DATABASE_URL (created on first use).
        """
        if store is None:
            if config.redis_url:
                store = RedisKeyValueStore(config.redis_url)
            else:
                dbmod.init_db(config.database_url)
                store = SqlKeyValueStore()
        return cls(LocalStoreAdapter(store, config.storage_key), Vocabulary.from_config(config))

    def get(self, now=None) -> List[RequestItem]:
        result = self.adapter.read()
        if not result.ok:
            return []
        return normalize_requests(result.value, now=now, vocabulary=self.vocabulary)

    def set(self, items: Iterable[Record]) -> None:
        """Overwrite the snapshot; derived fields are not stored."""
        normalized = normalize_requests(list(items), vocabulary=self.vocabulary)
        result = self.adapter.replace_all([i.to_wire(include_derived=False) for i in normalized])
        if not result.ok:
            monitoring.logger.warning("Client cache write failed", extra={"error": result.message})

    def apply_patch(self, request_id: str, patch: Union[RequestPatch, Mapping[str, Any]]) -> Optional[RequestItem]:
        """Merge a patch into the cached record; returns None (and inserts nothing) when absent."""
        items = self.get()
        for idx, item in enumerate(items):
            if item.id == request_id:
                merged = merge_patch(item, patch)
                items[idx] = merged
                self.set(items)
                return merged
        return None

    def append(self, item: Record) -> None:
        items = self.get()
        items.append(item)
        self.set(items)

    def remove(self, request_id: str) -> bool:
        items = self.get()
        kept = [i for i in items if i.id != request_id]
        if len(kept) == len(items):
            return False
        self.set(kept)
        return True

    def seed_if_empty(self, seed: Iterable[Record]) -> bool:
        """Write `seed` only when the snapshot is empty; returns whether it did."""
        if self.get():
            return False
        self.set(seed)
        return True

    def reset(self) -> None:
        self.adapter.clear()
