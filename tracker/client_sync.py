# tracker/client_sync.py
"""
Dashboard-side sync state.

RequestTracker keeps the list the UI renders. Mutations are two-phase:
phase 1 changes the in-memory list and the client cache immediately, phase 2
sends the change to the sync API on a worker thread and records where it
landed. A commit that ends up "local" lives only in the cache, and the
tracker reports it through local_only() so the UI can warn.

Concurrent updates to the same record are last-response-wins.
"""

import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from tracker import monitoring
from tracker.api_client import ApiClient, ApiError
from tracker.cache import ClientCache
from tracker.config import SyncConfig
from tracker.orchestrator import build_orchestrator
from tracker.processors.normalizer import merge_patch, normalize_request
from tracker.schemas import RequestItem, RequestPatch

STATE_PENDING = "pending"
STATE_DURABLE = "durable"
STATE_LOCAL = "local"

SOURCE_CACHE = "cache"

# RequestItem fields with no sheet/CSV column; the cache is their only store
LOCAL_ONLY_FIELDS = ("priority", "date_started", "date_completed", "revision_count", "details")


@dataclass
class CommitRecord:
    id: str
    operation: str
    record: Optional[RequestItem] = None
    state: str = STATE_PENDING
    committed_to: Optional[str] = None
    error: Optional[str] = None
    future: Optional[Future] = field(default=None, repr=False)

    def wait(self, timeout: Optional[float] = None) -> "CommitRecord":
        """Block until phase 2 finished (or timeout elapsed, raising TimeoutError)."""
        if self.future is not None:
            self.future.result(timeout=timeout)
        return self


class RequestTracker:
    def __init__(self, api: Any, cache: ClientCache, executor: Optional[ThreadPoolExecutor] = None):
        self.api = api
        self.cache = cache
        self.items: List[RequestItem] = []
        self.source: Optional[str] = None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="tracker-sync")
        self._commits: List[CommitRecord] = []
        self._lock = threading.Lock()

    def load(self) -> List[RequestItem]:
        try:
            items, source = self.api.read_requests()
        except ApiError as e:
            monitoring.logger.warning("Sync API unavailable, using client cache", extra={"error": str(e)})
            items, source = self.cache.get(), SOURCE_CACHE
        else:
            if source == "seed":
                # seed never replaces data the user already has locally
                self.cache.seed_if_empty(items)
                items = self.cache.get()
            else:
                items = self._carry_local_fields(items)
                self.cache.set(items)

        with self._lock:
            self.items = list(items)
            self.source = source
        return self.items

    def _carry_local_fields(self, items: List[RequestItem]) -> List[RequestItem]:
        """Keep cached values for fields the remote source has no column for."""
        cached = {item.id: item for item in self.cache.get()}
        merged = []
        for item in items:
            local = cached.get(item.id)
            if local is None:
                merged.append(item)
                continue
            merged.append(item.model_copy(update={f: getattr(local, f) for f in LOCAL_ONLY_FIELDS}))
        return merged

    def _index_of(self, request_id: str) -> Optional[int]:
        for idx, item in enumerate(self.items):
            if item.id == request_id:
                return idx
        return None

    def _submit(self, commit: CommitRecord, call: Callable[[], Dict[str, Any]]) -> CommitRecord:
        def run():
            try:
                response = call()
                commit.committed_to = (response or {}).get("committedTo", STATE_LOCAL)
            except Exception as e:
                # reported through local_only(); the change stays in the cache
                monitoring.logger.exception(
                    "Remote commit failed", extra={"id": commit.id, "operation": commit.operation}
                )
                commit.committed_to = STATE_LOCAL
                commit.error = str(e)
            commit.state = STATE_LOCAL if commit.committed_to == STATE_LOCAL else STATE_DURABLE

        with self._lock:
            self._commits.append(commit)
        commit.future = self._executor.submit(run)
        return commit

    def update(self, request_id: str, patch: Union[RequestPatch, Mapping[str, Any]]) -> CommitRecord:
        if not isinstance(patch, RequestPatch):
            patch = RequestPatch.model_validate(dict(patch))

        merged = None
        with self._lock:
            idx = self._index_of(request_id)
            if idx is not None:
                merged = merge_patch(self.items[idx], patch)
                self.items[idx] = merged
        cached = self.cache.apply_patch(request_id, patch)

        commit = CommitRecord(id=request_id, operation="update", record=merged or cached)
        return self._submit(commit, lambda: self.api.update_request(request_id, patch))

    def add(self, raw: Union[RequestItem, Mapping[str, Any]]) -> CommitRecord:
        data = raw.to_wire() if isinstance(raw, RequestItem) else dict(raw)
        if not data.get("id"):
            data["id"] = uuid.uuid4().hex[:8]
        with self._lock:
            item = normalize_request(data, len(self.items), vocabulary=self.cache.vocabulary)
            self.items.append(item)
        self.cache.append(item)

        commit = CommitRecord(id=item.id, operation="create", record=item)
        return self._submit(commit, lambda: self.api.create_request(item))

    def remove(self, request_id: str) -> CommitRecord:
        with self._lock:
            idx = self._index_of(request_id)
            removed = self.items.pop(idx) if idx is not None else None
        self.cache.remove(request_id)

        commit = CommitRecord(id=request_id, operation="delete", record=removed)
        return self._submit(commit, lambda: self.api.delete_request(request_id))

    def pending(self) -> List[CommitRecord]:
        with self._lock:
            return [c for c in self._commits if c.state == STATE_PENDING]

    def local_only(self) -> List[CommitRecord]:
        with self._lock:
            return [c for c in self._commits if c.state == STATE_LOCAL]

    def close(self) -> None:
        self._executor.shutdown(wait=True)


def build_tracker(config: SyncConfig, base_url: Optional[str] = None, api_key: Optional[str] = None,
                  store: Any = None) -> RequestTracker:
    """
    Dashboard-side entry point: a tracker over the HTTP API at `base_url`, or
    over an in-process orchestrator when no URL is given, with the client
    cache configured from `config`.
    """
    if base_url:
        api = ApiClient(base_url, api_key=api_key)
    else:
        api = build_orchestrator(config)
    return RequestTracker(api, ClientCache.from_config(config, store=store))
