# tracker/orchestrator.py
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from tracker import monitoring
from tracker.config import SyncConfig
from tracker.connectors.csv_connector import CsvAdapter
from tracker.connectors.excel_connector import ExcelExporter
from tracker.connectors.sheets_connector import SheetsAdapter
from tracker.processors.normalizer import normalize_request, normalize_requests
from tracker.results import AdapterResult, E_IO, E_NOT_CONFIGURED, E_NOT_FOUND
from tracker.schemas import RequestItem, RequestPatch, Vocabulary
from tracker.seed_data import load_seed

SOURCE_SEED = "seed"
COMMITTED_LOCAL = "local"


class SyncOrchestrator:
    """
    Reconciles the request list across the configured stores.

    Reads walk `readers` in order and fall back to seed data; mutations try
    `writers` in order and report "local" when nothing committed durably, in
    which case the caller must keep the change in its client cache. No call
    ever raises to the route handlers.
    """

    def __init__(
        self,
        readers: Sequence[Any],
        writers: Sequence[Any],
        seed_loader: Callable[[], List[Dict[str, Any]]],
        exporter: Optional[ExcelExporter] = None,
        vocabulary: Optional[Vocabulary] = None,
    ):
        self.readers = list(readers)
        self.writers = list(writers)
        self.seed_loader = seed_loader
        self.exporter = exporter
        self.vocabulary = vocabulary

    def _attempt(self, adapter: Any, operation: str, call: Callable[..., AdapterResult], *args) -> AdapterResult:
        try:
            result = call(*args)
        except Exception as e:
            # adapters report failures as results; this only catches adapter bugs
            monitoring.logger.exception("Adapter raised", extra={"adapter": adapter.name, "operation": operation})
            result = AdapterResult.failure(E_IO, str(e))

        outcome = "success" if result.ok else result.error_code
        monitoring.inc_adapter_attempt(adapter.name, operation, outcome)
        if not result.ok:
            level = monitoring.logger.debug if result.error_code == E_NOT_CONFIGURED else monitoring.logger.warning
            level(
                "Adapter attempt failed",
                extra={"adapter": adapter.name, "operation": operation,
                       "error_code": result.error_code, "detail": result.message},
            )
        return result

    def read_requests(self, now=None) -> Tuple[List[RequestItem], str]:
        """
        Returns (normalized requests, source) where source is the adapter name
        that answered or "seed".
        """
        for adapter in self.readers:
            result = self._attempt(adapter, "read", adapter.read)
            if result.ok and result.value:
                items = normalize_requests(result.value, now=now, vocabulary=self.vocabulary)
                monitoring.inc_read_source(adapter.name)
                monitoring.set_last_list_size(len(items))
                return items, adapter.name
            if result.ok:
                monitoring.logger.info("Source returned no rows", extra={"adapter": adapter.name})

        monitoring.logger.warning("No remote source answered - serving seed data")
        items = normalize_requests(self.seed_loader(), now=now, vocabulary=self.vocabulary)
        monitoring.inc_read_source(SOURCE_SEED)
        monitoring.set_last_list_size(len(items))
        return items, SOURCE_SEED

    def update_request(self, request_id: str, patch: Union[RequestPatch, Mapping[str, Any]]) -> Dict[str, Any]:
        if not isinstance(patch, RequestPatch):
            patch = RequestPatch.model_validate(dict(patch))
        wire = patch.to_wire()

        committed_to = COMMITTED_LOCAL
        for adapter in self.writers:
            result = self._attempt(adapter, "write", adapter.write, wire, request_id)
            if result.committed:
                committed_to = adapter.name
                break
            if result.error_code == E_NOT_FOUND:
                monitoring.logger.info(
                    "Update target not found remotely; caller keeps it locally",
                    extra={"id": request_id, "adapter": adapter.name},
                )

        monitoring.inc_write_commit("update", committed_to)
        return {"success": True, "committedTo": committed_to}

    def create_request(self, raw: Union[RequestItem, Mapping[str, Any]]) -> Dict[str, Any]:
        data = raw.to_wire() if isinstance(raw, RequestItem) else dict(raw)
        if not data.get("id"):
            data["id"] = uuid.uuid4().hex[:8]
        item = normalize_request(data, 0, vocabulary=self.vocabulary)
        wire = item.to_wire(include_derived=False)

        committed_to = COMMITTED_LOCAL
        for adapter in self.writers:
            result = self._attempt(adapter, "append", adapter.append, wire)
            if result.committed:
                committed_to = adapter.name
                break

        monitoring.inc_write_commit("create", committed_to)
        return {"success": True, "committedTo": committed_to, "id": item.id}

    def delete_request(self, request_id: str) -> Dict[str, Any]:
        # no remote delete path; the client cache is the only store that forgets
        monitoring.logger.info("Delete acknowledged locally", extra={"id": request_id})
        monitoring.inc_write_commit("delete", COMMITTED_LOCAL)
        return {"success": True, "committedTo": COMMITTED_LOCAL}

    def export_requests(self, raws: Sequence[Union[RequestItem, Mapping[str, Any]]]) -> Dict[str, Any]:
        if self.exporter is None:
            monitoring.inc_export(E_NOT_CONFIGURED)
            return {"success": False, "error_code": E_NOT_CONFIGURED, "error": "No export target configured"}

        items = normalize_requests(raws, vocabulary=self.vocabulary)
        result = self.exporter.export(items)
        if not result.ok:
            monitoring.inc_export(result.error_code)
            return {"success": False, "error_code": result.error_code, "error": result.message}
        monitoring.inc_export("success")
        return {"success": True, "count": result.value}


def build_orchestrator(config: SyncConfig, sheets_service: Any = None) -> SyncOrchestrator:
    sheets = SheetsAdapter(config, service=sheets_service)
    readers: List[Any] = [sheets]
    if config.csv_configured:
        readers.append(CsvAdapter(config))
    return SyncOrchestrator(
        readers=readers,
        writers=[sheets],
        seed_loader=lambda: load_seed(config),
        exporter=ExcelExporter(config),
        vocabulary=Vocabulary.from_config(config),
    )
