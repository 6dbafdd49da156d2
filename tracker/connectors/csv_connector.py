# tracker/connectors/csv_connector.py
from typing import Any, Dict, Optional

import httpx

from tracker import monitoring
from tracker.config import SyncConfig
from tracker.processors.csv_parser import parse_csv
from tracker.results import AdapterResult, E_NOT_CONFIGURED, E_IO, E_BAD_DATA


class CsvAdapter:
    """
    Read-only adapter over a published CSV export of the request sheet.

    Mutations are acknowledged without being persisted; durability for this
    configuration lives in the client cache.
    """

    name = "csv"

    def __init__(self, config: SyncConfig, client: Optional[httpx.Client] = None):
        self.url = config.csv_url
        self.timeout_s = config.csv_timeout_s
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def _fetch(self) -> str:
        headers = {"Cache-Control": "no-cache", "Accept": "text/csv,text/plain;q=0.9,*/*;q=0.1"}
        if self._client is not None:
            resp = self._client.get(self.url, headers=headers, timeout=self.timeout_s)
        else:
            resp = httpx.get(self.url, headers=headers, timeout=self.timeout_s, follow_redirects=True)
        resp.raise_for_status()
        return resp.text

    def read(self) -> AdapterResult:
        if not self.configured:
            return AdapterResult.failure(E_NOT_CONFIGURED, "GOOGLE_SHEETS_CSV_URL not configured")
        try:
            csv_text = self._fetch()
        except httpx.HTTPError as e:
            monitoring.logger.warning("CSV fetch failed", extra={"error": str(e)})
            return AdapterResult.failure(E_IO, f"CSV fetch failed: {e}")

        lower = csv_text[:500].lower()
        if "<html" in lower:
            # unpublished sheets answer with a sign-in page instead of CSV
            return AdapterResult.failure(E_BAD_DATA, "CSV URL returned HTML; is the sheet published?")

        monitoring.logger.debug("Fetched CSV", extra={"preview": csv_text[:200]})
        return AdapterResult.success(parse_csv(csv_text))

    def write(self, patch: Dict[str, Any], identity: str) -> AdapterResult:
        monitoring.logger.info("CSV source is read-only; update kept locally", extra={"id": identity})
        return AdapterResult.success(None, durable=False)

    def append(self, record: Dict[str, Any]) -> AdapterResult:
        monitoring.logger.info("CSV source is read-only; new request kept locally")
        return AdapterResult.success(None, durable=False)
