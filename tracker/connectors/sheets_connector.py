# tracker/connectors/sheets_connector.py
"""
Google Sheets adapter.

Backing store is the first worksheet of one spreadsheet with a fixed column
layout:

    A Patreon Name | B Tier | C Request Date | D Character Name
    E Origin       | F Type | G Status       | H Notes

Row 1 may be a header row. Records get the id "req-<sheet row number>" so an
update can find its row again; only columns A-H are ever written.
"""

import re
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from httplib2 import HttpLib2Error

from tracker import monitoring
from tracker.config import SyncConfig
from tracker.results import AdapterResult, E_NOT_CONFIGURED, E_IO, E_NOT_FOUND

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

# Column order A..H
MANAGED_FIELDS = ["patreonName", "tier", "dateRequested", "characterName", "origin", "requestType", "status", "notes"]
READ_RANGE = "A:K"

_ID_RE = re.compile(r"^req-(\d+)$")
_SIMPLE_TITLE_RE = re.compile(r"^[A-Za-z0-9_]+$")

_SHEETS_ERRORS = (HttpError, GoogleAuthError, HttpLib2Error, OSError, ValueError)


def build_service(config: SyncConfig):
    """Return an authenticated Sheets v4 client for the configured service account."""
    if config.service_account_file:
        credentials = service_account.Credentials.from_service_account_file(
            config.service_account_file, scopes=SCOPES
        )
    else:
        credentials = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": config.client_email,
                "private_key": config.private_key,
                "token_uri": TOKEN_URI,
            },
            scopes=SCOPES,
        )
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


def quote_title(title: str) -> str:
    """Return a worksheet title safely formatted for A1 notation."""
    normalised = (title or "").strip()
    if _SIMPLE_TITLE_RE.fullmatch(normalised):
        return normalised
    return "'" + normalised.replace("'", "''") + "'"


def has_header(rows: List[List[Any]]) -> bool:
    return bool(rows) and bool(rows[0]) and isinstance(rows[0][0], str) and "patreon" in rows[0][0].lower()


def _cell(row: List[Any], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx])


def row_to_fields(row: List[Any]) -> Dict[str, str]:
    return {name: _cell(row, idx) for idx, name in enumerate(MANAGED_FIELDS)}


def fields_to_row(fields: Dict[str, Any]) -> List[str]:
    return ["" if fields.get(name) is None else str(fields.get(name)) for name in MANAGED_FIELDS]


def rows_to_records(rows: List[List[Any]]) -> List[Dict[str, Any]]:
    """
    Map raw sheet rows to raw records with positional ids.

    Rows with an empty column A are dropped; ids of the other rows still
    reflect their real sheet row.
    """
    header_offset = 1 if has_header(rows) else 0
    records: List[Dict[str, Any]] = []
    for index, row in enumerate(rows[header_offset:]):
        if not _cell(row, 0).strip():
            continue
        record: Dict[str, Any] = row_to_fields(row)
        record["id"] = f"req-{index + 1 + header_offset}"
        records.append(record)
    return records


def resolve_row_index(identity: str, rows: List[List[Any]]) -> Optional[int]:
    """
    Find the 0-based index into `rows` (the raw sheet rows, header included)
    for a record id, or None.

    1. an explicit identifier stored in column A of a data row
    2. "req-<N>" decoded to sheet row N
    """
    if not rows or not identity:
        return None
    start = 1 if has_header(rows) else 0

    for idx in range(start, len(rows)):
        if rows[idx] and _cell(rows[idx], 0) == identity:
            return idx

    m = _ID_RE.match(identity)
    if m:
        idx = int(m.group(1)) - 1
        if start <= idx < len(rows):
            return idx
    return None


class SheetsAdapter:
    name = "sheets"

    def __init__(self, config: SyncConfig, service: Any = None):
        self.spreadsheet_id = config.spreadsheet_id
        self.fallback_title = config.sheet_title
        self._config = config
        self._service = service

    @property
    def configured(self) -> bool:
        return bool(self.spreadsheet_id)

    def _api(self):
        if self._service is None:
            self._service = build_service(self._config)
        return self._service

    def sheet_name(self) -> str:
        try:
            meta = self._api().spreadsheets().get(spreadsheetId=self.spreadsheet_id).execute()
            sheets = meta.get("sheets") or []
            title = sheets[0].get("properties", {}).get("title") if sheets else None
            return title or self.fallback_title
        except _SHEETS_ERRORS as e:
            monitoring.logger.warning(
                "Could not read sheet metadata, using fallback title",
                extra={"error": str(e), "title": self.fallback_title},
            )
            return self.fallback_title

    def _get_rows(self, title: str) -> List[List[Any]]:
        resp = self._api().spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=f"{quote_title(title)}!{READ_RANGE}",
        ).execute()
        return resp.get("values", []) or []

    def read(self) -> AdapterResult:
        if not self.configured:
            return AdapterResult.failure(E_NOT_CONFIGURED, "GOOGLE_SPREADSHEET_ID not configured")
        try:
            rows = self._get_rows(self.sheet_name())
        except _SHEETS_ERRORS as e:
            monitoring.logger.warning("Sheets read failed", extra={"error": str(e)})
            return AdapterResult.failure(E_IO, f"Sheets read failed: {e}")
        return AdapterResult.success(rows_to_records(rows))

    def write(self, patch: Dict[str, Any], identity: str) -> AdapterResult:
        if not self.configured:
            return AdapterResult.failure(E_NOT_CONFIGURED, "GOOGLE_SPREADSHEET_ID not configured")
        try:
            title = self.sheet_name()
            rows = self._get_rows(title)
            idx = resolve_row_index(identity, rows)
            if idx is None:
                monitoring.logger.info(
                    "Sheets row not found for update",
                    extra={"id": identity, "total_rows": len(rows)},
                )
                return AdapterResult.failure(E_NOT_FOUND, f"Request {identity} not found in sheet")

            sheet_row = idx + 1
            managed = {k: v for k, v in patch.items() if k in MANAGED_FIELDS}
            unmanaged = sorted(k for k in patch if k not in MANAGED_FIELDS)
            updated_cells = 0
            if managed:
                merged = row_to_fields(rows[idx])
                merged.update(managed)
                resp = self._api().spreadsheets().values().update(
                    spreadsheetId=self.spreadsheet_id,
                    range=f"{quote_title(title)}!A{sheet_row}:H{sheet_row}",
                    valueInputOption="USER_ENTERED",
                    body={"values": [fields_to_row(merged)]},
                ).execute()
                updated_cells = resp.get("updatedCells")
        except _SHEETS_ERRORS as e:
            monitoring.logger.warning("Sheets update failed", extra={"id": identity, "error": str(e)})
            return AdapterResult.failure(E_IO, f"Sheets update failed: {e}")

        monitoring.logger.info(
            "Sheets row updated",
            extra={"id": identity, "row": sheet_row, "updated_cells": updated_cells, "unmanaged": unmanaged},
        )
        # fields outside A-H have no column; only the client cache keeps them
        return AdapterResult.success({"row": sheet_row, "unmanaged": unmanaged}, durable=not unmanaged)

    def append(self, record: Dict[str, Any]) -> AdapterResult:
        if not self.configured:
            return AdapterResult.failure(E_NOT_CONFIGURED, "GOOGLE_SPREADSHEET_ID not configured")
        try:
            title = self.sheet_name()
            resp = self._api().spreadsheets().values().append(
                spreadsheetId=self.spreadsheet_id,
                range=f"{quote_title(title)}!{READ_RANGE}",
                valueInputOption="USER_ENTERED",
                body={"values": [fields_to_row(record)]},
            ).execute()
        except _SHEETS_ERRORS as e:
            monitoring.logger.warning("Sheets append failed", extra={"error": str(e)})
            return AdapterResult.failure(E_IO, f"Sheets append failed: {e}")
        return AdapterResult.success({"updatedRange": resp.get("updates", {}).get("updatedRange")})
