# tracker/connectors/excel_connector.py
"""
Excel workbook export (write-only) and tracker-workbook import.

export writes the full list to one "Requests" sheet; a workbook that is open
in another program is reported as E_LOCKED so the user can close it and retry.
read_workbook turns a tracker workbook into raw records usable as seed data.
"""

import errno
import os
import uuid
from typing import Any, Dict, List, Optional

import pandas as pd

from tracker import monitoring
from tracker import stats
from tracker.config import SyncConfig
from tracker.schemas import RequestItem
from tracker.processors.normalizer import parse_date, to_iso
from tracker.results import AdapterResult, E_IO, E_LOCKED

SHEET_NAME = "Requests"
EXCEL_COLUMNS = [
    "Request ID", "Patreon Name", "Tier", "Character Name", "Request Type", "Status",
    "Priority", "Date Requested", "Days Waiting", "Date Started", "Date Completed",
    "SLA (Days)", "Overdue?", "Revision Count", "Notes",
]
# Excel's day zero for serial dates
_EXCEL_EPOCH = pd.Timestamp("1899-12-30")


def _excel_date(value: Optional[str]):
    ts = parse_date(value)
    if ts is None:
        return None
    # spreadsheet cells carry no timezone
    return ts.tz_convert("UTC").tz_localize(None).to_pydatetime()


def items_to_rows(items: List[RequestItem], now: Optional[pd.Timestamp] = None) -> List[Dict[str, Any]]:
    rows = []
    for item in items:
        rows.append({
            "Request ID": item.id,
            "Patreon Name": item.patreon_name,
            "Tier": item.tier,
            "Character Name": item.character_name,
            "Request Type": item.request_type,
            "Status": item.status,
            "Priority": item.priority,
            "Date Requested": _excel_date(item.date_requested),
            "Days Waiting": stats.days_between(item.date_requested, now),
            "Date Started": _excel_date(item.date_started),
            "Date Completed": _excel_date(item.date_completed),
            "SLA (Days)": stats.sla_days(item.tier),
            "Overdue?": "Yes" if stats.is_overdue(item, now) else "No",
            "Revision Count": item.revision_count,
            "Notes": item.notes,
        })
    return rows


def _is_lock_error(exc: OSError) -> bool:
    # a workbook held open by Excel surfaces as EACCES/EBUSY
    return isinstance(exc, PermissionError) or exc.errno in (errno.EBUSY, errno.EACCES)


class ExcelExporter:
    name = "excel"

    def __init__(self, config: SyncConfig):
        self.path = os.path.abspath(config.excel_export_path)

    def export(self, items: List[RequestItem], now: Optional[pd.Timestamp] = None) -> AdapterResult:
        df = pd.DataFrame(items_to_rows(items, now), columns=EXCEL_COLUMNS)
        try:
            df.to_excel(self.path, sheet_name=SHEET_NAME, index=False, engine="openpyxl")
        except OSError as e:
            if _is_lock_error(e):
                monitoring.logger.warning("Export target is locked", extra={"path": self.path, "error": str(e)})
                return AdapterResult.failure(
                    E_LOCKED, "The Excel file is currently open. Please close it and try again."
                )
            monitoring.logger.exception("Excel export failed", extra={"path": self.path})
            return AdapterResult.failure(E_IO, f"Failed to write workbook: {e}")
        except ValueError as e:
            monitoring.logger.exception("Excel export failed", extra={"path": self.path})
            return AdapterResult.failure(E_IO, f"Failed to write workbook: {e}")

        monitoring.logger.info("Exported requests to workbook", extra={"path": self.path, "count": len(items)})
        return AdapterResult.success(len(items))


def _cell_text(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def _cell_date(value: Any) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, (int, float)):
        return to_iso((_EXCEL_EPOCH + pd.to_timedelta(float(value), unit="D")).tz_localize("UTC"))
    ts = parse_date(value)
    return to_iso(ts) if ts is not None else None


def _cell_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def read_workbook(path: str) -> List[Dict[str, Any]]:
    """
    Read the first sheet of a tracker workbook into raw records.

    Rows without a Patreon Name, and repeated header rows, are skipped.
    Raises OSError/ValueError when the file cannot be read.
    """
    df = pd.read_excel(path, sheet_name=0, engine="openpyxl", dtype=object)
    records: List[Dict[str, Any]] = []
    for row in df.to_dict(orient="records"):
        name = _cell_text(row.get("Patreon Name"))
        if not name or name == "Patreon Name":
            continue
        records.append({
            "id": _cell_text(row.get("Request ID")) or uuid.uuid4().hex[:8],
            "patreonName": name,
            "tier": _cell_text(row.get("Tier")) or "Basic",
            "characterName": _cell_text(row.get("Character Name")) or "Unknown",
            "origin": _cell_text(row.get("Origin")),
            "requestType": _cell_text(row.get("Request Type")) or "Portrait",
            "status": _cell_text(row.get("Status")) or "Pending",
            "priority": _cell_text(row.get("Priority")) or "Normal",
            "dateRequested": _cell_date(row.get("Date Requested")),
            "dateStarted": _cell_date(row.get("Date Started")),
            "dateCompleted": _cell_date(row.get("Date Completed")),
            "revisionCount": _cell_int(row.get("Revision Count")),
            "notes": _cell_text(row.get("Notes")),
        })
    return records
