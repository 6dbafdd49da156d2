# tests/test_excel_connector.py
import errno

import pandas as pd
import pytest

from tracker.config import SyncConfig
from tracker.connectors.excel_connector import (
    EXCEL_COLUMNS,
    SHEET_NAME,
    ExcelExporter,
    items_to_rows,
    read_workbook,
)
from tracker.processors.normalizer import normalize_requests
from tracker.results import E_IO, E_LOCKED
from tracker.seed_data import IMPORTED_REQUESTS

NOW = pd.Timestamp("2026-01-20T00:00:00Z")


@pytest.fixture
def items():
    raws = [dict(r) for r in IMPORTED_REQUESTS]
    raws[0]["tier"] = "VIP"
    raws[1]["status"] = "Done"
    return normalize_requests(raws, now=NOW)


def test_items_to_rows_derived_columns(items):
    rows = items_to_rows(items, NOW)
    first = rows[0]
    assert first["Request ID"] == "dummy-1"
    assert first["Days Waiting"] == 21
    assert first["SLA (Days)"] == 2
    assert first["Overdue?"] == "Yes"
    # closed requests are never overdue
    assert rows[1]["Overdue?"] == "No"
    # 2026-01-15 is 5 days back, exactly the default SLA
    assert rows[4]["Days Waiting"] == 5
    assert rows[4]["Overdue?"] == "No"


def test_export_writes_requests_sheet(tmp_path, items):
    path = tmp_path / "Character Request Tracker - redesigned.xlsx"
    result = ExcelExporter(SyncConfig(excel_export_path=str(path))).export(items, NOW)
    assert result.ok
    assert result.value == 5

    df = pd.read_excel(path, sheet_name=SHEET_NAME)
    assert list(df.columns) == EXCEL_COLUMNS
    assert len(df) == 5
    assert df.loc[4, "Notes"] == "High detail required"


def test_export_locked_file(monkeypatch, tmp_path, items):
    def locked(self, *args, **kwargs):
        raise PermissionError(errno.EACCES, "Permission denied", str(tmp_path / "t.xlsx"))

    monkeypatch.setattr(pd.DataFrame, "to_excel", locked)
    result = ExcelExporter(SyncConfig(excel_export_path=str(tmp_path / "t.xlsx"))).export(items, NOW)
    assert not result.ok
    assert result.error_code == E_LOCKED
    assert "close it" in result.message


def test_export_other_os_error_is_io(tmp_path, items):
    missing_dir = tmp_path / "no-such-dir" / "t.xlsx"
    result = ExcelExporter(SyncConfig(excel_export_path=str(missing_dir))).export(items, NOW)
    assert not result.ok
    assert result.error_code == E_IO


def test_export_missing_directory_message_is_not_a_lock(monkeypatch, tmp_path, items):
    def missing_parent(self, *args, **kwargs):
        raise OSError("Cannot save file into a non-existent directory: 'exports'")

    monkeypatch.setattr(pd.DataFrame, "to_excel", missing_parent)
    result = ExcelExporter(SyncConfig(excel_export_path=str(tmp_path / "t.xlsx"))).export(items, NOW)
    assert not result.ok
    assert result.error_code == E_IO
    assert "non-existent directory" in result.message


def test_export_busy_file_is_locked(monkeypatch, tmp_path, items):
    def busy(self, *args, **kwargs):
        raise OSError(errno.EBUSY, "Device or resource busy")

    monkeypatch.setattr(pd.DataFrame, "to_excel", busy)
    result = ExcelExporter(SyncConfig(excel_export_path=str(tmp_path / "t.xlsx"))).export(items, NOW)
    assert result.error_code == E_LOCKED


def test_read_workbook_defaults_and_serial_dates(tmp_path):
    path = tmp_path / "seed.xlsx"
    pd.DataFrame([
        {"Patreon Name": "alice", "Tier": "VIP", "Character Name": "Rem", "Date Requested": 45658,
         "Revision Count": 2, "Notes": "n"},
        {"Patreon Name": None, "Tier": "Basic", "Character Name": "ghost", "Date Requested": None,
         "Revision Count": None, "Notes": None},
        {"Patreon Name": "bob", "Tier": None, "Character Name": None, "Date Requested": "2026-01-05",
         "Revision Count": "x", "Notes": None},
    ]).to_excel(path, index=False, engine="openpyxl")

    records = read_workbook(str(path))
    assert [r["patreonName"] for r in records] == ["alice", "bob"]

    alice, bob = records
    assert alice["dateRequested"] == "2025-01-01T00:00:00.000Z"
    assert alice["revisionCount"] == 2
    assert alice["requestType"] == "Portrait"
    assert alice["status"] == "Pending"
    assert len(alice["id"]) == 8

    assert bob["tier"] == "Basic"
    assert bob["characterName"] == "Unknown"
    assert bob["revisionCount"] == 0
    assert bob["dateRequested"].startswith("2026-01-05")
