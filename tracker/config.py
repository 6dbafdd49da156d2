# tracker/config.py
"""
Sync configuration.

Every adapter receives a SyncConfig at construction instead of reading
module-level constants, so several independent trackers (and tests) can live
in one process.

Env vars:
- GOOGLE_SPREADSHEET_ID, GOOGLE_SHEET_TITLE
- GOOGLE_CLIENT_EMAIL, GOOGLE_PRIVATE_KEY (escaped "\\n" allowed)
- GOOGLE_SERVICE_ACCOUNT_FILE (alternative to the two above)
- GOOGLE_SHEETS_CSV_URL, CSV_TIMEOUT_SECONDS (default: 20)
- EXCEL_EXPORT_PATH (default: "Character Request Tracker - redesigned.xlsx")
- SEED_EXCEL_PATH (optional workbook used instead of the embedded seed list)
- LOCAL_STORAGE_KEY (default: patreon_request_tracker_v1)
- DATABASE_URL (default: sqlite:///./request_tracker.db), client cache table
- REDIS_URL (optional; client cache in Redis instead of DATABASE_URL)
- EXTRA_TIERS, EXTRA_STATUSES, EXTRA_REQUEST_TYPES (comma-separated)
- STRICT_OPTIONS (default: false)
"""

import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_STORAGE_KEY = "patreon_request_tracker_v1"
DEFAULT_SHEET_TITLE = "Character Request Tracker"
DEFAULT_EXCEL_FILE = "Character Request Tracker - redesigned.xlsx"


def _split_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [v.strip() for v in raw.split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class SyncConfig:
    spreadsheet_id: str = ""
    sheet_title: str = DEFAULT_SHEET_TITLE
    client_email: str = ""
    private_key: str = ""
    service_account_file: str = ""
    csv_url: str = ""
    csv_timeout_s: float = 20.0
    excel_export_path: str = DEFAULT_EXCEL_FILE
    seed_excel_path: str = ""
    storage_key: str = DEFAULT_STORAGE_KEY
    database_url: str = "sqlite:///./request_tracker.db"
    redis_url: str = ""
    extra_tiers: List[str] = field(default_factory=list)
    extra_statuses: List[str] = field(default_factory=list)
    extra_request_types: List[str] = field(default_factory=list)
    strict_options: bool = False

    @property
    def sheets_configured(self) -> bool:
        return bool(self.spreadsheet_id)

    @property
    def csv_configured(self) -> bool:
        return bool(self.csv_url)

    @classmethod
    def from_env(cls) -> "SyncConfig":
        return cls(
            spreadsheet_id=os.getenv("GOOGLE_SPREADSHEET_ID", "").strip(),
            sheet_title=os.getenv("GOOGLE_SHEET_TITLE", DEFAULT_SHEET_TITLE),
            client_email=os.getenv("GOOGLE_CLIENT_EMAIL", "").strip(),
            # keys pasted into .env usually carry literal "\n" sequences
            private_key=os.getenv("GOOGLE_PRIVATE_KEY", "").replace("\\n", "\n"),
            service_account_file=os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE", "").strip(),
            csv_url=os.getenv("GOOGLE_SHEETS_CSV_URL", "").strip(),
            csv_timeout_s=float(os.getenv("CSV_TIMEOUT_SECONDS", "20")),
            excel_export_path=os.getenv("EXCEL_EXPORT_PATH", DEFAULT_EXCEL_FILE),
            seed_excel_path=os.getenv("SEED_EXCEL_PATH", "").strip(),
            storage_key=os.getenv("LOCAL_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./request_tracker.db"),
            redis_url=os.getenv("REDIS_URL", "").strip(),
            extra_tiers=_split_env("EXTRA_TIERS"),
            extra_statuses=_split_env("EXTRA_STATUSES"),
            extra_request_types=_split_env("EXTRA_REQUEST_TYPES"),
            strict_options=_flag("STRICT_OPTIONS"),
        )
