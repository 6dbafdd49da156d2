# tracker/seed_data.py
from typing import Any, Dict, List

from tracker import monitoring
from tracker.config import SyncConfig

IMPORTED_REQUESTS: List[Dict[str, Any]] = [
    {
        "id": "dummy-1",
        "patreonName": "naopHASAMI",
        "tier": "Tier 4",
        "status": "In Progress",
        "characterName": "Chisaki Hiradaira",
        "origin": "Nagi no Asu kara",
        "requestType": "Not Poll",
        "priority": "Normal",
        "dateRequested": "2025-12-30",
        "revisionCount": 0,
        "notes": "",
        "details": "",
    },
    {
        "id": "dummy-2",
        "patreonName": "joe su",
        "tier": "Tier 4",
        "status": "In Progress",
        "characterName": "Latticenail",
        "origin": "Ansatsusha de Aru...",
        "requestType": "Not Poll",
        "priority": "Normal",
        "dateRequested": "2026-01-02",
        "revisionCount": 0,
        "notes": "",
        "details": "",
    },
    {
        "id": "dummy-3",
        "patreonName": "SinnamonSymon66",
        "tier": "Tier 4",
        "status": "Not Started",
        "characterName": "Sadayo Kawakami",
        "origin": "Persona 5",
        "requestType": "Not Poll",
        "priority": "Normal",
        "dateRequested": "2026-01-04",
        "revisionCount": 0,
        "notes": "",
        "details": "",
    },
    {
        "id": "dummy-4",
        "patreonName": "Tim Hu",
        "tier": "Tier 4",
        "status": "Not Started",
        "characterName": "Nijika Ijichi",
        "origin": "Bocchi the Rock!",
        "requestType": "Not Poll",
        "priority": "Normal",
        "dateRequested": "2026-01-11",
        "revisionCount": 0,
        "notes": "",
        "details": "",
    },
    {
        "id": "dummy-5",
        "patreonName": "SuperFan99",
        "tier": "Tier 4",
        "status": "In Progress",
        "characterName": "Eldric the Mage",
        "origin": "Original Character",
        "requestType": "Portrait",
        "priority": "Normal",
        "dateRequested": "2026-01-15",
        "revisionCount": 0,
        "notes": "High detail required",
        "details": "",
    },
]


def load_seed(config: SyncConfig) -> List[Dict[str, Any]]:
    """Seed records: the configured tracker workbook if readable, else the embedded list."""
    if config.seed_excel_path:
        from tracker.connectors.excel_connector import read_workbook
        try:
            records = read_workbook(config.seed_excel_path)
            if records:
                return records
        except (OSError, ValueError, KeyError) as e:
            monitoring.logger.warning(
                "Could not read seed workbook, using embedded seed",
                extra={"path": config.seed_excel_path, "error": str(e)},
            )
    return [dict(r) for r in IMPORTED_REQUESTS]
