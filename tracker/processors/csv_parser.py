# tracker/processors/csv_parser.py
"""
Parser for the published-CSV export of the request sheet.

The export is small and its quoting is predictable, so rows are split with a
single-pass scanner rather than a general CSV dialect:
- fields may be wrapped in double quotes
- commas inside quotes do not split
- "" inside a quoted field is a literal quote
- surrounding whitespace on each field is trimmed

Column order: Patreon Name, Tier, Request Date, Character Name, Origin, Type,
Status, Notes.
"""

from typing import Any, Dict, List, Optional

from tracker import monitoring

MIN_COLUMNS = 7

COLUMNS = ["patreonName", "tier", "dateRequested", "characterName", "origin", "requestType", "status", "notes"]


def parse_csv_line(line: str) -> List[str]:
    values: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    values.append("".join(current).strip())
    return values


def row_to_record(values: List[str]) -> Optional[Dict[str, Any]]:
    """Map parsed values to a raw record; None for malformed rows."""
    if len(values) < MIN_COLUMNS or not values[0]:
        return None
    record: Dict[str, Any] = {}
    for idx, key in enumerate(COLUMNS):
        record[key] = values[idx] if idx < len(values) else ""
    return record


def parse_csv(csv_text: str) -> List[Dict[str, Any]]:
    """
    Parse the whole document, skipping the header line.

    Malformed rows are dropped individually; the rest of the batch is kept.
    """
    lines = csv_text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    records: List[Dict[str, Any]] = []
    dropped = 0
    for line in lines[1:]:
        if not line.strip() or line.startswith(","):
            continue
        record = row_to_record(parse_csv_line(line))
        if record is None:
            dropped += 1
            continue
        records.append(record)
    if dropped:
        monitoring.logger.info("Skipped malformed CSV rows", extra={"dropped": dropped, "kept": len(records)})
    return records
