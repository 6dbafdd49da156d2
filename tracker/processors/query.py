# tracker/processors/query.py
"""Table-view filtering and ordering for the request list."""

from typing import Iterable, List, Optional

from tracker.schemas import RequestItem
from tracker.processors.normalizer import parse_date

BOARD_ORDER = {"In Progress": 0, "Waiting Feedback": 1, "Not Started": 2, "Not Doing": 3, "Done": 4}
_UNRANKED = 99


def filter_requests(
    items: Iterable[RequestItem],
    q: Optional[str] = None,
    statuses: Optional[List[str]] = None,
    types: Optional[List[str]] = None,
) -> List[RequestItem]:
    result = list(items)
    if statuses:
        result = [i for i in result if i.status and i.status in statuses]
    if types:
        result = [i for i in result if i.request_type and i.request_type in types]
    query = (q or "").strip().lower()
    if query:
        result = [
            i for i in result
            if query in i.patreon_name.lower() or query in i.character_name.lower()
        ]
    return result


def sort_for_board(items: Iterable[RequestItem]) -> List[RequestItem]:
    """Board status order, then oldest request first; unknown statuses go last."""
    def key(item: RequestItem):
        ts = parse_date(item.date_requested)
        return (BOARD_ORDER.get(item.status, _UNRANKED), ts.value if ts is not None else 0)
    return sorted(items, key=key)
