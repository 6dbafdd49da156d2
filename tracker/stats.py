# tracker/stats.py
"""
Dashboard analytics over a normalized request list.

Provides:
- days_between(date_iso, now) / sla_days(tier)
- compute_metrics(items, now) -> KPI counts
- next_up(items, now) -> work queue ordering
- count_by(items, field) -> chart data [{"name", "value"}]
- weekly_counts(items, now) -> requests per day for the last 7 days
- summary(items) / build_analytics(items, now)

Status vocabularies changed over the sheet's lifetime, so both the legacy
("Pending", "Completed", ...) and current ("Not Started", "Done", ...) names
are recognised.
"""

from typing import Any, Dict, List, Optional

import pandas as pd

from tracker.schemas import RequestItem
from tracker.processors.normalizer import parse_date, days_since, as_utc_timestamp

SLA_BY_TIER = {"VIP": 2, "Premium": 3}
DEFAULT_SLA_DAYS = 5
TIER_WEIGHT = {"VIP": 4, "Premium": 3, "Standard": 2, "Basic": 1}

PENDING_STATUSES = {"Pending", "Not Started"}
IN_PROGRESS_STATUSES = {"In Progress"}
WAITING_STATUSES = {"Waiting for Client", "Waiting Feedback"}
COMPLETED_STATUSES = {"Completed", "Done"}
CLOSED_STATUSES = COMPLETED_STATUSES | {"Cancelled", "Not Doing"}


def days_between(date_iso: Optional[str], now: Optional[pd.Timestamp] = None) -> int:
    ts = parse_date(date_iso)
    if ts is None:
        return 0
    return days_since(ts, as_utc_timestamp(now))


def sla_days(tier: str) -> int:
    return SLA_BY_TIER.get(tier, DEFAULT_SLA_DAYS)


def is_overdue(item: RequestItem, now: Optional[pd.Timestamp] = None) -> bool:
    if item.status in CLOSED_STATUSES:
        return False
    return days_between(item.date_requested, now) > sla_days(item.tier)


def _frame(items: List[RequestItem]) -> pd.DataFrame:
    columns = ["id", "status", "tier", "requestType", "dateRequested", "dateCompleted"]
    rows = [{c: item.to_wire().get(c) for c in columns} for item in items]
    return pd.DataFrame(rows, columns=columns)


def compute_metrics(items: List[RequestItem], now: Optional[pd.Timestamp] = None) -> Dict[str, int]:
    now = as_utc_timestamp(now)
    df = _frame(items)
    completed_7d = sum(
        1 for item in items
        if item.status in COMPLETED_STATUSES and item.date_completed
        and days_between(item.date_completed, now) <= 7
    )
    return {
        "pending": int(df["status"].isin(PENDING_STATUSES).sum()),
        "inProgress": int(df["status"].isin(IN_PROGRESS_STATUSES).sum()),
        "waiting": int(df["status"].isin(WAITING_STATUSES).sum()),
        "completed7d": completed_7d,
        "overdue": sum(1 for item in items if is_overdue(item, now)),
    }


def next_up(items: List[RequestItem], now: Optional[pd.Timestamp] = None) -> List[Dict[str, Any]]:
    """Open requests ordered overdue first, then higher tier, then longest waiting."""
    now = as_utc_timestamp(now)
    queue = []
    for item in items:
        if item.status in CLOSED_STATUSES:
            continue
        waiting = days_between(item.date_requested, now)
        entry = item.to_wire()
        entry.update({
            "daysWaiting": waiting,
            "overdue": waiting > sla_days(item.tier),
            "tierScore": TIER_WEIGHT.get(item.tier, 0),
        })
        queue.append(entry)
    return sorted(queue, key=lambda e: (not e["overdue"], -e["tierScore"], -e["daysWaiting"]))


def count_by(items: List[RequestItem], field: str) -> List[Dict[str, Any]]:
    """Chart data grouped by a wire field; blanks count as "Unknown"."""
    values = pd.Series([item.to_wire().get(field) or "Unknown" for item in items], dtype="object")
    if values.empty:
        return []
    counts = values.groupby(values, sort=False).size()
    return [{"name": str(name), "value": int(n)} for name, n in counts.items()]


def weekly_counts(items: List[RequestItem], now: Optional[pd.Timestamp] = None) -> List[Dict[str, Any]]:
    """Requests per calendar day (UTC) for the 7 days ending today."""
    now = as_utc_timestamp(now)
    days = pd.date_range(end=now.normalize(), periods=7, freq="D")
    requested = [parse_date(item.date_requested) for item in items]
    dates = pd.Series([ts.normalize() for ts in requested if ts is not None], dtype="datetime64[ns, UTC]")
    counts = dates.value_counts()
    return [{"name": day.strftime("%Y-%m-%d"), "value": int(counts.get(day, 0))} for day in days]


def summary(items: List[RequestItem]) -> Dict[str, int]:
    df = _frame(items)
    return {
        "total": len(items),
        "completed": int(df["status"].isin(COMPLETED_STATUSES).sum()),
        "inProgress": int(df["status"].isin(IN_PROGRESS_STATUSES).sum()),
        "pending": int(df["status"].isin(PENDING_STATUSES).sum()),
    }


def build_analytics(items: List[RequestItem], now: Optional[pd.Timestamp] = None) -> Dict[str, Any]:
    now = as_utc_timestamp(now)
    return {
        "summary": summary(items),
        "metrics": compute_metrics(items, now),
        "byStatus": count_by(items, "status"),
        "byTier": count_by(items, "tier"),
        "weekly": weekly_counts(items, now),
        "nextUp": next_up(items, now)[:10],
    }
