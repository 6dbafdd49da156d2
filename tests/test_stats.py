# tests/test_stats.py
import pandas as pd

from tracker import stats
from tracker.processors.normalizer import normalize_requests
from tracker.processors.query import filter_requests, sort_for_board

NOW = pd.Timestamp("2026-01-20T12:00:00Z")

RAWS = [
    {"id": "a", "patreonName": "Alice", "characterName": "Rem", "tier": "VIP", "status": "Pending",
     "requestType": "Poll", "dateRequested": "2026-01-15"},
    {"id": "b", "patreonName": "Bob", "characterName": "Asuka", "tier": "Basic", "status": "Not Started",
     "requestType": "Not Poll", "dateRequested": "2026-01-01"},
    {"id": "c", "patreonName": "Carol", "characterName": "Makima", "tier": "Premium", "status": "In Progress",
     "requestType": "Poll", "dateRequested": "2026-01-19"},
    {"id": "d", "patreonName": "Dave", "characterName": "Rei", "tier": "", "status": "Done",
     "requestType": "Poll", "dateRequested": "2026-01-02", "dateCompleted": "2026-01-18"},
    {"id": "e", "patreonName": "Erin", "characterName": "Frieren", "tier": "Standard", "status": "Waiting Feedback",
     "requestType": "Not Poll", "dateRequested": "2026-01-19"},
    {"id": "f", "patreonName": "Frank", "characterName": "Zero Two", "tier": "VIP", "status": "Not Doing",
     "requestType": "Poll", "dateRequested": "2025-11-01"},
]


def items():
    return normalize_requests(RAWS, now=NOW)


def test_days_between_and_sla():
    assert stats.days_between("2026-01-10", NOW) == 10
    assert stats.days_between("", NOW) == 0
    assert stats.sla_days("VIP") == 2
    assert stats.sla_days("Premium") == 3
    assert stats.sla_days("Tier 4") == 5


def test_compute_metrics_recognises_both_vocabularies():
    metrics = stats.compute_metrics(items(), NOW)
    assert metrics == {
        "pending": 2,
        "inProgress": 1,
        "waiting": 1,
        "completed7d": 1,
        "overdue": 2,
    }


def test_next_up_order():
    queue = stats.next_up(items(), NOW)
    # closed requests (Done, Not Doing) are excluded
    assert [e["id"] for e in queue] == ["a", "b", "c", "e"]
    assert queue[0]["overdue"] is True
    assert queue[0]["tierScore"] == 4


def test_count_by_uses_unknown_for_blank():
    by_tier = {e["name"]: e["value"] for e in stats.count_by(items(), "tier")}
    assert by_tier["VIP"] == 2
    assert by_tier["Unknown"] == 1
    assert stats.count_by([], "tier") == []


def test_weekly_counts_cover_last_seven_days():
    weekly = stats.weekly_counts(items(), NOW)
    assert [w["name"] for w in weekly][0] == "2026-01-14"
    assert [w["name"] for w in weekly][-1] == "2026-01-20"
    counts = {w["name"]: w["value"] for w in weekly}
    assert counts["2026-01-19"] == 2
    assert counts["2026-01-15"] == 1
    assert sum(counts.values()) == 3


def test_build_analytics_keys():
    result = stats.build_analytics(items(), NOW)
    assert set(result) == {"summary", "metrics", "byStatus", "byTier", "weekly", "nextUp"}
    assert result["summary"] == {"total": 6, "completed": 1, "inProgress": 1, "pending": 2}


def test_filter_requests():
    data = items()
    assert [i.id for i in filter_requests(data, q="REI")] == ["d"]
    assert [i.id for i in filter_requests(data, q="erin")] == ["e"]
    assert [i.id for i in filter_requests(data, statuses=["Done", "Not Doing"])] == ["d", "f"]
    assert [i.id for i in filter_requests(data, types=["Not Poll"], q="b")] == ["b"]
    assert len(filter_requests(data)) == 6


def test_sort_for_board():
    ordered = sort_for_board(items())
    assert [i.id for i in ordered] == ["c", "e", "b", "f", "d", "a"]
