# tracker/processors/normalizer.py
"""
Request normalizer.

Functions:
- normalize_request(raw, position_index, now=None, vocabulary=None) -> RequestItem
- normalize_requests(raws, now=None, vocabulary=None) -> list[RequestItem]
- merge_patch(record, patch) -> RequestItem

Inputs:
- raw: camelCase mapping produced by any source adapter (sheet row, CSV row,
  cached entry), or an already-normalized RequestItem
- now: reference time for daysSinceRequest (defaults to the current UTC time)

Guarantees:
- every field is filled with a stable default
- an id supplied by the source is never replaced
- normalizing a normalized record with the same `now` changes nothing
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from tracker.schemas import RequestItem, RequestPatch, Vocabulary, PRIORITIES

PRIORITY_BY_TIER = {"VIP": "High", "Premium": "Medium", "Standard": "Normal", "Basic": "Low"}

_DEFAULT_VOCABULARY = Vocabulary.default()
_SECONDS_PER_DAY = 86400
# fields a patch may clear by sending null
_NULLABLE_FIELDS = {"date_started", "date_completed"}

RawRecord = Union[Mapping[str, Any], RequestItem]


def utc_now() -> pd.Timestamp:
    return pd.Timestamp(datetime.now(timezone.utc))


def to_iso(ts: pd.Timestamp) -> str:
    """Millisecond ISO-8601 in UTC with a trailing Z."""
    return ts.tz_convert("UTC").strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def as_utc_timestamp(value: Optional[Union[datetime, pd.Timestamp]]) -> pd.Timestamp:
    if value is None:
        return utc_now()
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts


def parse_date(value: Any) -> Optional[pd.Timestamp]:
    """Parse a date-ish value to a UTC timestamp; date-only strings are midnight UTC."""
    if value is None:
        return None
    if isinstance(value, (datetime, pd.Timestamp)):
        return as_utc_timestamp(value)
    text = str(value).strip()
    if not text:
        return None
    ts = pd.to_datetime(text, errors="coerce", utc=True)
    if ts is None or pd.isna(ts):
        return None
    return ts


def days_since(requested: pd.Timestamp, now: pd.Timestamp) -> int:
    elapsed = (now - requested).total_seconds()
    return max(0, math.floor(elapsed / _SECONDS_PER_DAY))


def priority_from_tier(tier: str) -> Optional[str]:
    """Priority implied by a tier, or None when the tier has no mapping."""
    return PRIORITY_BY_TIER.get(tier)


def resolve_priority(existing: Any, tier: str) -> str:
    if existing in PRIORITIES:
        return existing
    return priority_from_tier(tier) or "Normal"


def _pick(data: Mapping[str, Any], alias: str, name: Optional[str] = None) -> Any:
    if alias in data:
        return data[alias]
    if name and name in data:
        return data[name]
    return None


def _text(value: Any, strip: bool = True) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    text = str(value)
    return text.strip() if strip else text


def _optional_date(value: Any) -> Optional[str]:
    text = _text(value)
    if not text or parse_date(text) is None:
        return None
    return text


def _count(value: Any) -> int:
    try:
        n = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, n)


def normalize_request(
    raw: RawRecord,
    position_index: int,
    now: Optional[Union[datetime, pd.Timestamp]] = None,
    vocabulary: Optional[Vocabulary] = None,
) -> RequestItem:
    data: Dict[str, Any] = raw.to_wire() if isinstance(raw, RequestItem) else dict(raw or {})
    vocab = vocabulary or _DEFAULT_VOCABULARY
    now_ts = as_utc_timestamp(now)

    date_requested = _text(_pick(data, "dateRequested", "date_requested"))
    requested_ts = parse_date(date_requested)
    if requested_ts is None:
        requested_ts = now_ts
        date_requested = to_iso(now_ts)

    tier = vocab.tiers.coerce(_pick(data, "tier"))

    return RequestItem(
        id=_text(_pick(data, "id")) or f"req-{position_index}",
        patreon_name=_text(_pick(data, "patreonName", "patreon_name")) or "Unknown",
        tier=tier,
        character_name=_text(_pick(data, "characterName", "character_name")),
        origin=_text(_pick(data, "origin")),
        request_type=vocab.request_types.coerce(_pick(data, "requestType", "request_type")),
        status=vocab.statuses.coerce(_pick(data, "status")),
        priority=resolve_priority(_pick(data, "priority"), tier),
        date_requested=date_requested,
        date_started=_optional_date(_pick(data, "dateStarted", "date_started")),
        date_completed=_optional_date(_pick(data, "dateCompleted", "date_completed")),
        revision_count=_count(_pick(data, "revisionCount", "revision_count")),
        notes=_text(_pick(data, "notes"), strip=False),
        details=_text(_pick(data, "details"), strip=False),
        days_since_request=days_since(requested_ts, now_ts),
    )


def normalize_requests(
    raws: Iterable[RawRecord],
    now: Optional[Union[datetime, pd.Timestamp]] = None,
    vocabulary: Optional[Vocabulary] = None,
) -> List[RequestItem]:
    now_ts = as_utc_timestamp(now)
    return [normalize_request(r, i, now=now_ts, vocabulary=vocabulary) for i, r in enumerate(raws)]


def merge_patch(
    record: RequestItem,
    patch: Union[RequestPatch, Mapping[str, Any]],
    now: Optional[Union[datetime, pd.Timestamp]] = None,
) -> RequestItem:
    """
    Apply a partial update. Fields absent from the patch keep their exact
    previous value; the id is never patched.
    """
    if not isinstance(patch, RequestPatch):
        patch = RequestPatch.model_validate(dict(patch))
    changes = {
        k: v for k, v in patch.changes().items()
        if v is not None or k in _NULLABLE_FIELDS
    }
    if not changes:
        return record.model_copy()

    now_ts = as_utc_timestamp(now)
    if "date_requested" in changes:
        requested_ts = parse_date(changes["date_requested"])
        if requested_ts is None:
            requested_ts = now_ts
            changes["date_requested"] = to_iso(now_ts)
        changes["days_since_request"] = days_since(requested_ts, now_ts)
    for name in _NULLABLE_FIELDS & changes.keys():
        changes[name] = _optional_date(changes[name])
    return record.model_copy(update=changes)
