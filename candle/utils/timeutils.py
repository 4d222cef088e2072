"""Timestamp helpers. Documents store UTC ISO-8601 strings."""

from datetime import datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def parse_iso(value: Union[str, datetime]) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def whole_hours_between(start: datetime, end: datetime) -> int:
    """Whole hours from start to end, truncated toward zero."""
    return int((end - start).total_seconds() / 3600)


def whole_minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int((end - start).total_seconds() / 60)


def to_millis(value: Union[str, datetime]) -> int:
    return int(parse_iso(value).timestamp() * 1000)


def is_same_day(a: datetime, b: datetime, tz_name: Optional[str] = None) -> bool:
    """Calendar-day equality in the given timezone (UTC by default)."""
    tz = ZoneInfo(tz_name) if tz_name and tz_name.upper() != "UTC" else timezone.utc
    return a.astimezone(tz).date() == b.astimezone(tz).date()
