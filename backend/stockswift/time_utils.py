from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def now_ms() -> int:
    """Current instant as epoch milliseconds (the stored timestamp format)."""
    return int(time.time() * 1000)


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """
    Resolve an IANA zone name. None / "" fall back to UTC.

    Raises ValueError for unknown names so config mistakes fail loudly.
    """
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name}")


def from_ms(value: int, tz: Optional[ZoneInfo] = None) -> datetime:
    """Epoch milliseconds -> aware datetime in tz (UTC when omitted)."""
    dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if tz is not None:
        dt = dt.astimezone(tz)
    return dt


def to_ms(dt: datetime) -> int:
    """Aware datetime -> epoch milliseconds. Naive values are treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def month_bounds_ms(year: int, month: int, tz: ZoneInfo) -> tuple[int, int]:
    """
    Half-open [start, end) millisecond range of a calendar month in tz.

    month is 0-indexed (0 = January).
    """
    start = datetime(year, month + 1, 1, tzinfo=tz)
    if month == 11:
        end = datetime(year + 1, 1, 1, tzinfo=tz)
    else:
        end = datetime(year, month + 2, 1, tzinfo=tz)
    return to_ms(start), to_ms(end)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a calendar date.

    - None / "" -> None
    - "YYYY-MM-DD" -> date
    - a full ISO datetime string is accepted and truncated to its date
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if len(s) > 10:
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        return datetime.fromisoformat(s).date()
    return date.fromisoformat(s)


def to_utc_z(value: Optional[int]) -> Optional[str]:
    """
    Serializes an epoch-millisecond timestamp to ISO-8601 with trailing 'Z'.
    """
    if value is None:
        return None
    dt_utc = from_ms(value).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
