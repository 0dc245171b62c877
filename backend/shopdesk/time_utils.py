from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


RANGE_PRESETS = ("all", "today", "week", "month", "quarter")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_range_end(value: Optional[str]) -> Optional[datetime]:
    """
    Parse the upper bound of a date range.

    A bare date ("YYYY-MM-DD") means the last instant of that day, so the
    whole end day is included. Anything with a time part parses as usual.
    """
    dt = parse_iso_datetime(value)
    if dt is not None and len(value.strip()) <= 10:
        return dt + timedelta(days=1, microseconds=-1)
    return dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def _months_back(dt: datetime, months: int) -> datetime:
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp the day so Mar 31 -> Feb 28/29
    next_month = datetime(year + (month // 12), (month % 12) + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def range_start(preset: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Start of a named reporting window, or None for "all".

    - today:   midnight of the current day
    - week:    seven days back
    - month:   one calendar month back
    - quarter: three calendar months back
    """
    if preset not in RANGE_PRESETS:
        raise ValueError(f"range must be one of: {', '.join(RANGE_PRESETS)}")
    now = now or utcnow()
    if preset == "all":
        return None
    if preset == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if preset == "week":
        return now - timedelta(days=7)
    if preset == "month":
        return _months_back(now, 1)
    return _months_back(now, 3)
