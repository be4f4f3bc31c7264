"""UTC time helpers for SRS scheduling.

All ISO strings produced by this module are UTC and end with 'Z', with second precision:
YYYY-MM-DDTHH:MM:SSZ

Scheduling works at second granularity, so every timestamp that enters a
CardState goes through normalize_utc() first.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

MINUTES_PER_DAY = 1440


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)


def utc_now() -> datetime:
    """Return timezone-aware UTC 'now', truncated to whole seconds."""
    return normalize_utc(datetime.now(timezone.utc))


def normalize_utc(dt: datetime) -> datetime:
    """Convert to aware UTC and drop sub-second precision.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=0)


def utc_datetime_to_iso_z(dt: datetime) -> str:
    """Format a datetime as UTC ISO string with second precision and trailing 'Z'."""
    return normalize_utc(dt).isoformat().replace("+00:00", "Z")


def parse_iso_z(s: str) -> datetime:
    """Parse an ISO-8601 string ending with 'Z' (or '+00:00') into UTC datetime.

    Accepts both second precision and fractional seconds; the result is
    truncated to whole seconds.
    """
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return normalize_utc(datetime.fromisoformat(s))


def days_to_minutes(days: float) -> int:
    return round_half_up(days * MINUTES_PER_DAY)


def minutes_to_days(minutes: float) -> float:
    return minutes / MINUTES_PER_DAY


def add_minutes(now: datetime, minutes: int) -> datetime:
    return now + timedelta(minutes=minutes)


def add_days(now: datetime, days: int) -> datetime:
    return now + timedelta(days=days)
