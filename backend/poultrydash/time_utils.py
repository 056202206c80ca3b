from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


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


def local_date(dt: datetime, tz_name: Optional[str] = None) -> date:
    """
    Calendar date of a UTC(-naive) datetime as seen in the farm timezone.

    Naive datetimes are treated as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if tz_name and tz_name.upper() != "UTC":
        return dt.astimezone(ZoneInfo(tz_name)).date()
    return dt.astimezone(timezone.utc).date()


def current_age_days(start_date: datetime, now: datetime, tz_name: Optional[str] = None) -> int:
    """
    Age of a cycle in days, counting the start day as day 1.

    Both instants are truncated to midnight in the farm timezone before
    subtracting, so the result only changes when a calendar day boundary is
    crossed, never with the hour at which the sync happens to run.
    """
    elapsed = local_date(now, tz_name) - local_date(start_date, tz_name)
    return elapsed.days + 1


def backdated_start(now: datetime, age: int, tz_name: Optional[str] = None) -> datetime:
    """
    Start date for a cycle reported as already `age` days old on `now`.

    Steps back `age - 1` calendar days on the farm's wall clock, so the local
    start date is right even when a DST change falls inside the span.
    """
    if age <= 1:
        return now
    if not tz_name or tz_name.upper() == "UTC":
        return now - timedelta(days=age - 1)

    zone = ZoneInfo(tz_name)
    local_now = now.replace(tzinfo=timezone.utc).astimezone(zone)
    local_start = (local_now.replace(tzinfo=None) - timedelta(days=age - 1)).replace(tzinfo=zone)
    return local_start.astimezone(timezone.utc).replace(tzinfo=None)
