"""
Clock-time and window helpers shared by the sleep engine.

Every instant handled here is a timezone-aware UTC datetime. Schedule clock
times ("HH:MM") are interpreted in the child's IANA zone on the local calendar
day of a reference instant, so DST shifts move the UTC result, not the clock.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.schemas.calculator_schemas import TimeWindow
from app.schemas.common import CLOCK_TIME_PATTERN

UTC = timezone.utc


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to aware UTC; naive values (as read back from sqlite) are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_valid_timezone(name: Optional[str]) -> bool:
    if not name:
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def is_valid_clock_time(value: Optional[str]) -> bool:
    return bool(value) and CLOCK_TIME_PATTERN.match(value) is not None


def parse_time_string(time_str: str, base: datetime, tz_name: str) -> datetime:
    """Resolve "HH:MM" on the local day of ``base`` in ``tz_name`` to a UTC instant."""
    match = CLOCK_TIME_PATTERN.match(time_str or "")
    if not match:
        raise ValueError(f"Invalid clock time '{time_str}', expected HH:MM")

    zone = ZoneInfo(tz_name)
    local_day = as_utc(base).astimezone(zone).date()
    local = datetime(
        local_day.year,
        local_day.month,
        local_day.day,
        int(match.group(1)),
        int(match.group(2)),
        tzinfo=zone,
    )
    return local.astimezone(UTC)


def format_clock(instant: datetime, tz_name: str) -> str:
    return as_utc(instant).astimezone(ZoneInfo(tz_name)).strftime("%H:%M")


def local_day_bounds(reference: datetime, tz_name: str) -> Tuple[datetime, datetime]:
    """UTC start and end of the local calendar day containing ``reference``."""
    zone = ZoneInfo(tz_name)
    local_day = as_utc(reference).astimezone(zone).date()
    start = datetime(local_day.year, local_day.month, local_day.day, tzinfo=zone)
    end = start + timedelta(days=1)
    return start.astimezone(UTC), end.astimezone(UTC)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Whole minutes from start to end, floored. None if either side is missing."""
    if start is None or end is None:
        return None
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return int(seconds // 60)


def add_minutes(instant: datetime, minutes: float) -> datetime:
    return instant + timedelta(minutes=minutes)


def midpoint(start: datetime, end: datetime) -> datetime:
    diff = minutes_between(start, end)
    return add_minutes(start, round_half_up(diff / 2))


def clamp(instant: datetime, earliest: datetime, latest: datetime) -> datetime:
    if earliest > latest:
        return earliest
    if instant < earliest:
        return earliest
    if instant > latest:
        return latest
    return instant


def build_window(
    earliest: datetime,
    latest: datetime,
    recommended: Optional[datetime] = None,
    notes: Optional[List[str]] = None,
    collapse_note: str = "Window collapsed to a single time",
) -> TimeWindow:
    """
    Build a window that always satisfies earliest <= recommended <= latest.
    An inverted range collapses to its earliest bound and records ``collapse_note``.
    """
    if earliest > latest:
        latest = earliest
        if notes is not None:
            notes.append(collapse_note)
    if recommended is None:
        recommended = midpoint(earliest, latest)
    return TimeWindow(
        earliest=earliest,
        latest=latest,
        recommended=clamp(recommended, earliest, latest),
    )


def shift_window(window: TimeWindow, minutes: int) -> TimeWindow:
    return TimeWindow(
        earliest=add_minutes(window.earliest, minutes),
        latest=add_minutes(window.latest, minutes),
        recommended=add_minutes(window.recommended, minutes),
    )


def local_date_bounds(day: date, tz_name: str) -> Tuple[datetime, datetime]:
    """UTC start and end of a local calendar date."""
    zone = ZoneInfo(tz_name)
    start = datetime(day.year, day.month, day.day, tzinfo=zone)
    end = start + timedelta(days=1)
    return start.astimezone(UTC), end.astimezone(UTC)
