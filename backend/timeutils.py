"""Timezone and clock-time helpers shared by the metrics derivation and exports."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from .config import DISPLAY_TIMEZONE

UTC_TIMEZONE = timezone.utc
# Clock times are compared on this day so only the time of day matters.
REFERENCE_DAY = date(1970, 1, 1)

CLOCK_FORMAT = "%I:%M:%S %p"
DATE_FORMAT = "%m/%d/%Y"


@lru_cache(maxsize=1)
def display_zone() -> ZoneInfo:
    """Return the configured display timezone."""
    return ZoneInfo(DISPLAY_TIMEZONE)


def to_display(value: datetime) -> datetime:
    """Convert a timestamp to the display timezone, assuming UTC for naive values."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC_TIMEZONE)
    return value.astimezone(display_zone())


def clock_time(value: datetime) -> time:
    """Return the wall-clock time of ``value`` in the display timezone."""
    return to_display(value).time()


def clock_duration(start: datetime, end: datetime) -> timedelta:
    """Return ``end - start`` using clock time only.

    Both values are placed on the same reference day, so a session that
    crosses midnight yields a negative duration.
    """
    anchored_start = datetime.combine(REFERENCE_DAY, clock_time(start))
    anchored_end = datetime.combine(REFERENCE_DAY, clock_time(end))
    return anchored_end - anchored_start


def format_clock(value: datetime) -> str:
    """Render a timestamp as a 12-hour clock string in the display timezone."""
    return to_display(value).strftime(CLOCK_FORMAT)


def format_date(value: date) -> str:
    """Render a calendar date the way the dashboard tables show it."""
    return value.strftime(DATE_FORMAT)


def format_duration(span: timedelta) -> str:
    """Render a duration as ``H:MM:SS`` with a leading minus for negative spans."""
    total = int(span.total_seconds())
    sign = "-" if total < 0 else ""
    hours, remainder = divmod(abs(total), 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{sign}{hours}:{minutes:02d}:{seconds:02d}"
