"""Time range helpers shared by every scheduling computation.

Ranges are half-open: ``[start, end)``. Two ranges that only touch at a
boundary instant do not overlap.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    return start_a < end_b and end_a > start_b


def at(day: date, clock_time: time) -> datetime:
    return datetime.combine(day, clock_time)


def plus_minutes(moment: datetime, minutes: int) -> datetime:
    return moment + timedelta(minutes=minutes)


def format_clock(moment: datetime | time) -> str:
    return moment.strftime("%H:%M")


def venue_clock(timezone_name: str) -> Clock:
    """Return a clock producing naive wall-clock times of the venue's zone."""

    zone = ZoneInfo(timezone_name)

    def now() -> datetime:
        return datetime.now(zone).replace(tzinfo=None, second=0, microsecond=0)

    return now
