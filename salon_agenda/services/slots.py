from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterator, List

from salon_agenda.schemas.availability import ArrivalOrder, AvailabilityResponse, AvailableSlots
from salon_agenda.services.conflicts import ConflictChecker, DayAgenda
from salon_agenda.services.intervals import Clock, format_clock, plus_minutes

logger = logging.getLogger(__name__)


def candidate_starts(agenda: DayAgenda, duration_minutes: int, interval_minutes: int) -> Iterator[datetime]:
    """Every ``interval_minutes`` boundary from opening while the service still fits."""

    step = timedelta(minutes=interval_minutes)
    current = agenda.opens_at
    latest = agenda.closes_at - timedelta(minutes=duration_minutes)
    while current <= latest:
        yield current
        current += step


def covers_operating_window(agenda: DayAgenda) -> bool:
    return any(
        block.start_time <= agenda.opens_at and block.end_time >= agenda.closes_at
        for block in agenda.arrival_order_blocks()
    )


class SlotGenerator:
    """List bookable start times for a professional on a day.

    The result is one of three outcomes: slots, no slots (an empty
    ``AvailableSlots``), or ``ArrivalOrder`` when the day is served walk-in
    only. Nothing is cached; identical inputs over unchanged data give
    identical output.
    """

    def __init__(self, checker: ConflictChecker, *, clock: Clock) -> None:
        self._checker = checker
        self._clock = clock

    async def generate(
        self,
        venue_id: str,
        professional_id: str,
        day: date,
        total_duration_minutes: int,
    ) -> AvailabilityResponse:
        venue, professional = self._checker.resolve(venue_id, professional_id)
        agenda = await self._checker.load_day(venue, professional, day)

        if agenda.schedule.is_arrival_order:
            return ArrivalOrder()
        if not agenda.schedule.is_open:
            return AvailableSlots()
        if covers_operating_window(agenda):
            return ArrivalOrder()

        settings = venue.settings
        now = self._clock()
        if day > now.date() + timedelta(days=settings.max_future_days):
            logger.debug("Date %s is beyond the %s day booking horizon", day, settings.max_future_days)
            return AvailableSlots()
        earliest = plus_minutes(now, settings.min_notice_minutes)

        slots: List[str] = []
        for start in candidate_starts(agenda, total_duration_minutes, settings.slot_interval):
            if start < earliest:
                continue
            end = plus_minutes(start, total_duration_minutes)
            if agenda.conflict(start, end) is None:
                slots.append(format_clock(start))
        return AvailableSlots(slots=slots)
