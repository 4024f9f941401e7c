from __future__ import annotations

from datetime import date
from typing import Optional

from salon_agenda.schemas.scheduling import (
    CLOSED_DAY,
    DaySchedule,
    Professional,
    Venue,
    WeeklySchedule,
    Weekday,
    weekday_of,
)


def resolve_day_schedule(
    venue_hours: Optional[WeeklySchedule],
    professional_hours: Optional[WeeklySchedule],
    weekday: Weekday,
) -> DaySchedule:
    """Return the operating hours that apply to a professional on ``weekday``.

    A professional entry for the day replaces the venue entry as a whole,
    including its breaks and arrival-order flag. Without either entry the day
    is closed.
    """

    if professional_hours is not None:
        entry = professional_hours.for_day(weekday)
        if entry is not None:
            return entry
    if venue_hours is not None:
        entry = venue_hours.for_day(weekday)
        if entry is not None:
            return entry
    return CLOSED_DAY


def effective_schedule(venue: Venue, professional: Professional, day: date) -> DaySchedule:
    return resolve_day_schedule(venue.working_hours, professional.working_hours, weekday_of(day))
