from __future__ import annotations

from datetime import date, time
from enum import IntEnum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Weekday(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


def weekday_of(day: date) -> Weekday:
    """Map a calendar date onto the Sunday-first weekday index."""

    return Weekday((day.weekday() + 1) % 7)


class TimeWindow(BaseModel):
    start: time
    end: time

    @model_validator(mode="after")
    def validate_order(self) -> "TimeWindow":
        if self.end <= self.start:
            raise ValueError("break end must be after its start")
        return self


class DaySchedule(BaseModel):
    """Operating hours of one weekday."""

    open: Optional[time] = None
    close: Optional[time] = None
    is_open: bool = False
    is_arrival_order: bool = False
    breaks: List[TimeWindow] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_hours(self) -> "DaySchedule":
        if not self.is_open:
            return self
        if self.open is None or self.close is None:
            raise ValueError("open and close are required when the day is open")
        if self.close <= self.open:
            raise ValueError("close must be after open")
        return self


CLOSED_DAY = DaySchedule(is_open=False)


class WeeklySchedule(BaseModel):
    """Seven day entries indexed by ``Weekday``; ``None`` means no entry."""

    days: List[Optional[DaySchedule]] = Field(
        default_factory=lambda: [None] * 7, min_length=7, max_length=7
    )

    def for_day(self, weekday: Weekday) -> Optional[DaySchedule]:
        return self.days[int(weekday)]

    @classmethod
    def from_days(cls, **entries: DaySchedule) -> "WeeklySchedule":
        """Build a schedule from keyword weekday names, e.g. ``monday=...``."""

        days: List[Optional[DaySchedule]] = [None] * 7
        for name, entry in entries.items():
            days[int(Weekday[name.upper()])] = entry
        return cls(days=days)


class VenueSettings(BaseModel):
    slot_interval: int = Field(30, ge=1, description="Minutes between candidate start times")
    appointment_buffer: int = Field(0, ge=0, description="Idle minutes kept after each appointment")
    min_notice_minutes: int = Field(60, ge=0, description="Minimum lead time before a slot")
    max_future_days: int = Field(30, ge=0, description="Furthest bookable day from today")


class Venue(BaseModel):
    venue_id: str
    name: str
    working_hours: WeeklySchedule = Field(default_factory=WeeklySchedule)
    settings: VenueSettings = Field(default_factory=VenueSettings)


class Professional(BaseModel):
    professional_id: str
    venue_id: str
    name: str
    working_hours: Optional[WeeklySchedule] = None


class Service(BaseModel):
    service_id: str
    venue_id: str
    name: str
    duration_minutes: int = Field(..., gt=0)
    price: float = Field(0.0, ge=0)

    @field_validator("name")
    def strip_name(cls, value: str) -> str:
        return value.strip()
