"""Decide whether a time range can be booked for a professional.

The checks run in a fixed order and stop at the first hit: closed day,
operating hours, breaks, existing appointments, blocks. Operating hours and
breaks are tested against the service time alone; appointments and blocks are
tested with the venue's appointment buffer appended to the candidate, and each
existing appointment is likewise considered busy until its end plus buffer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from salon_agenda.schemas.appointment import Appointment
from salon_agenda.schemas.block import Block, BlockType
from salon_agenda.schemas.scheduling import DaySchedule, Professional, Venue
from salon_agenda.services.exceptions import ValidationError
from salon_agenda.services.intervals import at, overlaps, plus_minutes
from salon_agenda.services.schedule import effective_schedule
from salon_agenda.services.store import (
    AppointmentRepository,
    BlockRepository,
    MasterDataRepository,
)

logger = logging.getLogger(__name__)


class ConflictReason(str, Enum):
    CLOSED = "closed"
    OUTSIDE_HOURS = "outside_hours"
    BREAK = "break"
    APPOINTMENT = "appointment"
    BLOCK = "block"


@dataclass
class DayAgenda:
    """Everything committed for one professional on one day."""

    day: date
    schedule: DaySchedule
    buffer_minutes: int = 0
    appointments: List[Appointment] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)

    @property
    def opens_at(self) -> Optional[datetime]:
        if not self.schedule.is_open:
            return None
        return at(self.day, self.schedule.open)

    @property
    def closes_at(self) -> Optional[datetime]:
        if not self.schedule.is_open:
            return None
        return at(self.day, self.schedule.close)

    def breaks(self) -> List[Tuple[datetime, datetime]]:
        return [(at(self.day, window.start), at(self.day, window.end)) for window in self.schedule.breaks]

    def conflict(self, start: datetime, end: datetime) -> Optional[ConflictReason]:
        if not self.schedule.is_open:
            return ConflictReason.CLOSED
        if start < self.opens_at or end > self.closes_at:
            return ConflictReason.OUTSIDE_HOURS
        for break_start, break_end in self.breaks():
            if overlaps(start, end, break_start, break_end):
                return ConflictReason.BREAK

        buffered_end = plus_minutes(end, self.buffer_minutes)
        for appointment in self.appointments:
            busy_until = plus_minutes(appointment.end_time, self.buffer_minutes)
            if overlaps(start, buffered_end, appointment.start_time, busy_until):
                return ConflictReason.APPOINTMENT
        for block in self.blocks:
            if overlaps(start, buffered_end, block.start_time, block.end_time):
                return ConflictReason.BLOCK
        return None

    def arrival_order_blocks(self) -> List[Block]:
        return [block for block in self.blocks if block.type == BlockType.ARRIVAL_ORDER]


class ConflictChecker:
    def __init__(
        self,
        master_data: MasterDataRepository,
        appointments: AppointmentRepository,
        blocks: BlockRepository,
    ) -> None:
        self._master_data = master_data
        self._appointments = appointments
        self._blocks = blocks

    def resolve(self, venue_id: str, professional_id: str) -> Tuple[Venue, Professional]:
        venue = self._master_data.get_venue(venue_id)
        if venue is None:
            raise ValidationError(f"Venue '{venue_id}' not found")
        professional = self._master_data.get_professional(venue_id, professional_id)
        if professional is None:
            raise ValidationError(f"Professional '{professional_id}' not found in venue '{venue_id}'")
        return venue, professional

    async def load_day(self, venue: Venue, professional: Professional, day: date) -> DayAgenda:
        """Fetch the day's schedule plus every appointment and block that could collide."""

        schedule = effective_schedule(venue, professional, day)
        buffer_minutes = venue.settings.appointment_buffer
        agenda = DayAgenda(day=day, schedule=schedule, buffer_minutes=buffer_minutes)
        if not schedule.is_open:
            return agenda

        margin = timedelta(minutes=buffer_minutes)
        window_start = agenda.opens_at - margin
        window_end = agenda.closes_at + margin
        agenda.appointments = await self._appointments.find_overlapping(
            venue.venue_id, professional.professional_id, window_start, window_end
        )
        agenda.blocks = await self._blocks.find_overlapping(
            venue.venue_id, professional.professional_id, window_start, window_end
        )
        return agenda

    async def check(
        self,
        venue_id: str,
        professional_id: str,
        day: date,
        start: datetime,
        end: datetime,
    ) -> Optional[ConflictReason]:
        venue, professional = self.resolve(venue_id, professional_id)
        agenda = await self.load_day(venue, professional, day)
        reason = agenda.conflict(start, end)
        if reason is not None:
            logger.info(
                "Conflict for professional %s at %s-%s: %s",
                professional_id,
                start.isoformat(),
                end.isoformat(),
                reason.value,
            )
        return reason

    async def has_conflict(
        self,
        venue_id: str,
        professional_id: str,
        day: date,
        start: datetime,
        end: datetime,
    ) -> bool:
        return await self.check(venue_id, professional_id, day, start, end) is not None
