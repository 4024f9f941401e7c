from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional

from salon_agenda.config import get_settings
from salon_agenda.schemas.appointment import (
    Appointment,
    AppointmentStatus,
    Customer,
    digits_only,
)
from salon_agenda.schemas.block import Block, BlockCreateRequest, BlockType
from salon_agenda.schemas.notification import NotificationEvent
from salon_agenda.schemas.scheduling import (
    DaySchedule,
    Professional,
    Service,
    TimeWindow,
    Venue,
    VenueSettings,
    WeeklySchedule,
)
from salon_agenda.services.intervals import overlaps
from salon_agenda.services.locks import ProfessionalLocks


async def _round_trip() -> None:
    # Queries suspend once, as a database driver would.
    await asyncio.sleep(0)


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class MasterDataRepository:
    """Read-only catalog: venues, professionals and services."""

    def __init__(self, *, seed: bool = False) -> None:
        self._venues: Dict[str, Venue] = {}
        self._professionals: Dict[str, Professional] = {}
        self._services: Dict[str, Service] = {}
        if seed:
            self._seed_demo_venue()

    def _seed_demo_venue(self) -> None:
        weekday = DaySchedule(
            open=time(9, 0),
            close=time(18, 0),
            is_open=True,
            breaks=[TimeWindow(start=time(12, 0), end=time(13, 0))],
        )
        saturday = DaySchedule(open=time(9, 0), close=time(13, 0), is_open=True, is_arrival_order=True)
        self.add_venue(
            Venue(
                venue_id="studio-aurora",
                name="Studio Aurora",
                working_hours=WeeklySchedule.from_days(
                    monday=weekday,
                    tuesday=weekday,
                    wednesday=weekday,
                    thursday=weekday,
                    friday=weekday,
                    saturday=saturday,
                ),
                settings=VenueSettings(slot_interval=30, appointment_buffer=10),
            )
        )
        self.add_professional(
            Professional(professional_id="pro-marina", venue_id="studio-aurora", name="Marina")
        )
        self.add_professional(
            Professional(
                professional_id="pro-caio",
                venue_id="studio-aurora",
                name="Caio",
                working_hours=WeeklySchedule.from_days(
                    tuesday=DaySchedule(open=time(13, 0), close=time(20, 0), is_open=True),
                    thursday=DaySchedule(open=time(13, 0), close=time(20, 0), is_open=True),
                ),
            )
        )
        for service in (
            Service(service_id="svc-cut", venue_id="studio-aurora", name="Haircut", duration_minutes=45, price=60.0),
            Service(service_id="svc-beard", venue_id="studio-aurora", name="Beard Trim", duration_minutes=30, price=35.0),
            Service(service_id="svc-color", venue_id="studio-aurora", name="Hair Coloring", duration_minutes=90, price=150.0),
        ):
            self.add_service(service)

    def add_venue(self, venue: Venue) -> None:
        self._venues[venue.venue_id] = venue

    def add_professional(self, professional: Professional) -> None:
        self._professionals[professional.professional_id] = professional

    def add_service(self, service: Service) -> None:
        self._services[service.service_id] = service

    def get_venue(self, venue_id: str) -> Optional[Venue]:
        return self._venues.get(venue_id)

    def get_professional(self, venue_id: str, professional_id: str) -> Optional[Professional]:
        professional = self._professionals.get(professional_id)
        if professional is None or professional.venue_id != venue_id:
            return None
        return professional

    def get_services(self, venue_id: str, service_ids: Iterable[str]) -> List[Service]:
        """Return the venue's services for ``service_ids``; unknown ids are skipped."""

        services = []
        for service_id in service_ids:
            service = self._services.get(service_id)
            if service is not None and service.venue_id == venue_id:
                services.append(service)
        return services

    def iter_venues(self) -> Iterable[Venue]:
        return list(self._venues.values())


class AppointmentRepository(_BaseRepository):
    def __init__(self) -> None:
        super().__init__("APT")
        self._appointments: Dict[str, Appointment] = {}

    async def add_many(self, appointments: Iterable[Appointment]) -> None:
        await _round_trip()
        for appointment in appointments:
            self._appointments[appointment.appointment_id] = appointment.model_copy(deep=True)

    def new_id(self) -> str:
        return self._next_id()

    async def get(self, appointment_id: str) -> Optional[Appointment]:
        await _round_trip()
        appointment = self._appointments.get(appointment_id)
        return appointment.model_copy(deep=True) if appointment is not None else None

    async def set_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        completed_at: Optional[datetime],
    ) -> Optional[Appointment]:
        """Update only the status fields of the stored record."""

        await _round_trip()
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            return None
        appointment.status = status
        appointment.completed_at = completed_at
        return appointment.model_copy(deep=True)

    async def mark_reminder(self, appointment_id: str, flag: str) -> bool:
        """Record a sent reminder; False when the appointment no longer exists."""

        await _round_trip()
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            return False
        appointment.reminders[flag] = True
        return True

    async def delete_many(self, appointment_ids: Iterable[str]) -> List[str]:
        await _round_trip()
        return [
            appointment_id
            for appointment_id in appointment_ids
            if self._appointments.pop(appointment_id, None) is not None
        ]

    async def find_overlapping(
        self,
        venue_id: str,
        professional_id: str,
        start: datetime,
        end: datetime,
    ) -> List[Appointment]:
        """Non-cancelled appointments of the professional intersecting ``[start, end)``."""

        await _round_trip()
        return [
            appointment.model_copy(deep=True)
            for appointment in self._appointments.values()
            if appointment.venue_id == venue_id
            and appointment.professional_id == professional_id
            and appointment.status != AppointmentStatus.CANCELLED
            and overlaps(appointment.start_time, appointment.end_time, start, end)
        ]

    async def list_for_venue(
        self,
        venue_id: str,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> List[Appointment]:
        await _round_trip()
        items = []
        for appointment in self._appointments.values():
            if appointment.venue_id != venue_id:
                continue
            day = appointment.start_time.date()
            if date_from and day < date_from:
                continue
            if date_to and day > date_to:
                continue
            if status and appointment.status != status:
                continue
            items.append(appointment.model_copy(deep=True))
        items.sort(key=lambda item: item.start_time)
        return items

    async def list_by_phone(self, phone: str) -> List[Appointment]:
        """Appointments booked with ``phone`` that are not completed, earliest first."""

        await _round_trip()
        wanted = digits_only(phone)
        items = [
            appointment.model_copy(deep=True)
            for appointment in self._appointments.values()
            if digits_only(appointment.customer_phone) == wanted
            and appointment.status != AppointmentStatus.COMPLETED
        ]
        items.sort(key=lambda item: item.start_time)
        return items

    async def series_from(self, venue_id: str, recurrence_id: str, start: datetime) -> List[Appointment]:
        """Occurrences of a recurrence starting at or after ``start``."""

        await _round_trip()
        return [
            appointment.model_copy(deep=True)
            for appointment in self._appointments.values()
            if appointment.venue_id == venue_id
            and appointment.recurrence_id == recurrence_id
            and appointment.start_time >= start
        ]

    async def starting_between(
        self, start: datetime, end: datetime, status: AppointmentStatus
    ) -> List[Appointment]:
        await _round_trip()
        return [
            appointment.model_copy(deep=True)
            for appointment in self._appointments.values()
            if start <= appointment.start_time <= end and appointment.status == status
        ]


class BlockRepository(_BaseRepository):
    def __init__(self) -> None:
        super().__init__("BLK")
        self._blocks: Dict[str, Block] = {}

    async def create(self, venue_id: str, request: BlockCreateRequest) -> Block:
        await _round_trip()
        block = Block(block_id=self._next_id(), venue_id=venue_id, **request.model_dump())
        self._blocks[block.block_id] = block
        return block.model_copy()

    async def list(self, venue_id: str) -> List[Block]:
        await _round_trip()
        blocks = [block.model_copy() for block in self._blocks.values() if block.venue_id == venue_id]
        blocks.sort(key=lambda block: block.start_time)
        return blocks

    async def delete(self, venue_id: str, block_id: str) -> bool:
        await _round_trip()
        block = self._blocks.get(block_id)
        if block is None or block.venue_id != venue_id:
            return False
        del self._blocks[block_id]
        return True

    async def find_overlapping(
        self,
        venue_id: str,
        professional_id: str,
        start: datetime,
        end: datetime,
        *,
        block_type: Optional[BlockType] = None,
    ) -> List[Block]:
        """Venue-wide and professional blocks intersecting ``[start, end)``."""

        await _round_trip()
        return [
            block.model_copy()
            for block in self._blocks.values()
            if block.venue_id == venue_id
            and block.applies_to(professional_id)
            and (block_type is None or block.type == block_type)
            and overlaps(block.start_time, block.end_time, start, end)
        ]


class CustomerRepository(_BaseRepository):
    def __init__(self) -> None:
        super().__init__("CUS")
        self._customers: Dict[str, Customer] = {}

    async def find_by_phone(self, venue_id: str, phone: str) -> Optional[Customer]:
        await _round_trip()
        wanted = digits_only(phone)
        for customer in self._customers.values():
            if customer.venue_id == venue_id and digits_only(customer.phone) == wanted:
                return customer.model_copy()
        return None

    async def upsert(self, venue_id: str, name: str, phone: str, seen_at: datetime) -> Customer:
        """Find the customer by normalized phone or create one; refresh name and visit time."""

        existing = await self.find_by_phone(venue_id, phone)
        clean_phone = digits_only(phone)
        if existing is None:
            customer = Customer(
                customer_id=self._next_id(),
                venue_id=venue_id,
                name=name,
                phone=clean_phone,
                last_appointment=seen_at,
            )
        else:
            customer = existing.model_copy(
                update={"name": name or existing.name, "phone": clean_phone, "last_appointment": seen_at}
            )
        self._customers[customer.customer_id] = customer
        return customer.model_copy()


class NotificationOutbox:
    """Events captured while notifications run in mock mode."""

    def __init__(self) -> None:
        self._events: List[NotificationEvent] = []

    async def record(self, event: NotificationEvent) -> None:
        await _round_trip()
        self._events.append(event)

    def list(self) -> List[NotificationEvent]:
        return list(self._events)


@dataclass
class Store:
    master_data: MasterDataRepository
    appointments: AppointmentRepository = field(default_factory=AppointmentRepository)
    blocks: BlockRepository = field(default_factory=BlockRepository)
    customers: CustomerRepository = field(default_factory=CustomerRepository)
    outbox: NotificationOutbox = field(default_factory=NotificationOutbox)
    locks: ProfessionalLocks = field(default_factory=ProfessionalLocks)


_store: Optional[Store] = None


def get_store() -> Store:
    global _store
    if _store is None:
        _store = Store(master_data=MasterDataRepository(seed=get_settings().seed_demo_data))
    return _store


def reset_store() -> None:
    global _store
    _store = None
