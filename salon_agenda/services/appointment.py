from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from salon_agenda.schemas.appointment import (
    Appointment,
    AppointmentListRequest,
    AppointmentListResponse,
    AppointmentRequest,
    AppointmentStatus,
    BookingResponse,
    CancelRequest,
    CancelResponse,
    Customer,
    CustomerCheckResponse,
    ServiceSnapshot,
    digits_only,
)
from salon_agenda.schemas.scheduling import Service, Venue
from salon_agenda.services.calendar import build_ics_event, calendar_links
from salon_agenda.services.conflicts import ConflictChecker
from salon_agenda.services.exceptions import (
    NotAuthorizedError,
    NotFoundError,
    RecurrenceConflictError,
    SlotUnavailableError,
    ValidationError,
)
from salon_agenda.services.intervals import Clock, at, plus_minutes
from salon_agenda.services.notifications import NotificationService
from salon_agenda.services.recurrence import MAX_OCCURRENCES, expand_recurrence, new_recurrence_id
from salon_agenda.services.store import Store

logger = logging.getLogger(__name__)


def resolve_services(store: Store, venue_id: str, service_ids: List[str]) -> List[Service]:
    """Look up every requested service of the venue, failing on unknown ids."""

    unique_ids = list(dict.fromkeys(service_ids))
    services = store.master_data.get_services(venue_id, unique_ids)
    if len(services) != len(unique_ids):
        found = {service.service_id for service in services}
        missing = [service_id for service_id in unique_ids if service_id not in found]
        raise ValidationError(f"Services not found: {', '.join(missing)}")
    return services


class AppointmentService:
    """Book, cancel and list appointments of a venue.

    Every booking re-checks availability while holding the professional's
    lock, then persists. A recurring request validates all of its occurrences
    before writing any of them, so a rejected series leaves nothing behind.
    """

    def __init__(
        self,
        store: Store,
        notifier: NotificationService,
        *,
        clock: Clock,
        max_occurrences: int = MAX_OCCURRENCES,
        timezone_name: str = "America/Sao_Paulo",
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._max_occurrences = max_occurrences
        self._timezone_name = timezone_name
        self._checker = ConflictChecker(store.master_data, store.appointments, store.blocks)

    async def book(self, request: AppointmentRequest) -> BookingResponse:
        logger.info(
            "Booking appointment for %s with professional %s on %s at %s",
            request.customer_name,
            request.professional_id,
            request.date,
            request.start_time.strftime("%H:%M"),
        )
        venue, professional = self._checker.resolve(request.venue_id, request.professional_id)
        services = resolve_services(self._store, venue.venue_id, request.service_ids)
        total_duration = sum(service.duration_minutes for service in services)

        recurrence = request.recurrence
        if recurrence is not None:
            dates = expand_recurrence(
                request.date,
                recurrence.type,
                recurrence.count,
                recurrence.end_date,
                limit=self._max_occurrences,
            )
        else:
            dates = [request.date]

        if request.origin == "client":
            self._check_booking_window(venue, at(request.date, request.start_time))

        async with self._store.locks.hold(venue.venue_id, professional.professional_id):
            for day in dates:
                await self._ensure_available(
                    venue.venue_id,
                    professional.professional_id,
                    day,
                    request.start_time,
                    total_duration,
                    recurring=recurrence is not None,
                )

            now = self._clock()
            customer = await self._store.customers.upsert(
                venue.venue_id, request.customer_name, request.customer_phone, now
            )
            recurrence_id = new_recurrence_id() if recurrence is not None else None
            appointments = [
                self._build_appointment(
                    request,
                    customer,
                    services,
                    at(day, request.start_time),
                    total_duration,
                    created_at=now,
                    recurrence_id=recurrence_id,
                )
                for day in dates
            ]
            await self._store.appointments.add_many(appointments)

        logger.info(
            "Booked %s appointment(s) for %s starting %s",
            len(appointments),
            customer.customer_id,
            appointments[0].start_time.isoformat(),
        )
        self._notifier.confirm(appointments[0])
        return BookingResponse(
            recurrence_id=recurrence_id,
            appointments=appointments,
            links=calendar_links(appointments[0], venue, self._timezone_name),
        )

    def _check_booking_window(self, venue: Venue, start: datetime) -> None:
        now = self._clock()
        settings = venue.settings
        if start < plus_minutes(now, settings.min_notice_minutes):
            raise SlotUnavailableError(
                f"Bookings require at least {settings.min_notice_minutes} minutes notice",
                "notice",
            )
        if start.date() > now.date() + timedelta(days=settings.max_future_days):
            raise SlotUnavailableError(
                f"Bookings are open up to {settings.max_future_days} days ahead",
                "horizon",
            )

    async def _ensure_available(
        self,
        venue_id: str,
        professional_id: str,
        day: date,
        start_time: time,
        duration_minutes: int,
        *,
        recurring: bool,
    ) -> None:
        start = at(day, start_time)
        end = plus_minutes(start, duration_minutes)
        reason = await self._checker.check(venue_id, professional_id, day, start, end)
        if reason is None:
            return
        if recurring:
            raise RecurrenceConflictError(day, reason.value)
        raise SlotUnavailableError("Time slot unavailable, please pick another time", reason.value)

    def _build_appointment(
        self,
        request: AppointmentRequest,
        customer: Customer,
        services: List[Service],
        start: datetime,
        duration_minutes: int,
        *,
        created_at: datetime,
        recurrence_id: Optional[str],
    ) -> Appointment:
        return Appointment(
            appointment_id=self._store.appointments.new_id(),
            venue_id=request.venue_id,
            professional_id=request.professional_id,
            customer_id=customer.customer_id,
            customer_name=request.customer_name,
            customer_phone=digits_only(request.customer_phone),
            services=[
                ServiceSnapshot(
                    service_id=service.service_id,
                    name=service.name,
                    duration_minutes=service.duration_minutes,
                    price=service.price,
                )
                for service in services
            ],
            start_time=start,
            end_time=plus_minutes(start, duration_minutes),
            total_price=round(sum(service.price for service in services), 2),
            origin=request.origin,
            recurrence_id=recurrence_id,
            recurrence_type=request.recurrence.type if request.recurrence else None,
            created_at=created_at,
        )

    async def cancel(self, appointment_id: str, request: CancelRequest) -> CancelResponse:
        """Customer-initiated cancellation, authorized by the booking phone."""

        appointment = await self._store.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment '{appointment_id}' not found")
        if digits_only(request.phone) != digits_only(appointment.customer_phone):
            logger.warning("Cancel authorization failed for appointment %s", appointment_id)
            raise NotAuthorizedError("Phone does not match the booking")
        if appointment.status == AppointmentStatus.COMPLETED:
            raise ValidationError("A completed appointment cannot be cancelled")
        return CancelResponse(cancelled_ids=await self._remove(appointment, request.cancel_future))

    async def delete(self, venue_id: str, appointment_id: str, *, cancel_future: bool = False) -> CancelResponse:
        """Venue-initiated removal of one appointment or the rest of its series."""

        appointment = await self._get_in_venue(venue_id, appointment_id)
        return CancelResponse(cancelled_ids=await self._remove(appointment, cancel_future))

    async def _remove(self, appointment: Appointment, cancel_future: bool) -> List[str]:
        if cancel_future and appointment.recurrence_id:
            series = await self._store.appointments.series_from(
                appointment.venue_id, appointment.recurrence_id, appointment.start_time
            )
            target_ids = [item.appointment_id for item in series]
        else:
            target_ids = [appointment.appointment_id]
        removed = await self._store.appointments.delete_many(target_ids)
        logger.info("Removed appointment(s) %s", ", ".join(removed))
        return removed

    async def update_status(
        self, venue_id: str, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        appointment = await self._get_in_venue(venue_id, appointment_id)
        if appointment.status == status:
            return appointment
        completed_at = self._clock() if status == AppointmentStatus.COMPLETED else None
        updated = await self._store.appointments.set_status(appointment_id, status, completed_at)
        if updated is None:
            raise NotFoundError(f"Appointment '{appointment_id}' not found")
        logger.info("Appointment %s is now %s", appointment_id, status.value)
        return updated

    async def _get_in_venue(self, venue_id: str, appointment_id: str) -> Appointment:
        appointment = await self._store.appointments.get(appointment_id)
        if appointment is None or appointment.venue_id != venue_id:
            raise NotFoundError(f"Appointment '{appointment_id}' not found")
        return appointment

    async def list(self, request: AppointmentListRequest) -> AppointmentListResponse:
        logger.info("Listing appointments for venue %s", request.venue_id)
        filtered = await self._store.appointments.list_for_venue(
            request.venue_id,
            date_from=request.date_from,
            date_to=request.date_to,
            status=request.status,
        )
        start = (request.page - 1) * request.page_size
        end = start + request.page_size
        return AppointmentListResponse(
            total=len(filtered),
            page=request.page,
            page_size=request.page_size,
            items=filtered[start:end],
        )

    async def list_for_customer(self, phone: str) -> List[Appointment]:
        if not digits_only(phone):
            raise ValidationError("phone is required")
        return await self._store.appointments.list_by_phone(phone)

    async def check_customer(self, venue_id: str, phone: str) -> CustomerCheckResponse:
        """Tell a returning customer apart from a new one by phone."""

        if not digits_only(phone):
            raise ValidationError("phone is required")
        customer = await self._store.customers.find_by_phone(venue_id, phone)
        if customer is None:
            return CustomerCheckResponse(found=False)
        return CustomerCheckResponse(found=True, name=customer.name)

    async def calendar_file(self, appointment_id: str) -> str:
        appointment = await self._store.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment '{appointment_id}' not found")
        venue = self._store.master_data.get_venue(appointment.venue_id)
        if venue is None:
            raise NotFoundError(f"Venue '{appointment.venue_id}' not found")
        return build_ics_event(appointment, venue, self._timezone_name)
