import asyncio
from datetime import datetime, time, timedelta

import pytest

from factories import (
    MONDAY,
    NOW,
    PRO_ID,
    VENUE_ID,
    FixedClock,
    MockLatencyClient,
    booking,
    build_store,
    existing_appointment,
)
from salon_agenda.schemas.appointment import (
    AppointmentListRequest,
    AppointmentStatus,
    CancelRequest,
    RecurrenceSpec,
    RecurrenceType,
)
from salon_agenda.schemas.scheduling import Service, VenueSettings
from salon_agenda.services.appointment import AppointmentService
from salon_agenda.services.exceptions import (
    DownstreamServiceError,
    NotAuthorizedError,
    NotFoundError,
    RecurrenceConflictError,
    SlotUnavailableError,
    ValidationError,
)
from salon_agenda.services.locks import ProfessionalLocks
from salon_agenda.services.notifications import NotificationService


def at_monday(clock: str) -> datetime:
    return datetime.combine(MONDAY, time.fromisoformat(clock))


class FailingClient:
    use_mock_data = False

    async def post(self, path, payload):
        raise DownstreamServiceError("gateway down", status_code=503)


def make_service(store, *, client=None, clock=None):
    notifier = NotificationService(client or MockLatencyClient(), outbox=store.outbox)
    return AppointmentService(store, notifier, clock=clock or FixedClock()), notifier


def test_booking_persists_snapshot_and_customer() -> None:
    store = build_store()
    service, notifier = make_service(store)

    async def scenario():
        response = await service.book(booking(start="10:00", service_ids=["cut", "hour"]))
        await notifier.drain()
        return response

    response = asyncio.run(scenario())
    appointment = response.appointments[0]

    assert response.recurrence_id is None
    assert appointment.appointment_id.startswith("APT-")
    assert appointment.status == AppointmentStatus.CONFIRMED
    assert appointment.start_time == at_monday("10:00")
    assert appointment.end_time == at_monday("11:30")
    assert appointment.total_price == pytest.approx(130.0)
    assert [item.service_id for item in appointment.services] == ["cut", "hour"]
    assert appointment.customer_phone == "11988887777"

    customer = asyncio.run(store.customers.find_by_phone(VENUE_ID, "11 98888 7777"))
    assert customer is not None
    assert customer.customer_id == appointment.customer_id
    assert customer.phone == "11988887777"

    events = store.outbox.list()
    assert len(events) == 1
    assert events[0].event == "confirmation"
    assert events[0].appointment_id == appointment.appointment_id
    assert "10:00" in events[0].message


def test_catalog_changes_do_not_rewrite_history() -> None:
    store = build_store()
    service, _ = make_service(store)

    response = asyncio.run(service.book(booking(service_ids=["cut"])))
    store.master_data.add_service(
        Service(service_id="cut", venue_id=VENUE_ID, name="Premium Cut", duration_minutes=45, price=90.0)
    )
    stored = asyncio.run(store.appointments.get(response.appointments[0].appointment_id))

    assert stored.services[0].name == "Haircut"
    assert stored.services[0].price == 50.0
    assert stored.total_price == 50.0


def test_returning_customer_is_updated_not_duplicated() -> None:
    store = build_store()
    service, _ = make_service(store)

    first = asyncio.run(service.book(booking(start="09:00", name="Carla")))
    second = asyncio.run(service.book(booking(start="14:00", name="Carla Souza", phone="11988887777")))

    assert first.appointments[0].customer_id == second.appointments[0].customer_id
    check = asyncio.run(service.check_customer(VENUE_ID, "(11) 98888-7777"))
    assert check.found is True
    assert check.name == "Carla Souza"
    assert asyncio.run(service.check_customer(VENUE_ID, "11900000000")).found is False


def test_overlapping_booking_is_rejected() -> None:
    store = build_store()
    existing_appointment(store, at_monday("10:00"), at_monday("11:00"))
    service, _ = make_service(store)

    with pytest.raises(SlotUnavailableError) as excinfo:
        asyncio.run(service.book(booking(start="10:30")))

    assert excinfo.value.reason == "appointment"
    assert len(asyncio.run(store.appointments.list_for_venue(VENUE_ID))) == 1


def test_unknown_service_is_a_validation_error() -> None:
    store = build_store()
    service, _ = make_service(store)

    with pytest.raises(ValidationError):
        asyncio.run(service.book(booking(service_ids=["cut", "missing"])))


def test_client_bookings_respect_notice_but_admin_bookings_do_not() -> None:
    store = build_store(settings=VenueSettings(slot_interval=30, min_notice_minutes=60, max_future_days=30))
    service, _ = make_service(store, clock=FixedClock(at_monday("09:30")))

    with pytest.raises(SlotUnavailableError) as excinfo:
        asyncio.run(service.book(booking(start="10:00")))
    admin = asyncio.run(service.book(booking(start="10:00", origin="admin")))

    assert excinfo.value.reason == "notice"
    assert admin.appointments[0].origin == "admin"


def test_client_bookings_beyond_horizon_are_rejected() -> None:
    store = build_store(settings=VenueSettings(slot_interval=30, min_notice_minutes=0, max_future_days=3))
    service, _ = make_service(store)

    with pytest.raises(SlotUnavailableError) as excinfo:
        asyncio.run(service.book(booking()))

    assert excinfo.value.reason == "horizon"


def test_notification_failure_does_not_fail_booking() -> None:
    store = build_store()
    service, notifier = make_service(store, client=FailingClient())

    async def scenario():
        response = await service.book(booking())
        await notifier.drain()
        return response

    response = asyncio.run(scenario())

    assert response.status == "confirmed"
    assert asyncio.run(store.appointments.get(response.appointments[0].appointment_id)) is not None


def test_recurring_booking_creates_tagged_series() -> None:
    store = build_store()
    service, _ = make_service(store)

    response = asyncio.run(
        service.book(booking(recurrence=RecurrenceSpec(type=RecurrenceType.WEEKLY, count=3)))
    )

    assert response.recurrence_id
    assert [item.start_time.date() for item in response.appointments] == [
        MONDAY,
        MONDAY + timedelta(weeks=1),
        MONDAY + timedelta(weeks=2),
    ]
    assert {item.recurrence_id for item in response.appointments} == {response.recurrence_id}
    assert {item.recurrence_type for item in response.appointments} == {RecurrenceType.WEEKLY}
    assert len({item.customer_id for item in response.appointments}) == 1


def test_recurrence_is_all_or_nothing() -> None:
    store = build_store()
    third = at_monday("10:00") + timedelta(weeks=2)
    existing_appointment(store, third, third + timedelta(hours=1))
    service, _ = make_service(store)

    with pytest.raises(RecurrenceConflictError) as excinfo:
        asyncio.run(service.book(booking(recurrence=RecurrenceSpec(type=RecurrenceType.WEEKLY, count=5))))

    assert excinfo.value.failed_date == third.date()
    remaining = asyncio.run(store.appointments.list_for_venue(VENUE_ID))
    assert len(remaining) == 1
    assert store.outbox.list() == []
    assert asyncio.run(store.customers.find_by_phone(VENUE_ID, "11988887777")) is None


def test_concurrent_bookings_for_same_slot_admit_exactly_one() -> None:
    for _ in range(25):
        store = build_store()
        service, notifier = make_service(store)

        async def race():
            results = await asyncio.gather(
                service.book(booking(start="10:00", name="First", phone="11911110000")),
                service.book(booking(start="10:30", name="Second", phone="11922220000")),
                return_exceptions=True,
            )
            await notifier.drain()
            return results

        results = asyncio.run(race())
        successes = [result for result in results if not isinstance(result, Exception)]
        failures = [result for result in results if isinstance(result, Exception)]

        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], SlotUnavailableError)
        assert len(asyncio.run(store.appointments.list_for_venue(VENUE_ID))) == 1


def test_concurrent_bookings_for_different_professionals_both_succeed() -> None:
    store = build_store()
    service, _ = make_service(store)
    other = booking(start="10:00", phone="11933330000").model_copy(update={"professional_id": "pro-2"})

    async def race():
        return await asyncio.gather(service.book(booking(start="10:00")), service.book(other))

    first, second = asyncio.run(race())

    assert first.appointments[0].professional_id == PRO_ID
    assert second.appointments[0].professional_id == "pro-2"


def test_cancel_requires_matching_phone() -> None:
    store = build_store()
    service, _ = make_service(store)
    appointment = asyncio.run(service.book(booking())).appointments[0]

    with pytest.raises(NotAuthorizedError):
        asyncio.run(service.cancel(appointment.appointment_id, CancelRequest(phone="11900000000")))
    response = asyncio.run(service.cancel(appointment.appointment_id, CancelRequest(phone="11 98888-7777")))

    assert response.cancelled_ids == [appointment.appointment_id]
    assert asyncio.run(store.appointments.get(appointment.appointment_id)) is None


def test_cancel_unknown_appointment() -> None:
    store = build_store()
    service, _ = make_service(store)

    with pytest.raises(NotFoundError):
        asyncio.run(service.cancel("APT-99999", CancelRequest(phone="11988887777")))


def test_completed_appointment_cannot_be_cancelled() -> None:
    store = build_store()
    service, _ = make_service(store)
    appointment = asyncio.run(service.book(booking())).appointments[0]
    completed = asyncio.run(service.update_status(VENUE_ID, appointment.appointment_id, AppointmentStatus.COMPLETED))

    assert completed.completed_at == NOW
    assert completed.start_time == appointment.start_time
    with pytest.raises(ValidationError):
        asyncio.run(service.cancel(appointment.appointment_id, CancelRequest(phone="11988887777")))


def test_cancel_future_removes_rest_of_series() -> None:
    store = build_store()
    service, _ = make_service(store)
    series = asyncio.run(
        service.book(booking(recurrence=RecurrenceSpec(type=RecurrenceType.WEEKLY, count=4)))
    ).appointments

    single = asyncio.run(service.cancel(series[3].appointment_id, CancelRequest(phone="11988887777")))
    future = asyncio.run(
        service.cancel(series[1].appointment_id, CancelRequest(phone="11988887777", cancel_future=True))
    )

    assert single.cancelled_ids == [series[3].appointment_id]
    assert sorted(future.cancelled_ids) == sorted([series[1].appointment_id, series[2].appointment_id])
    remaining = asyncio.run(store.appointments.list_for_venue(VENUE_ID))
    assert [item.appointment_id for item in remaining] == [series[0].appointment_id]


def test_admin_delete_is_scoped_to_venue() -> None:
    store = build_store()
    service, _ = make_service(store)
    series = asyncio.run(
        service.book(booking(recurrence=RecurrenceSpec(type=RecurrenceType.BIWEEKLY, count=3)))
    ).appointments

    with pytest.raises(NotFoundError):
        asyncio.run(service.delete("other-venue", series[0].appointment_id))
    response = asyncio.run(service.delete(VENUE_ID, series[0].appointment_id, cancel_future=True))

    assert len(response.cancelled_ids) == 3


def test_cancelled_status_frees_the_slot() -> None:
    store = build_store()
    service, _ = make_service(store)
    appointment = asyncio.run(service.book(booking(start="10:00"))).appointments[0]

    asyncio.run(service.update_status(VENUE_ID, appointment.appointment_id, AppointmentStatus.CANCELLED))
    rebooked = asyncio.run(service.book(booking(start="10:00", phone="11977776666")))

    assert rebooked.appointments[0].start_time == appointment.start_time


def test_list_filters_and_paginates() -> None:
    store = build_store()
    service, _ = make_service(store)
    asyncio.run(service.book(booking(recurrence=RecurrenceSpec(type=RecurrenceType.WEEKLY, count=5))))

    page = asyncio.run(
        service.list(AppointmentListRequest(venue_id=VENUE_ID, date_from=MONDAY + timedelta(days=1), page=1, page_size=2))
    )
    mine = asyncio.run(service.list_for_customer("11 98888-7777"))

    assert page.total == 4
    assert len(page.items) == 2
    assert page.items[0].start_time.date() == MONDAY + timedelta(weeks=1)
    assert len(mine) == 5
    assert mine[0].start_time < mine[-1].start_time


def test_identical_concurrent_requests_admit_exactly_one() -> None:
    for _ in range(25):
        store = build_store()
        service, notifier = make_service(store)

        async def race():
            results = await asyncio.gather(
                service.book(booking(start="10:00", service_ids=["hour"], phone="11911110000")),
                service.book(booking(start="10:00", service_ids=["hour"], phone="11922220000")),
                return_exceptions=True,
            )
            await notifier.drain()
            return results

        results = asyncio.run(race())
        successes = [result for result in results if not isinstance(result, Exception)]
        failures = [result for result in results if isinstance(result, Exception)]

        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], SlotUnavailableError)
        assert failures[0].reason == "appointment"
        stored = asyncio.run(store.appointments.list_for_venue(VENUE_ID))
        assert len(stored) == 1
        assert stored[0].start_time == at_monday("10:00")


def test_series_rejected_by_an_earlier_booking_leaves_nothing() -> None:
    store = build_store()
    service, notifier = make_service(store)
    third = MONDAY + timedelta(weeks=2)

    async def scenario():
        await service.book(booking(day=third, start="10:30", service_ids=["cut"], phone="11911110000"))
        await notifier.drain()
        with pytest.raises(RecurrenceConflictError) as excinfo:
            await service.book(booking(recurrence=RecurrenceSpec(type=RecurrenceType.WEEKLY, count=5)))
        await notifier.drain()
        return excinfo.value

    error = asyncio.run(scenario())

    assert error.failed_date == third
    stored = asyncio.run(store.appointments.list_for_venue(VENUE_ID))
    assert [item.customer_phone for item in stored] == ["11911110000"]
    assert asyncio.run(service.list_for_customer("11988887777")) == []
    assert len(store.outbox.list()) == 1


def test_customer_listing_hides_completed_appointments() -> None:
    store = build_store()
    service, _ = make_service(store)
    first = asyncio.run(service.book(booking(start="09:00"))).appointments[0]
    later = asyncio.run(service.book(booking(day=MONDAY + timedelta(days=1), start="09:00"))).appointments[0]

    asyncio.run(service.update_status(VENUE_ID, first.appointment_id, AppointmentStatus.COMPLETED))
    mine = asyncio.run(service.list_for_customer("11988887777"))

    assert [item.appointment_id for item in mine] == [later.appointment_id]


def test_booking_returns_calendar_links() -> None:
    store = build_store()
    service, _ = make_service(store)

    response = asyncio.run(
        service.book(booking(service_ids=["cut"], recurrence=RecurrenceSpec(type=RecurrenceType.WEEKLY, count=2)))
    )
    first = response.appointments[0]

    assert response.links.ics == f"/appointments/{first.appointment_id}/ics"
    assert response.links.google.startswith("https://calendar.google.com/calendar/render?action=TEMPLATE")
    assert "dates=20250106T100000%2F20250106T103000" in response.links.google
    assert "ctz=America%2FSao_Paulo" in response.links.google


def test_calendar_file_describes_the_appointment() -> None:
    store = build_store()
    service, _ = make_service(store)
    appointment = asyncio.run(service.book(booking(service_ids=["cut"]))).appointments[0]

    content = asyncio.run(service.calendar_file(appointment.appointment_id))

    assert content.startswith("BEGIN:VCALENDAR\r\n")
    assert content.endswith("END:VCALENDAR\r\n")
    assert f"UID:{appointment.appointment_id}@salon-agenda" in content
    assert "DTSTART;TZID=America/Sao_Paulo:20250106T100000" in content
    assert "DTEND;TZID=America/Sao_Paulo:20250106T103000" in content
    assert "SUMMARY:Haircut - Salon One" in content
    with pytest.raises(NotFoundError):
        asyncio.run(service.calendar_file("APT-99999"))


def test_lock_registry_keeps_one_lock_per_professional() -> None:
    locks = ProfessionalLocks()

    async def take_turns():
        for professional_id in (PRO_ID, PRO_ID, "pro-2"):
            async with locks.hold(VENUE_ID, professional_id):
                await asyncio.sleep(0)

    asyncio.run(take_turns())

    assert sorted(locks._locks) == [(VENUE_ID, PRO_ID), (VENUE_ID, "pro-2")]
