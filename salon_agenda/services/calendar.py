"""Calendar export for booked appointments: Google Calendar links and ICS files."""

from __future__ import annotations

from datetime import datetime, timezone
from urllib.parse import urlencode
from zoneinfo import ZoneInfo

from salon_agenda.schemas.appointment import Appointment, CalendarLinks
from salon_agenda.schemas.scheduling import Venue

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"


def _local_stamp(moment: datetime) -> str:
    return moment.strftime("%Y%m%dT%H%M%S")


def _utc_stamp(moment: datetime, zone: ZoneInfo) -> str:
    return moment.replace(tzinfo=zone).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_ical_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def event_summary(appointment: Appointment, venue: Venue) -> str:
    services = ", ".join(item.name for item in appointment.services)
    return f"{services} - {venue.name}"


def google_calendar_url(appointment: Appointment, venue: Venue, timezone_name: str) -> str:
    params = {
        "action": "TEMPLATE",
        "text": event_summary(appointment, venue),
        "dates": f"{_local_stamp(appointment.start_time)}/{_local_stamp(appointment.end_time)}",
        "ctz": timezone_name,
        "details": f"Appointment {appointment.appointment_id} for {appointment.customer_name}",
        "location": venue.name,
    }
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"


def ics_path(appointment_id: str) -> str:
    return f"/appointments/{appointment_id}/ics"


def calendar_links(appointment: Appointment, venue: Venue, timezone_name: str) -> CalendarLinks:
    return CalendarLinks(
        google=google_calendar_url(appointment, venue, timezone_name),
        ics=ics_path(appointment.appointment_id),
    )


def build_ics_event(appointment: Appointment, venue: Venue, timezone_name: str) -> str:
    """Render a single-event iCalendar file in the venue's local time."""

    zone = ZoneInfo(timezone_name)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Salon Agenda//Booking//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{appointment.appointment_id}@salon-agenda",
        f"DTSTAMP:{_utc_stamp(appointment.created_at, zone)}",
        f"DTSTART;TZID={timezone_name}:{_local_stamp(appointment.start_time)}",
        f"DTEND;TZID={timezone_name}:{_local_stamp(appointment.end_time)}",
        f"SUMMARY:{escape_ical_text(event_summary(appointment, venue))}",
        f"DESCRIPTION:{escape_ical_text(f'Appointment for {appointment.customer_name}')}",
        f"LOCATION:{escape_ical_text(venue.name)}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"
