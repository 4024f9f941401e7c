from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Tuple

from salon_agenda.schemas.appointment import AppointmentStatus
from salon_agenda.services.notifications import NotificationService
from salon_agenda.services.store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderRule:
    flag: str
    channel: str
    window: Tuple[timedelta, timedelta]


REMINDER_RULES = (
    ReminderRule("venue_24h", "venue-push", (timedelta(hours=23), timedelta(hours=25))),
    ReminderRule("client_2h", "client-push", (timedelta(minutes=90), timedelta(minutes=150))),
)


class ReminderService:
    """Send each confirmed appointment's reminders once, as its start approaches."""

    def __init__(self, store: Store, notifier: NotificationService) -> None:
        self._store = store
        self._notifier = notifier

    async def run_once(self, now: datetime) -> int:
        sent = 0
        for rule in REMINDER_RULES:
            lower, upper = rule.window
            due = await self._store.appointments.starting_between(
                now + lower, now + upper, AppointmentStatus.CONFIRMED
            )
            pending = [appointment for appointment in due if not appointment.reminders.get(rule.flag)]
            if pending:
                logger.info("Processing %s %s reminder(s)", len(pending), rule.flag)
            for appointment in pending:
                if not await self._notifier.remind(appointment, rule.channel):
                    continue
                if not await self._store.appointments.mark_reminder(appointment.appointment_id, rule.flag):
                    logger.info("Appointment %s was removed before its reminder was recorded", appointment.appointment_id)
                    continue
                sent += 1
        return sent
