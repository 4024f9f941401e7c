from __future__ import annotations

import asyncio
import logging
from typing import List, Sequence, Set

from salon_agenda.clients.notifications import NotificationClient
from salon_agenda.schemas.appointment import Appointment
from salon_agenda.schemas.notification import NotificationEvent
from salon_agenda.services.store import NotificationOutbox, get_store

logger = logging.getLogger(__name__)


def confirmation_message(appointment: Appointment) -> str:
    return (
        f"Hello {appointment.customer_name}, your appointment is confirmed for "
        f"{appointment.start_time:%d/%m/%Y} at {appointment.start_time:%H:%M}."
    )


def reminder_message(appointment: Appointment) -> str:
    return (
        f"Reminder: {appointment.customer_name} has an appointment on "
        f"{appointment.start_time:%d/%m/%Y} at {appointment.start_time:%H:%M}."
    )


class NotificationService:
    """Deliver booking events to the notification gateway.

    Confirmations are fire-and-forget: ``confirm`` schedules delivery and
    returns immediately, and a failed delivery is logged without affecting the
    booking that triggered it.
    """

    def __init__(
        self,
        client: NotificationClient,
        *,
        channels: Sequence[str] = ("venue-push", "client-push"),
        outbox: NotificationOutbox | None = None,
    ) -> None:
        self._client = client
        self._channels = list(channels)
        self._outbox = outbox
        self._pending: Set[asyncio.Task] = set()

    def _mock_outbox(self) -> NotificationOutbox:
        return self._outbox or get_store().outbox

    async def send(self, event: NotificationEvent) -> None:
        logger.info(
            "Sending %s for appointment %s via %s",
            event.event,
            event.appointment_id,
            ", ".join(event.channels),
        )
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            await self._mock_outbox().record(event)
            return
        await self._client.post("/notifications", event.model_dump(mode="json"))

    def confirm(self, appointment: Appointment) -> None:
        event = NotificationEvent(
            event="confirmation",
            channels=self._channels,
            venue_id=appointment.venue_id,
            appointment_id=appointment.appointment_id,
            customer_name=appointment.customer_name,
            customer_phone=appointment.customer_phone,
            start_time=appointment.start_time,
            message=confirmation_message(appointment),
        )
        task = asyncio.get_running_loop().create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def remind(self, appointment: Appointment, channel: str) -> bool:
        event = NotificationEvent(
            event="reminder",
            channels=[channel],
            venue_id=appointment.venue_id,
            appointment_id=appointment.appointment_id,
            customer_name=appointment.customer_name,
            customer_phone=appointment.customer_phone,
            start_time=appointment.start_time,
            message=reminder_message(appointment),
        )
        return await self._deliver(event)

    async def _deliver(self, event: NotificationEvent) -> bool:
        try:
            await self.send(event)
        except Exception:
            logger.exception("Failed to deliver %s for appointment %s", event.event, event.appointment_id)
            return False
        return True

    async def drain(self) -> None:
        """Wait for scheduled confirmations to finish."""

        pending: List[asyncio.Task] = list(self._pending)
        if pending:
            await asyncio.gather(*pending)
