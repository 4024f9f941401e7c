from __future__ import annotations

import logging

from salon_agenda.schemas.availability import AvailabilityRequest, AvailabilityResponse
from salon_agenda.services.appointment import resolve_services
from salon_agenda.services.conflicts import ConflictChecker
from salon_agenda.services.intervals import Clock
from salon_agenda.services.slots import SlotGenerator
from salon_agenda.services.store import Store

logger = logging.getLogger(__name__)


class AvailabilityService:
    def __init__(self, store: Store, *, clock: Clock) -> None:
        self._store = store
        checker = ConflictChecker(store.master_data, store.appointments, store.blocks)
        self._generator = SlotGenerator(checker, clock=clock)

    async def slots(self, request: AvailabilityRequest) -> AvailabilityResponse:
        logger.info(
            "Availability check: venue %s, professional %s, date %s, services %s",
            request.venue_id,
            request.professional_id,
            request.date,
            request.service_ids,
        )
        services = resolve_services(self._store, request.venue_id, request.service_ids)
        total_duration = sum(service.duration_minutes for service in services)
        return await self._generator.generate(
            request.venue_id, request.professional_id, request.date, total_duration
        )
