from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from salon_agenda.clients.notifications import NotificationClient
from salon_agenda.config import Settings, get_settings
from salon_agenda.services import (
    AppointmentService,
    AvailabilityService,
    BlockService,
    NotificationService,
)
from salon_agenda.services.intervals import Clock, venue_clock
from salon_agenda.services.store import Store, get_store


@lru_cache(maxsize=1)
def get_notification_client_cached() -> NotificationClient:
    settings = get_settings()
    return NotificationClient(
        settings.notification_service_base_url,
        timeout=settings.notification_service_timeout,
        use_mock_data=settings.use_mock_notifications,
        token=settings.notification_service_token,
    )


@lru_cache(maxsize=1)
def get_notification_service_cached() -> NotificationService:
    settings = get_settings()
    return NotificationService(
        get_notification_client_cached(),
        channels=settings.confirmation_channels,
    )


def get_clock(settings: Settings = Depends(get_settings)) -> Clock:
    return venue_clock(settings.venue_timezone)


def get_data_store() -> Store:
    return get_store()


def get_notification_service() -> NotificationService:
    return get_notification_service_cached()


def get_appointment_service(
    store: Store = Depends(get_data_store),
    notifier: NotificationService = Depends(get_notification_service),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> AppointmentService:
    return AppointmentService(
        store,
        notifier,
        clock=clock,
        max_occurrences=settings.max_recurrence_occurrences,
        timezone_name=settings.venue_timezone,
    )


def get_availability_service(
    store: Store = Depends(get_data_store),
    clock: Clock = Depends(get_clock),
) -> AvailabilityService:
    return AvailabilityService(store, clock=clock)


def get_block_service(store: Store = Depends(get_data_store)) -> BlockService:
    return BlockService(store)
