"""Service package public API definitions.

Service implementations are imported lazily on attribute access so that
``salon_agenda.services.exceptions`` can be imported by the HTTP client
without pulling in the store and its dependencies.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

__all__ = [
    "AppointmentService",
    "AvailabilityService",
    "BlockService",
    "NotificationService",
    "ReminderService",
]

_SERVICE_MODULES = {
    "AppointmentService": "appointment",
    "AvailabilityService": "availability",
    "BlockService": "blocks",
    "NotificationService": "notifications",
    "ReminderService": "reminders",
}


def __getattr__(name: str) -> Any:
    if name not in _SERVICE_MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = import_module(f".{_SERVICE_MODULES[name]}", __name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .appointment import AppointmentService as AppointmentService
    from .availability import AvailabilityService as AvailabilityService
    from .blocks import BlockService as BlockService
    from .notifications import NotificationService as NotificationService
    from .reminders import ReminderService as ReminderService
