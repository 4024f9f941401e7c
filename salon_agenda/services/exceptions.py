from __future__ import annotations

from datetime import date


class ServiceError(Exception):
    """Base exception for service layer failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class ValidationError(ServiceError):
    """Raised when a request references missing data or is malformed."""


class NotFoundError(ServiceError):
    """Raised when an appointment or block does not exist in the venue."""


class NotAuthorizedError(ServiceError):
    """Raised when the requester's phone does not match the booking."""


class SlotUnavailableError(ServiceError):
    """Raised when the requested time range is no longer bookable."""

    def __init__(self, message: str, reason: str | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.reason = reason


class RecurrenceConflictError(SlotUnavailableError):
    """Raised when one occurrence of a recurring booking is unavailable.

    The whole series is rejected; ``failed_date`` names the first occurrence
    that could not be booked.
    """

    def __init__(self, failed_date: date, reason: str | None = None):
        super().__init__(
            f"Time slot unavailable on {failed_date.strftime('%d/%m/%Y')}",
            reason,
        )
        self.failed_date = failed_date


class DownstreamServiceError(ServiceError):
    """Raised when an external service returns an error response."""

    def __init__(self, message: str, status_code: int | None = None, *, cause: Exception | None = None):
        super().__init__(message, cause=cause)
        self.status_code = status_code
