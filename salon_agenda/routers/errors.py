from fastapi import HTTPException

from salon_agenda.services.exceptions import (
    NotAuthorizedError,
    NotFoundError,
    RecurrenceConflictError,
    ServiceError,
    SlotUnavailableError,
    ValidationError,
)


def http_error(exc: ServiceError) -> HTTPException:
    """Translate a service failure into the HTTP error the API reports."""

    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotAuthorizedError):
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, RecurrenceConflictError):
        return HTTPException(
            status_code=409,
            detail={
                "message": str(exc),
                "failed_date": exc.failed_date.isoformat(),
                "reason": exc.reason,
            },
        )
    if isinstance(exc, SlotUnavailableError):
        return HTTPException(status_code=409, detail={"message": str(exc), "reason": exc.reason})
    return HTTPException(status_code=502, detail=str(exc))
