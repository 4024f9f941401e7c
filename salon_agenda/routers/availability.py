from fastapi import APIRouter, Depends

from salon_agenda.dependencies.services import get_availability_service
from salon_agenda.routers.errors import http_error
from salon_agenda.schemas.availability import AvailabilityRequest, AvailabilityResponse
from salon_agenda.services import AvailabilityService
from salon_agenda.services.exceptions import ServiceError

router = APIRouter()


@router.post("/slots", response_model=AvailabilityResponse)
async def available_slots(
    req: AvailabilityRequest,
    service: AvailabilityService = Depends(get_availability_service),
):
    try:
        return await service.slots(req)
    except ServiceError as exc:
        raise http_error(exc) from exc
