from fastapi import APIRouter, Depends

from salon_agenda.dependencies.services import get_appointment_service, get_block_service
from salon_agenda.routers.errors import http_error
from salon_agenda.schemas.appointment import Appointment, CancelResponse, StatusUpdateRequest
from salon_agenda.schemas.block import Block, BlockCreateRequest, BlockListResponse
from salon_agenda.services import AppointmentService, BlockService
from salon_agenda.services.exceptions import ServiceError

router = APIRouter()


@router.delete("/{venue_id}/appointments/{appointment_id}", response_model=CancelResponse)
async def delete_appointment(
    venue_id: str,
    appointment_id: str,
    cancel_future: bool = False,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.delete(venue_id, appointment_id, cancel_future=cancel_future)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.patch("/{venue_id}/appointments/{appointment_id}/status", response_model=Appointment)
async def update_appointment_status(
    venue_id: str,
    appointment_id: str,
    req: StatusUpdateRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.update_status(venue_id, appointment_id, req.status)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/{venue_id}/blocks", response_model=Block, status_code=201)
async def create_block(
    venue_id: str,
    req: BlockCreateRequest,
    service: BlockService = Depends(get_block_service),
):
    try:
        return await service.create(venue_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/{venue_id}/blocks", response_model=BlockListResponse)
async def list_blocks(
    venue_id: str,
    service: BlockService = Depends(get_block_service),
):
    try:
        return await service.list(venue_id)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.delete("/{venue_id}/blocks/{block_id}")
async def delete_block(
    venue_id: str,
    block_id: str,
    service: BlockService = Depends(get_block_service),
):
    try:
        await service.delete(venue_id, block_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return {"status": "deleted", "block_id": block_id}
