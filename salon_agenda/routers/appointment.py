from typing import List

from fastapi import APIRouter, Depends, Response

from salon_agenda.dependencies.services import get_appointment_service
from salon_agenda.routers.errors import http_error
from salon_agenda.schemas.appointment import (
    Appointment,
    AppointmentListRequest,
    AppointmentListResponse,
    AppointmentRequest,
    BookingResponse,
    CancelRequest,
    CancelResponse,
    CustomerCheckResponse,
)
from salon_agenda.services import AppointmentService
from salon_agenda.services.exceptions import ServiceError

router = APIRouter()


@router.post("/book", response_model=BookingResponse)
async def book_appointment(
    req: AppointmentRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.book(req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/list", response_model=AppointmentListResponse)
async def list_appointments(
    req: AppointmentListRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.list(req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/mine", response_model=List[Appointment])
async def my_appointments(
    phone: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.list_for_customer(phone)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/customer", response_model=CustomerCheckResponse)
async def check_customer(
    venue_id: str,
    phone: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.check_customer(venue_id, phone)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/{appointment_id}/cancel", response_model=CancelResponse)
async def cancel_appointment(
    appointment_id: str,
    req: CancelRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        return await service.cancel(appointment_id, req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.get("/{appointment_id}/ics")
async def download_ics(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    try:
        content = await service.calendar_file(appointment_id)
    except ServiceError as exc:
        raise http_error(exc) from exc
    return Response(
        content=content,
        media_type="text/calendar",
        headers={"Content-Disposition": f"attachment; filename=appointment-{appointment_id}.ics"},
    )
