from __future__ import annotations

import datetime as dt
import re
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def digits_only(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


class AppointmentStatus(str, Enum):
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RecurrenceType(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurrenceSpec(BaseModel):
    type: RecurrenceType
    count: Optional[int] = Field(None, ge=1, description="Number of occurrences, first included")
    end_date: Optional[dt.date] = Field(None, description="Last date an occurrence may fall on")


class AppointmentRequest(BaseModel):
    venue_id: str = Field(..., min_length=1)
    professional_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    date: dt.date
    start_time: dt.time = Field(..., description="Requested start, HH:MM")
    service_ids: List[str] = Field(..., min_length=1)
    origin: Literal["client", "admin"] = "client"
    recurrence: Optional[RecurrenceSpec] = None

    @field_validator("recurrence", mode="before")
    def none_type_means_single(cls, value):
        if isinstance(value, dict) and value.get("type") in (None, "", "none"):
            return None
        return value

    @field_validator("customer_phone")
    def phone_has_digits(cls, value: str) -> str:
        if not digits_only(value):
            raise ValueError("customer_phone must contain digits")
        return value

    @field_validator("customer_name")
    def strip_name(cls, value: str) -> str:
        return value.strip()


class ServiceSnapshot(BaseModel):
    """Copy of a catalog service taken when the appointment was booked."""

    service_id: str
    name: str
    duration_minutes: int
    price: float


class Appointment(BaseModel):
    appointment_id: str
    venue_id: str
    professional_id: str
    customer_id: str
    customer_name: str
    customer_phone: str
    services: List[ServiceSnapshot]
    start_time: dt.datetime
    end_time: dt.datetime
    total_price: float
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    origin: str = "client"
    recurrence_id: Optional[str] = None
    recurrence_type: Optional[RecurrenceType] = None
    created_at: dt.datetime
    completed_at: Optional[dt.datetime] = None
    reminders: Dict[str, bool] = Field(default_factory=dict)


class CalendarLinks(BaseModel):
    google: str
    ics: str


class BookingResponse(BaseModel):
    status: str = "confirmed"
    recurrence_id: Optional[str] = None
    appointments: List[Appointment]
    links: Optional[CalendarLinks] = None


class Customer(BaseModel):
    customer_id: str
    venue_id: str
    name: str
    phone: str
    last_appointment: Optional[dt.datetime] = None


class CustomerCheckResponse(BaseModel):
    found: bool
    name: Optional[str] = None


class CancelRequest(BaseModel):
    phone: str = Field(..., min_length=1, description="Phone used when booking")
    cancel_future: bool = False


class CancelResponse(BaseModel):
    status: str = "cancelled"
    cancelled_ids: List[str]


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus


class AppointmentListRequest(BaseModel):
    venue_id: str
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    status: Optional[AppointmentStatus] = None
    page: int = Field(1, ge=1)
    page_size: int = Field(50, ge=1, le=500)

    @model_validator(mode="after")
    def validate_range(self) -> "AppointmentListRequest":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to must not be before date_from")
        return self


class AppointmentListResponse(BaseModel):
    total: int
    page: int
    page_size: int
    items: List[Appointment]
