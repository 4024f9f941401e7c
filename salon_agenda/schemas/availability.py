from __future__ import annotations

import datetime as dt
from typing import List, Literal, Union

from pydantic import BaseModel, Field


class AvailabilityRequest(BaseModel):
    venue_id: str = Field(..., min_length=1)
    professional_id: str = Field(..., min_length=1)
    date: dt.date
    service_ids: List[str] = Field(..., min_length=1)


class AvailableSlots(BaseModel):
    """Bookable start times (``HH:MM``), earliest first. May be empty."""

    kind: Literal["slots"] = "slots"
    slots: List[str] = Field(default_factory=list)


class ArrivalOrder(BaseModel):
    """The day is served in walk-in order; no fixed slots are offered."""

    kind: Literal["arrival_order"] = "arrival_order"
    arrival_order: Literal[True] = True


# Each variant carries its own ``kind`` tag.
AvailabilityResponse = Union[AvailableSlots, ArrivalOrder]
