from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel


class NotificationEvent(BaseModel):
    event: Literal["confirmation", "reminder"]
    channels: List[str]
    venue_id: str
    appointment_id: str
    customer_name: str
    customer_phone: str
    start_time: datetime
    message: str
