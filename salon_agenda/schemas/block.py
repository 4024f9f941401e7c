from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class BlockType(str, Enum):
    BLOCK = "BLOCK"
    ARRIVAL_ORDER = "ARRIVAL_ORDER"


class BlockCreateRequest(BaseModel):
    professional_id: Optional[str] = Field(None, description="Omit for a venue-wide block")
    start_time: datetime
    end_time: datetime
    type: BlockType = BlockType.BLOCK
    reason: Optional[str] = None

    @field_validator("professional_id", mode="before")
    def empty_means_venue_wide(cls, value):
        if isinstance(value, str) and value.strip() in {"", "null"}:
            return None
        return value

    @model_validator(mode="after")
    def validate_range(self) -> "BlockCreateRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class Block(BaseModel):
    block_id: str
    venue_id: str
    professional_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    type: BlockType = BlockType.BLOCK
    reason: Optional[str] = None

    def applies_to(self, professional_id: str) -> bool:
        return self.professional_id is None or self.professional_id == professional_id


class BlockListResponse(BaseModel):
    total: int
    items: List[Block]
