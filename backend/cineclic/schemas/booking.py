"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from cineclic.core.config import get_settings

settings = get_settings()


class SeatRefSchema(BaseModel):
    row: str = Field(..., min_length=1, max_length=5)
    column: int = Field(..., ge=1)


class BookingCreate(BaseModel):
    screening_id: int
    seats: list[SeatRefSchema] = Field(..., min_length=1, max_length=settings.MAX_SEATS_PER_BOOKING)
    # Realtime connection whose holds on these seats should count as the caller's own
    client_id: Optional[str] = Field(None, max_length=64)


class BookingResponse(BaseModel):
    id: int
    folio: str
    booking_date: datetime
    status: str
    seats: list[SeatRefSchema]
    user_id: int
    screening_id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelRequest(BaseModel):
    confirm: bool = False


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    folio: str
    status: str
    requires_confirmation: bool = False
