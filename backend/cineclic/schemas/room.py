"""
Pydantic schemas for rooms and their seat layouts.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    rows: list[str] = Field(..., min_length=1, max_length=52)
    columns: int = Field(..., gt=0, le=100)
    capacity: Optional[int] = Field(None, gt=0)

    @field_validator("rows")
    @classmethod
    def rows_unique(cls, rows: list[str]) -> list[str]:
        if any(not row or len(row) > 5 for row in rows):
            raise ValueError("Row labels must be 1-5 characters")
        if len(set(rows)) != len(rows):
            raise ValueError("Row labels must be unique")
        return rows


class RoomResponse(BaseModel):
    id: int
    name: str
    capacity: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class SeatStateResponse(BaseModel):
    row: str
    column: int
    state: str


class LayoutResponse(BaseModel):
    room_id: int
    rows: list[str]
    columns: list[int]
    seats: list[SeatStateResponse]
    available: int
    occupied: int
    selected: int
