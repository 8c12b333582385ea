"""
Pydantic schemas for movies and screenings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class MovieCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    duration: int = Field(..., gt=0, le=600)
    rating: float = Field(0.0, ge=0, le=10)
    poster_url: Optional[str] = Field(None, max_length=500)


class MovieResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    duration: int
    rating: float
    poster_url: Optional[str]

    model_config = {"from_attributes": True}


class ScreeningCreate(BaseModel):
    movie_id: int
    room_id: int
    start_time: datetime
    end_time: datetime
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)

    @model_validator(mode="after")
    def end_after_start(self) -> "ScreeningCreate":
        if self.start_time.tzinfo is None or self.end_time.tzinfo is None:
            raise ValueError("start_time and end_time must include a timezone")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScreeningResponse(BaseModel):
    id: int
    movie_id: int
    room_id: int
    start_time: datetime
    end_time: datetime
    price: Decimal

    model_config = {"from_attributes": True}


class ScreeningListResponse(BaseModel):
    screenings: list[ScreeningResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
