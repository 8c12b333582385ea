from cineclic.schemas.user import UserCreate, UserResponse, UserLogin, Token
from cineclic.schemas.booking import (
    SeatRefSchema, BookingCreate, BookingResponse, BookingCancelRequest, BookingCancelResponse,
)
from cineclic.schemas.room import RoomCreate, RoomResponse, LayoutResponse, SeatStateResponse
from cineclic.schemas.screening import (
    MovieCreate, MovieResponse, ScreeningCreate, ScreeningResponse, ScreeningListResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "SeatRefSchema", "BookingCreate", "BookingResponse", "BookingCancelRequest", "BookingCancelResponse",
    "RoomCreate", "RoomResponse", "LayoutResponse", "SeatStateResponse",
    "MovieCreate", "MovieResponse", "ScreeningCreate", "ScreeningResponse", "ScreeningListResponse",
]
