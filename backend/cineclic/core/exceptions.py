"""
Booking error taxonomy and the FastAPI handlers that render it.

Services raise these instead of HTTPException so the same errors can be
reported over the realtime channel, where there is no HTTP response.
"""

from typing import Any, Iterable, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from cineclic.core.logging import get_logger

logger = get_logger(__name__)


class BookingError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "internal_error"

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "detail": self.detail}


class ValidationError(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"


class ScreeningUnavailable(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "screening_unavailable"


class SeatConflict(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "seat_conflict"

    def __init__(self, detail: str, seats: Iterable[str] = ()) -> None:
        self.seats = list(seats)
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "seats": self.seats}


class AlreadyCancelled(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "already_cancelled"


class CancellationClosed(BookingError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "cancellation_closed"


class Unauthenticated(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthenticated"


class Conflict(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error = "conflict"


class Unauthorized(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    error = "unauthorized"


class NotFound(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "not_found"


class MissingReference(NotFound):
    """A row referenced by foreign key is gone: a data integrity problem, not a client error."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "missing_reference"


class InternalError(BookingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_error"


async def booking_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, BookingError) else InternalError(str(exc))
    if error.status_code >= 500:
        logger.error("request_error", error=error.error, detail=error.detail)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": ValidationError.error, "detail": jsonable_encoder(errors)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
