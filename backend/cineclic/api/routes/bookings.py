"""
Booking endpoints. Writes go through the ReservationCoordinator, which
serializes seat changes per room.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from cineclic.api.deps import get_coordinator
from cineclic.db.session import get_db
from cineclic.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCancelRequest,
    BookingCancelResponse,
)
from cineclic.services.booking_service import get_booking_by_folio, get_user_bookings
from cineclic.services.reservation_coordinator import ReservationCoordinator
from cineclic.core.security import get_current_user_id
from cineclic.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
):
    """
    Book 1-5 seats for a screening.

    Seats are validated against the room layout under the room's lock and
    marked occupied in the same transaction that writes the booking. If any
    seat is taken (occupied, or held by another viewer) nothing is written
    and the response lists the offending seats.
    """
    return await coordinator.create_booking(
        user_id=user_id,
        screening_id=booking_data.screening_id,
        seats=booking_data.seats,
        client_id=booking_data.client_id,
    )


@router.patch("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    cancel_data: Optional[BookingCancelRequest] = None,
    user_id: int = Depends(get_current_user_id),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
):
    """Cancel a booking and release its seats. Requires `{"confirm": true}`."""
    confirm = cancel_data.confirm if cancel_data else False
    result = await coordinator.cancel_booking(booking_id, user_id, confirm=confirm)
    booking = result.booking
    if result.requires_confirmation:
        return BookingCancelResponse(
            message="Confirm the cancellation by sending {\"confirm\": true}",
            booking_id=booking.id,
            folio=booking.folio,
            status=booking.status,
            requires_confirmation=True,
        )
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        folio=booking.folio,
        status=booking.status,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_user_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the authenticated user."""
    return await get_user_bookings(db, user_id)


@router.get("/folio/{folio}", response_model=BookingResponse)
async def get_booking_by_folio_endpoint(
    folio: str,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking_by_folio(db, folio, user_id)
