"""
Read side of the booking ledger.

Writes (create, cancel, sweep) go through ReservationCoordinator, which
owns the room locks; these queries only read committed rows.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cineclic.core.exceptions import NotFound, Unauthorized
from cineclic.models.booking import Booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Get all bookings for a user, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.booking_date.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def get_booking_by_folio(db: AsyncSession, folio: str, user_id: int) -> Booking:
    """Look up a booking by its folio. Only the owner may see it."""
    result = await db.execute(select(Booking).where(Booking.folio == folio))
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound(f"No booking found for folio {folio}")
    if booking.user_id != user_id:
        raise Unauthorized("You can only view your own bookings")
    return booking
