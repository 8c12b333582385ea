"""
Catalog service: movies, rooms and screenings.

These are the scheduling facts the reservation core reads. Creating a room
builds its seat layout; after that only the ReservationCoordinator writes
to the layout.
"""

from datetime import datetime, timezone

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cineclic.core.exceptions import NotFound, ValidationError
from cineclic.core.logging import get_logger
from cineclic.models.movie import Movie
from cineclic.models.room import Room
from cineclic.models.screening import Screening
from cineclic.schemas.room import RoomCreate
from cineclic.schemas.screening import MovieCreate, ScreeningCreate
from cineclic.services.seat_layout import build_layout, count_states, seat_states

logger = get_logger(__name__)


async def create_movie(db: AsyncSession, movie_data: MovieCreate) -> Movie:
    movie = Movie(**movie_data.model_dump())
    db.add(movie)
    await db.flush()
    await db.refresh(movie)

    logger.info("movie_created", movie_id=movie.id, title=movie.title)
    return movie


async def create_room(db: AsyncSession, room_data: RoomCreate) -> Room:
    """Create a room whose seats are all available."""
    columns = list(range(1, room_data.columns + 1))
    room = Room(
        name=room_data.name,
        capacity=room_data.capacity or len(room_data.rows) * len(columns),
        layout=build_layout(room_data.rows, columns),
    )
    db.add(room)
    await db.flush()
    await db.refresh(room)

    logger.info("room_created", room_id=room.id, rows=len(room_data.rows), columns=len(columns))
    return room


async def get_room(db: AsyncSession, room_id: int) -> Room:
    room = await db.get(Room, room_id)
    if room is None:
        raise NotFound(f"Room {room_id} not found")
    return room


def describe_layout(room: Room) -> dict:
    layout = room.layout
    return {
        "room_id": room.id,
        "rows": layout["rows"],
        "columns": layout["columns"],
        "seats": seat_states(layout),
        **count_states(layout),
    }


async def create_screening(db: AsyncSession, screening_data: ScreeningCreate) -> Screening:
    """Schedule a screening. Start time must be in the future."""
    if screening_data.start_time <= datetime.now(timezone.utc):
        raise ValidationError("Screening start time must be in the future")
    if await db.get(Movie, screening_data.movie_id) is None:
        raise NotFound(f"Movie {screening_data.movie_id} not found")
    if await db.get(Room, screening_data.room_id) is None:
        raise NotFound(f"Room {screening_data.room_id} not found")

    screening = Screening(**screening_data.model_dump())
    db.add(screening)
    await db.flush()
    await db.refresh(screening)

    logger.info(
        "screening_created",
        screening_id=screening.id,
        movie_id=screening.movie_id,
        room_id=screening.room_id,
        start_time=str(screening.start_time),
    )
    return screening


async def get_screening(db: AsyncSession, screening_id: int) -> Screening:
    screening = await db.get(Screening, screening_id)
    if screening is None:
        raise NotFound(f"Screening {screening_id} not found")
    return screening


async def list_screenings(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
) -> tuple[list[Screening], int]:
    """
    List screenings with pagination.
    Uses the ix_screenings_start_time index for the upcoming filter and ordering.
    """
    query = select(Screening)

    if upcoming_only:
        query = query.where(Screening.start_time >= datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    screenings_query = (
        query
        .order_by(Screening.start_time.asc(), Screening.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(screenings_query)
    screenings = list(result.scalars().all())

    return screenings, total
