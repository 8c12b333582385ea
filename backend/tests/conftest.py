"""
Pytest fixtures for test database, client, coordinator and authentication.

Each test gets its own SQLite file (or TEST_DATABASE_URL when set) so the
coordinator's sessions and the request sessions see the same committed data.
"""

import os

# Must be set before the application settings are first read
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("SWEEP_ENABLED", "false")

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from cineclic.main import app
from cineclic.core.config import get_settings
from cineclic.core.security import create_access_token, hash_password
from cineclic.db.base import Base
from cineclic.db.session import get_db
from cineclic.models import Booking, Movie, Room, Screening, User
from cineclic.realtime.connection_manager import ConnectionManager
from cineclic.services.notification_service import BookingNotifier, LoggingEmailSender
from cineclic.services.reservation_coordinator import ReservationCoordinator
from cineclic.services.seat_layout import build_layout


class RecordingBroadcaster:
    """Stands in for the ConnectionManager; keeps every broadcast."""

    def __init__(self) -> None:
        self.messages: list[tuple[int, dict, str | None]] = []

    async def broadcast(self, screening_id: int, payload: dict, exclude: str | None = None) -> None:
        self.messages.append((screening_id, payload, exclude))

    def updates(self, state: str) -> list[dict]:
        return [payload for _, payload, _ in self.messages if payload["state"] == state]


def build_coordinator(session_factory, broadcaster=None, sender=None, **overrides) -> ReservationCoordinator:
    settings = get_settings().model_copy(update={"SWEEP_ENABLED": False, **overrides})
    notifier = BookingNotifier(sender) if sender is not None else None
    return ReservationCoordinator(
        session_factory,
        broadcaster=broadcaster,
        notifier=notifier,
        settings=settings,
    )


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'cineclic_test.db'}"
    engine = create_async_engine(url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest_asyncio.fixture
async def email_sender() -> LoggingEmailSender:
    return LoggingEmailSender("CineClic <test@cineclic.com>")


@pytest_asyncio.fixture
async def coordinator(session_factory, broadcaster, email_sender) -> AsyncGenerator[ReservationCoordinator, None]:
    coordinator = build_coordinator(session_factory, broadcaster, email_sender)
    yield coordinator
    await coordinator.stop()


@pytest_asyncio.fixture
async def client(session_factory, coordinator) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database and the test coordinator."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    # The lifespan hook does not run under ASGITransport
    app.state.coordinator = coordinator
    app.state.connections = ConnectionManager()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(db_session: AsyncSession, email: str, name: str) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=hash_password("testpassword123"),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "test@example.com", "Test User")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "other@example.com", "Other User")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    token = create_access_token(data={"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def other_auth_headers(other_user: User) -> dict:
    token = create_access_token(data={"sub": str(other_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def movie(db_session: AsyncSession) -> Movie:
    movie = Movie(title="Test Movie", description="A test movie", duration=120, rating=8.1)
    db_session.add(movie)
    await db_session.commit()
    await db_session.refresh(movie)
    return movie


async def _create_room(db_session: AsyncSession, name: str) -> Room:
    room = Room(name=name, capacity=10, layout=build_layout(["A", "B"], [1, 2, 3, 4, 5]))
    db_session.add(room)
    await db_session.commit()
    await db_session.refresh(room)
    return room


@pytest_asyncio.fixture
async def room(db_session: AsyncSession) -> Room:
    """Two rows (A, B) of five seats, all available."""
    return await _create_room(db_session, "Sala 1")


@pytest_asyncio.fixture
async def second_room(db_session: AsyncSession) -> Room:
    return await _create_room(db_session, "Sala 2")


async def _create_screening(db_session: AsyncSession, movie: Movie, room: Room, starts_in: timedelta) -> Screening:
    start = datetime.now(timezone.utc) + starts_in
    screening = Screening(
        movie_id=movie.id,
        room_id=room.id,
        start_time=start,
        end_time=start + timedelta(minutes=movie.duration),
        price=Decimal("85.50"),
    )
    db_session.add(screening)
    await db_session.commit()
    await db_session.refresh(screening)
    return screening


@pytest_asyncio.fixture
async def future_screening(db_session: AsyncSession, movie: Movie, room: Room) -> Screening:
    """Two days out: bookable and cancellable."""
    return await _create_screening(db_session, movie, room, timedelta(days=2))


@pytest_asyncio.fixture
async def soon_screening(db_session: AsyncSession, movie: Movie, second_room: Room) -> Screening:
    """Starts in ten minutes: inside the payment window and past the cancellation cutoff."""
    return await _create_screening(db_session, movie, second_room, timedelta(minutes=10))


@pytest_asyncio.fixture
async def past_screening(db_session: AsyncSession, movie: Movie, room: Room) -> Screening:
    return await _create_screening(db_session, movie, room, timedelta(hours=-1))


async def load_room(session_factory, room_id: int) -> Room:
    """Read the committed room in a fresh session."""
    async with session_factory() as session:
        return await session.get(Room, room_id)


async def load_booking(session_factory, booking_id: int) -> Booking:
    async with session_factory() as session:
        return await session.get(Booking, booking_id)
