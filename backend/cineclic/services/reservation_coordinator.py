"""
Reservation coordinator: the single writer of room seat layouts.

CONCURRENCY STRATEGY: Serialized read-modify-write per room
============================================================

Problem:
  The seat layout of a room is one JSON document. Booking commits,
  cancellations, realtime holds, hold expiry and the deadline sweep all
  read it, change a few seats and write it back. Without coordination two
  bookings read the same document, both see A2 as available, and both
  succeed. Or a hold expiry writes back a copy that predates a booking
  and frees an occupied seat.

Solution:
  1. Every mutation takes the room's lock (RoomLockRegistry)
  2. Inside the lock it re-reads the room (SELECT ... FOR UPDATE,
     populate_existing so the ORM does not hand back a stale copy)
  3. Availability is validated against that fresh document
  4. Seat-level changes are applied and the booking row (if any) is
     written in the same transaction, then committed
  5. Only after the commit and the lock release are broadcasts and
     notifications scheduled, as fire-and-forget tasks

  Holds are advisory. A seat "selected" by another viewer blocks a booking,
  but the commit-time check against the layout is the authority; a hold
  never guarantees the booking will succeed.

  Hold expiry only reverts a seat that still carries the exact hold that
  armed the timer (same holder, same `since` stamp), so a seat that was
  booked, released or re-held in the meantime is left alone.
"""

import asyncio
import random
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cineclic.core.config import Settings, get_settings
from cineclic.core.exceptions import (
    AlreadyCancelled,
    CancellationClosed,
    InternalError,
    MissingReference,
    NotFound,
    ScreeningUnavailable,
    SeatConflict,
    Unauthorized,
    ValidationError,
)
from cineclic.core.logging import get_logger, job_context
from cineclic.core.metrics import (
    booking_latency,
    notification_failures,
    record_booking_attempt,
    record_cancellation,
    record_hold_operation,
    stale_hold_room_errors,
    sweep_booking_errors,
    sweep_runs,
)
from cineclic.models.booking import Booking, STATUS_ACTIVE, STATUS_CANCELLED
from cineclic.models.movie import Movie
from cineclic.models.room import Room
from cineclic.models.screening import Screening
from cineclic.models.user import User
from cineclic.services.hold_registry import HoldKey, HoldTimerRegistry
from cineclic.services.notification_service import (
    BookingNotifier,
    Recipient,
    ShowDetails,
    SWEEP_CANCELLATION_MESSAGE,
    USER_CANCELLATION_MESSAGE,
    payment_deadline_message,
)
from cineclic.services.room_locks import RoomLockRegistry
from cineclic.services.seat_layout import (
    AVAILABLE,
    OCCUPIED,
    SELECTED,
    SeatRef,
    apply_changes,
    has_seat,
    held_by,
    is_available,
    is_held_by,
    is_occupied,
    selected_state,
)

logger = get_logger(__name__)

MAX_FOLIO_ATTEMPTS = 10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Some backends (SQLite) hand back naive datetimes; every stored time is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_folio() -> str:
    """Two independent 4-digit groups, e.g. 0421-9980."""
    digits = "0123456789"
    first = "".join(random.choices(digits, k=4))
    second = "".join(random.choices(digits, k=4))
    return f"{first}-{second}"


def is_folio_clash(error: IntegrityError) -> bool:
    """True when the unique folio index rejected the insert (PostgreSQL or SQLite wording)."""
    return "folio" in str(error.orig).lower()


def hold_is_stale(state: Any, cutoff: datetime) -> bool:
    """
    A "selected" marker placed at or before `cutoff`.

    A marker whose stamp cannot be read would never expire, so it is stale too.
    """
    if not (isinstance(state, dict) and state.get("state") == SELECTED):
        return False
    try:
        since = as_utc(datetime.fromisoformat(state["since"]))
    except (KeyError, TypeError, ValueError):
        logger.warning("hold_marker_unreadable", since=state.get("since"))
        return True
    return since <= cutoff


class CancelResult(NamedTuple):
    booking: Booking
    requires_confirmation: bool


class ReservationCoordinator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        broadcaster: Any = None,
        notifier: Optional[BookingNotifier] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._session_factory = session_factory
        self._broadcaster = broadcaster
        self._notifier = notifier
        self.settings = settings or get_settings()
        self.locks = RoomLockRegistry()
        self.holds = HoldTimerRegistry(self._expire_hold)
        self._background: set[asyncio.Task] = set()
        self._sweep_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.settings.SWEEP_ENABLED and self._sweep_task is None:
            self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
            logger.info("deadline_sweep_started", interval=self.settings.SWEEP_INTERVAL_SECONDS)

    async def stop(self) -> None:
        """Stop the sweep, release every live hold and drain background work."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        for client_id in {key.client_id for key in self.holds.all_keys()}:
            await self.release_client(client_id)
        self.holds.cancel_all()
        await self.wait_idle()
        logger.info("reservation_coordinator_stopped")

    async def wait_idle(self) -> None:
        """Wait until fired hold expiries, broadcasts and notifications have finished."""
        while True:
            await self.holds.wait_idle()
            if not self._background:
                break
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        user_id: int,
        screening_id: int,
        seats: Iterable[Any],
        client_id: Optional[str] = None,
    ) -> Booking:
        """
        Book seats for a screening.

        Checks run in order and fail before anything is written:
        input shape, screening still upcoming, referenced rows present,
        then (under the room lock) every seat available. A seat selected
        by the caller's own realtime connection counts as available.
        """
        started = time.perf_counter()
        if user_id is None or screening_id is None:
            record_booking_attempt("invalid")
            raise ValidationError("user_id and screening_id are required")
        try:
            requested = self._normalize_seats(seats)
        except ValidationError:
            record_booking_attempt("invalid")
            raise

        async with self._session_factory() as session:
            try:
                screening = await self._upcoming_screening(session, screening_id)
            except ScreeningUnavailable:
                record_booking_attempt("invalid")
                raise
            user = await session.get(User, user_id)
            movie = await session.get(Movie, screening.movie_id)
            if user is None or movie is None:
                record_booking_attempt("error")
                if user is None:
                    raise MissingReference(f"User {user_id} not found")
                raise MissingReference(f"Movie {screening.movie_id} not found")

            # A rollback expires every loaded row, so read what the emails need now
            room_id = screening.room_id
            recipient = Recipient(name=user.name, email=user.email)
            title = movie.title
            starts_at = as_utc(screening.start_time)
            total_price = Decimal(str(screening.price)) * len(requested)

            async with self.locks.hold(room_id):
                for attempt in range(1, MAX_FOLIO_ATTEMPTS + 1):
                    room = await self._load_room_for_update(session, room_id)
                    conflicts = [
                        seat.label for seat in requested
                        if not self._is_bookable(room.layout, seat, client_id)
                    ]
                    if conflicts:
                        record_booking_attempt("conflict")
                        logger.warning(
                            "booking_failed_seat_conflict",
                            screening_id=screening_id,
                            user_id=user_id,
                            seats=conflicts,
                        )
                        raise SeatConflict(
                            f"Seats not available: {', '.join(conflicts)}",
                            seats=conflicts,
                        )

                    booking = Booking(
                        folio=await self._generate_folio(session),
                        booking_date=utcnow(),
                        status=STATUS_ACTIVE,
                        seats=[seat.to_dict() for seat in requested],
                        user_id=user_id,
                        screening_id=screening_id,
                    )
                    session.add(booking)
                    room.layout = apply_changes(room.layout, {seat: OCCUPIED for seat in requested})
                    try:
                        await session.commit()
                        break
                    except IntegrityError as e:
                        await session.rollback()
                        # Another room's booking took the folio between the check and the commit
                        if is_folio_clash(e) and attempt < MAX_FOLIO_ATTEMPTS:
                            logger.warning("folio_collision_on_commit", folio=booking.folio, attempt=attempt)
                            continue
                        record_booking_attempt("error")
                        logger.error("booking_commit_failed", screening_id=screening_id, error=str(e))
                        raise InternalError("Could not save seat changes") from e
                    except SQLAlchemyError as e:
                        await session.rollback()
                        record_booking_attempt("error")
                        logger.error("booking_commit_failed", screening_id=screening_id, error=str(e))
                        raise InternalError("Could not save seat changes") from e
                await session.refresh(booking)

                for seat in requested:
                    for key in self.holds.keys_for_seat(screening_id, seat):
                        self.holds.cancel(key)

            show = ShowDetails(title=title, starts_at=starts_at, room=room.name)

        record_booking_attempt("success")
        booking_latency.observe(time.perf_counter() - started)
        logger.info(
            "booking_created",
            booking_id=booking.id,
            folio=booking.folio,
            user_id=user_id,
            screening_id=screening_id,
            seats=[seat.label for seat in requested],
        )

        self._publish(screening_id, requested, OCCUPIED)
        self._spawn(self._send_confirmation(
            recipient, show, [seat.label for seat in requested], total_price, booking.folio,
        ))
        return booking

    async def cancel_booking(self, booking_id: int, user_id: int, confirm: bool = False) -> CancelResult:
        """
        Cancel a booking owned by `user_id`.

        Without `confirm` nothing is changed and the caller gets a prompt back.
        Only seats still marked occupied are released.
        """
        async with self._session_factory() as session:
            booking = await session.get(Booking, booking_id)
            if booking is None:
                raise NotFound(f"Booking {booking_id} not found")
            if booking.user_id != user_id:
                logger.warning("cancel_rejected_not_owner", booking_id=booking_id, user_id=user_id)
                raise Unauthorized("You can only cancel your own bookings")
            if booking.status == STATUS_CANCELLED:
                raise AlreadyCancelled("Booking is already cancelled")

            screening = await session.get(Screening, booking.screening_id)
            if screening is None:
                raise MissingReference(f"Screening {booking.screening_id} not found")
            cutoff = as_utc(screening.start_time) - timedelta(
                minutes=self.settings.CANCELLATION_CUTOFF_MINUTES
            )
            if utcnow() >= cutoff:
                raise CancellationClosed(
                    f"Bookings can only be cancelled up to "
                    f"{self.settings.CANCELLATION_CUTOFF_MINUTES} minutes before the screening"
                )
            if not confirm:
                return CancelResult(booking, requires_confirmation=True)

            async with self.locks.hold(screening.room_id):
                booking = await self._load_booking_for_update(session, booking_id)
                if booking.status == STATUS_CANCELLED:
                    raise AlreadyCancelled("Booking is already cancelled")
                released = await self._release_booking(session, booking, screening.room_id)
                await self._commit(session, "cancel_commit_failed", booking_id=booking_id)

            user = await session.get(User, user_id)
            recipient = Recipient(name=user.name, email=user.email) if user else None

        record_cancellation("user")
        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            folio=booking.folio,
            user_id=user_id,
            seats_released=[seat.label for seat in released],
        )
        self._publish(booking.screening_id, released, AVAILABLE)
        if recipient is not None:
            self._spawn(self._send_cancellation(recipient, booking.folio, USER_CANCELLATION_MESSAGE))
        return CancelResult(booking, requires_confirmation=False)

    # ------------------------------------------------------------------
    # Realtime holds
    # ------------------------------------------------------------------

    async def select_seat(self, screening_id: int, seat: Any, client_id: str) -> dict:
        """Place (or refresh) an advisory hold on one seat for a realtime client."""
        seat = self._coerce_seat(seat)
        async with self._session_factory() as session:
            screening = await self._upcoming_screening(session, screening_id)
            async with self.locks.hold(screening.room_id):
                room = await self._load_room_for_update(session, screening.room_id)
                if not has_seat(room.layout, seat):
                    record_hold_operation("select", "rejected")
                    raise SeatConflict(f"Seat {seat.label} does not exist", seats=[seat.label])
                if not (is_available(room.layout, seat) or is_held_by(room.layout, seat, client_id)):
                    record_hold_operation("select", "rejected")
                    raise SeatConflict(f"Seat {seat.label} is not available", seats=[seat.label])

                state = selected_state(client_id, utcnow())
                room.layout = apply_changes(room.layout, {seat: state})
                await self._commit(session, "hold_commit_failed", screening_id=screening_id)
                self.holds.arm(
                    HoldKey.build(screening_id, seat, client_id),
                    state["since"],
                    self.settings.HOLD_DURATION_SECONDS,
                )

        record_hold_operation("select", "ok")
        logger.info("seat_held", screening_id=screening_id, seat=seat.label, client_id=client_id)
        self._publish(screening_id, [seat], SELECTED, exclude=client_id)
        return state

    async def deselect_seat(self, screening_id: int, seat: Any, client_id: str) -> None:
        """Release a hold; only the holding client may do so."""
        seat = self._coerce_seat(seat)
        async with self._session_factory() as session:
            screening = await session.get(Screening, screening_id)
            if screening is None:
                raise ScreeningUnavailable(f"Screening {screening_id} not found")
            async with self.locks.hold(screening.room_id):
                room = await self._load_room_for_update(session, screening.room_id)
                holder = held_by(room.layout, seat)
                if holder is None:
                    record_hold_operation("deselect", "rejected")
                    raise SeatConflict(f"Seat {seat.label} is not held", seats=[seat.label])
                if holder != client_id:
                    record_hold_operation("deselect", "rejected")
                    raise Unauthorized(f"Seat {seat.label} is held by another viewer")

                room.layout = apply_changes(room.layout, {seat: AVAILABLE})
                await self._commit(session, "hold_commit_failed", screening_id=screening_id)
                self.holds.cancel(HoldKey.build(screening_id, seat, client_id))

        record_hold_operation("deselect", "ok")
        logger.info("seat_released", screening_id=screening_id, seat=seat.label, client_id=client_id)
        self._publish(screening_id, [seat], AVAILABLE, exclude=client_id)

    async def release_client(self, client_id: str) -> int:
        """Release every hold owned by a closed connection. Returns how many seats were freed."""
        released = 0
        for key in self.holds.keys_for_client(client_id):
            since = self.holds.since(key)
            self.holds.cancel(key)
            try:
                if await self._release_hold(key, since):
                    released += 1
                    record_hold_operation("release", "ok")
                    self._publish(key.screening_id, [key.seat], AVAILABLE)
                else:
                    record_hold_operation("release", "skipped")
            except Exception:
                logger.exception("hold_release_failed", client_id=client_id, seat=key.seat.label)
        if released:
            logger.info("client_holds_released", client_id=client_id, released=released)
        return released

    async def _expire_hold(self, key: HoldKey, since: str) -> None:
        with job_context("hold_expiry", screening_id=key.screening_id, seat=key.seat.label):
            if await self._release_hold(key, since):
                record_hold_operation("expire", "ok")
                logger.info("hold_expired", client_id=key.client_id)
                self._publish(key.screening_id, [key.seat], AVAILABLE)
            else:
                record_hold_operation("expire", "skipped")
                logger.info("hold_expiry_skipped", client_id=key.client_id)

    async def _release_hold(self, key: HoldKey, since: Optional[str]) -> bool:
        async with self._session_factory() as session:
            screening = await session.get(Screening, key.screening_id)
            if screening is None:
                return False
            async with self.locks.hold(screening.room_id):
                room = await self._load_room_for_update(session, screening.room_id)
                if not is_held_by(room.layout, key.seat, key.client_id, since):
                    return False
                room.layout = apply_changes(room.layout, {key.seat: AVAILABLE})
                await self._commit(session, "hold_commit_failed", screening_id=key.screening_id)
                return True

    async def release_stale_holds(self) -> int:
        """
        Free "selected" seats whose hold is older than the hold duration.

        Timers live in process memory, so markers written before a crash or
        restart would otherwise never expire. A room that fails is logged and
        skipped; the other rooms are still cleaned.
        """
        async with self._session_factory() as session:
            room_ids = list((await session.scalars(select(Room.id).order_by(Room.id))).all())

        released = 0
        for room_id in room_ids:
            try:
                released += await self._release_stale_room_holds(room_id)
            except Exception:
                stale_hold_room_errors.inc()
                logger.exception("stale_hold_scan_failed", room_id=room_id)
        if released:
            logger.info("stale_holds_released", released=released)
        return released

    async def _release_stale_room_holds(self, room_id: int) -> int:
        now = utcnow()
        cutoff = now - timedelta(seconds=self.settings.HOLD_DURATION_SECONDS)
        async with self._session_factory() as session:
            async with self.locks.hold(room_id):
                room = await self._load_room_for_update(session, room_id)
                stale = [
                    SeatRef(row, int(column))
                    for row, columns in room.layout.get("seats", {}).items()
                    for column, state in columns.items()
                    if hold_is_stale(state, cutoff)
                ]
                if not stale:
                    return 0
                room.layout = apply_changes(room.layout, {seat: AVAILABLE for seat in stale})
                await self._commit(session, "stale_hold_commit_failed", room_id=room_id)

            # The layout is shared by every screening in the room
            screening_ids = list((await session.scalars(
                select(Screening.id).where(Screening.room_id == room_id, Screening.start_time > now)
            )).all())

        for screening_id in screening_ids:
            for seat in stale:
                for key in self.holds.keys_for_seat(screening_id, seat):
                    self.holds.cancel(key)
            self._publish(screening_id, stale, AVAILABLE)
        record_hold_operation("stale", "ok")
        return len(stale)


    # ------------------------------------------------------------------
    # Deadline sweep
    # ------------------------------------------------------------------

    async def run_sweep(self) -> int:
        """
        Cancel ACTIVA bookings whose screening starts within the payment window.

        One failing booking is logged and skipped; the rest of the tick goes on.
        Returns the number of bookings cancelled.
        """
        now = utcnow()
        window_end = now + timedelta(minutes=self.settings.PAYMENT_WINDOW_MINUTES)
        async with self._session_factory() as session:
            result = await session.execute(
                select(Booking.id, Screening.room_id)
                .join(Screening, Booking.screening_id == Screening.id)
                .where(
                    Booking.status == STATUS_ACTIVE,
                    Screening.start_time > now,
                    Screening.start_time <= window_end,
                )
                .order_by(Screening.room_id, Booking.id)
            )
            candidates = result.all()

        cancelled = 0
        for booking_id, room_id in candidates:
            try:
                if await self._expire_booking(booking_id, room_id):
                    cancelled += 1
            except Exception:
                sweep_booking_errors.inc()
                logger.exception("sweep_booking_failed", booking_id=booking_id, room_id=room_id)

        logger.info("sweep_completed", candidates=len(candidates), cancelled=cancelled)
        return cancelled

    async def _expire_booking(self, booking_id: int, room_id: int) -> bool:
        async with self._session_factory() as session:
            async with self.locks.hold(room_id):
                booking = await self._load_booking_for_update(session, booking_id)
                if booking.status != STATUS_ACTIVE:
                    return False
                released = await self._release_booking(session, booking, room_id)
                await self._commit(session, "sweep_commit_failed", booking_id=booking_id)
            user = await session.get(User, booking.user_id)
            recipient = Recipient(name=user.name, email=user.email) if user else None

        record_cancellation("sweep")
        logger.info(
            "booking_expired",
            booking_id=booking_id,
            folio=booking.folio,
            seats_released=[seat.label for seat in released],
        )
        self._publish(booking.screening_id, released, AVAILABLE)
        if recipient is not None:
            self._spawn(self._send_cancellation(recipient, booking.folio, SWEEP_CANCELLATION_MESSAGE))
        return True

    async def _sweep_loop(self) -> None:
        while True:
            with job_context("deadline_sweep"):
                failed = False
                for step in (self.release_stale_holds, self.run_sweep):
                    try:
                        await step()
                    except Exception:
                        failed = True
                        logger.exception("sweep_step_failed", step=step.__name__)
                sweep_runs.labels(result="error" if failed else "ok").inc()
            await asyncio.sleep(self.settings.SWEEP_INTERVAL_SECONDS)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _normalize_seats(self, seats: Optional[Iterable[Any]]) -> list[SeatRef]:
        seats = list(seats or [])
        if not seats:
            raise ValidationError("At least one seat is required")
        if len(seats) > self.settings.MAX_SEATS_PER_BOOKING:
            raise ValidationError(
                f"A booking can hold at most {self.settings.MAX_SEATS_PER_BOOKING} seats"
            )
        requested = [self._coerce_seat(seat) for seat in seats]
        if len(set(requested)) != len(requested):
            raise ValidationError("Each seat can only be requested once")
        return requested

    @staticmethod
    def _coerce_seat(seat: Any) -> SeatRef:
        try:
            return SeatRef.from_value(seat)
        except ValueError as e:
            raise ValidationError(str(e)) from e

    @staticmethod
    def _is_bookable(layout: dict, seat: SeatRef, client_id: Optional[str]) -> bool:
        if is_available(layout, seat):
            return True
        return client_id is not None and is_held_by(layout, seat, client_id)

    @staticmethod
    async def _upcoming_screening(session: AsyncSession, screening_id: int) -> Screening:
        screening = await session.get(Screening, screening_id)
        if screening is None:
            raise ScreeningUnavailable(f"Screening {screening_id} not found")
        if as_utc(screening.start_time) <= utcnow():
            raise ScreeningUnavailable(f"Screening {screening_id} has already started")
        return screening

    @staticmethod
    async def _load_room_for_update(session: AsyncSession, room_id: int) -> Room:
        result = await session.execute(
            select(Room)
            .where(Room.id == room_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        room = result.scalar_one_or_none()
        if room is None:
            raise MissingReference(f"Room {room_id} not found")
        return room

    @staticmethod
    async def _load_booking_for_update(session: AsyncSession, booking_id: int) -> Booking:
        result = await session.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    async def _release_booking(self, session: AsyncSession, booking: Booking, room_id: int) -> list[SeatRef]:
        """Flip the booking's still-occupied seats to available and mark it CANCELADA."""
        room = await self._load_room_for_update(session, room_id)
        seats = [SeatRef.from_value(seat) for seat in booking.seats]
        released = [seat for seat in seats if is_occupied(room.layout, seat)]
        if released:
            room.layout = apply_changes(room.layout, {seat: AVAILABLE for seat in released})
        booking.status = STATUS_CANCELLED
        return released

    @staticmethod
    async def _generate_folio(session: AsyncSession) -> str:
        for _ in range(MAX_FOLIO_ATTEMPTS):
            folio = generate_folio()
            taken = await session.scalar(select(Booking.id).where(Booking.folio == folio))
            if taken is None:
                return folio
            logger.info("folio_collision", folio=folio)
        raise InternalError("Could not allocate a unique folio")

    @staticmethod
    async def _commit(session: AsyncSession, event: str, **context) -> None:
        """Commit layout and ledger writes together, or roll both back."""
        try:
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(event, error=str(e), **context)
            raise InternalError("Could not save seat changes") from e

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _publish(
        self,
        screening_id: int,
        seats: list[SeatRef],
        state: str,
        exclude: Optional[str] = None,
    ) -> None:
        if self._broadcaster is None or not seats:
            return
        payload = {
            "event": "seat:update",
            "screening_id": screening_id,
            "seats": [seat.to_dict() for seat in seats],
            "state": state,
        }
        self._spawn(self._broadcast(screening_id, payload, exclude))

    async def _broadcast(self, screening_id: int, payload: dict, exclude: Optional[str]) -> None:
        try:
            await self._broadcaster.broadcast(screening_id, payload, exclude=exclude)
        except Exception as e:
            logger.warning("broadcast_failed", screening_id=screening_id, error=str(e))

    async def _send_confirmation(
        self,
        recipient: Recipient,
        show: ShowDetails,
        seats: list[str],
        total_price: Decimal,
        folio: str,
    ) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.send_confirmation(
                recipient, show, seats, total_price, folio, payment_deadline_message(),
            )
        except Exception:
            notification_failures.labels(kind="confirmation").inc()
            logger.exception("notification_failed", kind="confirmation", folio=folio)

    async def _send_cancellation(self, recipient: Recipient, folio: str, message: str) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.send_cancellation(recipient, folio, message)
        except Exception:
            notification_failures.labels(kind="cancellation").inc()
            logger.exception("notification_failed", kind="cancellation", folio=folio)
