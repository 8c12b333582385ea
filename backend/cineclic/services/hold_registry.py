"""
Hold timer registry for realtime seat selection.

Maps (screening, seat, client) to the pending expiration of that hold.
Each entry remembers the `since` stamp written into the layout when the
hold was placed, so the expiry callback can tell whether the seat still
carries that exact hold or has since been rebooked, released or re-held.
"""

import asyncio
from typing import Awaitable, Callable, NamedTuple, Optional

from cineclic.core.logging import get_logger
from cineclic.core.metrics import active_seat_holds
from cineclic.services.seat_layout import SeatRef

logger = get_logger(__name__)


class HoldKey(NamedTuple):
    screening_id: int
    row: str
    column: int
    client_id: str

    @property
    def seat(self) -> SeatRef:
        return SeatRef(self.row, self.column)

    @classmethod
    def build(cls, screening_id: int, seat: SeatRef, client_id: str) -> "HoldKey":
        return cls(screening_id, seat.row, seat.column, client_id)


class _Timer(NamedTuple):
    handle: asyncio.TimerHandle
    since: str


ExpireCallback = Callable[[HoldKey, str], Awaitable[None]]


class HoldTimerRegistry:
    """
    Owns one cancellable timer per hold.

    Timers are `loop.call_later` handles. When one fires, its entry is
    removed and `on_expire(key, since)` runs as a task; those tasks are
    tracked so shutdown and tests can wait for them.
    """

    def __init__(self, on_expire: ExpireCallback) -> None:
        self._on_expire = on_expire
        self._timers: dict[HoldKey, _Timer] = {}
        self._expiring: set[asyncio.Task] = set()

    def arm(self, key: HoldKey, since: str, delay: float) -> None:
        """Start (or restart) the expiry timer for a hold."""
        self.cancel(key)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(delay, self._fire, key)
        self._timers[key] = _Timer(handle, since)
        active_seat_holds.set(len(self._timers))

    def cancel(self, key: HoldKey) -> bool:
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.handle.cancel()
        active_seat_holds.set(len(self._timers))
        return True

    def since(self, key: HoldKey) -> Optional[str]:
        timer = self._timers.get(key)
        return timer.since if timer else None

    def all_keys(self) -> list[HoldKey]:
        return list(self._timers)

    def keys_for_client(self, client_id: str) -> list[HoldKey]:
        return [key for key in self._timers if key.client_id == client_id]

    def keys_for_seat(self, screening_id: int, seat: SeatRef) -> list[HoldKey]:
        return [
            key for key in self._timers
            if key.screening_id == screening_id and key.seat == seat
        ]

    def cancel_all(self) -> int:
        count = len(self._timers)
        for timer in self._timers.values():
            timer.handle.cancel()
        self._timers.clear()
        active_seat_holds.set(0)
        return count

    async def wait_idle(self) -> None:
        """Wait for expiry callbacks that have already fired."""
        while self._expiring:
            await asyncio.gather(*list(self._expiring), return_exceptions=True)

    def _fire(self, key: HoldKey) -> None:
        timer = self._timers.pop(key, None)
        if timer is None:
            return
        active_seat_holds.set(len(self._timers))
        task = asyncio.get_running_loop().create_task(self._run_expiry(key, timer.since))
        self._expiring.add(task)
        task.add_done_callback(self._expiring.discard)

    async def _run_expiry(self, key: HoldKey, since: str) -> None:
        try:
            await self._on_expire(key, since)
        except Exception:
            logger.exception("hold_expiry_failed", screening_id=key.screening_id,
                             seat=key.seat.label, client_id=key.client_id)

    def __contains__(self, key: object) -> bool:
        return key in self._timers

    def __len__(self) -> int:
        return len(self._timers)
