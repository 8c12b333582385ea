"""
Per-room serialization of seat layout mutations.

CONCURRENCY STRATEGY: One asyncio.Lock per room
================================================

Problem:
  A booking commit, a cancellation, a realtime hold, a hold expiry and the
  deadline sweep all read the room's layout document, change a few seats
  and write the whole document back. Two writers that read the same
  version both "see" the seat as available and both succeed, or one
  silently erases the other's seats.

Solution:
  Every layout mutation runs inside `async with locks.hold(room_id)`.
  Inside the section the writer re-reads the room (SELECT ... FOR UPDATE,
  which PostgreSQL honors across processes), applies seat-level changes,
  and commits before the lock is released.

  Rooms are independent: a lock exists per room id, so mutations to
  different rooms run fully in parallel.

  The registry is owned by the ReservationCoordinator and lives on the
  application's event loop.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from cineclic.core.metrics import room_lock_wait


class RoomLockRegistry:
    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}

    def lock_for(self, room_id: int) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock

    def is_locked(self, room_id: int) -> bool:
        lock = self._locks.get(room_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, room_id: int) -> AsyncIterator[None]:
        lock = self.lock_for(room_id)
        started = time.perf_counter()
        async with lock:
            room_lock_wait.observe(time.perf_counter() - started)
            yield

    def __len__(self) -> int:
        return len(self._locks)
