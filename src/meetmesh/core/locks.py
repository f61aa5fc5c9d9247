"""Per-room async locking used to adjudicate the last leaver."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


class RoomLockManager(ABC):
    """Abstract base for per-room locking.

    Leavers of the same room hold this lock while they untrack presence,
    wait for it to settle and count who is left, so two people leaving
    at once cannot both conclude they are (or are not) the last one.

    Implement this to plug in a lock shared between processes, such as a
    Redis lock or a Postgres advisory lock.  ``InMemoryLockManager``
    covers single-process deployments.
    """

    @abstractmethod
    @asynccontextmanager
    async def locked(self, room_id: str) -> AsyncIterator[None]:
        """Hold the leave lock for *room_id* for the duration of the block."""
        yield  # pragma: no cover


@dataclass
class _RoomLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0

    @property
    def idle(self) -> bool:
        return self.users == 0 and not self.lock.locked()


class InMemoryLockManager(RoomLockManager):
    """In-process room locks, keeping at most *max_rooms* idle entries.

    Entries are dropped least recently used first, and never while a
    leaver holds or waits on them.
    """

    def __init__(self, max_rooms: int = 1024) -> None:
        self._rooms: OrderedDict[str, _RoomLock] = OrderedDict()
        self._max_rooms = max_rooms

    @property
    def size(self) -> int:
        """Number of rooms currently tracked."""
        return len(self._rooms)

    def users(self, room_id: str) -> int:
        """Leavers holding or waiting on the lock for *room_id*."""
        entry = self._rooms.get(room_id)
        return entry.users if entry is not None else 0

    def tracks(self, room_id: str) -> bool:
        return room_id in self._rooms

    @asynccontextmanager
    async def locked(self, room_id: str) -> AsyncIterator[None]:
        entry = self._checkout(room_id)
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1

    def _checkout(self, room_id: str) -> _RoomLock:
        entry = self._rooms.get(room_id)
        if entry is None:
            entry = self._rooms[room_id] = _RoomLock()
        else:
            self._rooms.move_to_end(room_id)
        entry.users += 1
        self._prune()
        return entry

    def _prune(self) -> None:
        excess = len(self._rooms) - self._max_rooms
        if excess <= 0:
            return
        stale = [room_id for room_id, entry in self._rooms.items() if entry.idle][:excess]
        for room_id in stale:
            del self._rooms[room_id]
