"""In-memory signaling backend using asyncio queues."""

from __future__ import annotations

import asyncio
import contextlib
import copy
import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from meetmesh.core.errors import SignalingError
from meetmesh.models.enums import SignalKind
from meetmesh.models.signal import SignalingEvent
from meetmesh.signaling.base import PresenceState, SignalingChannel, SignalingHandle

logger = logging.getLogger("meetmesh.signaling")

DeliveryFilter = Callable[[SignalingEvent, str], bool]
"""Called with (event, recipient presence key); return False to drop the delivery."""


class InMemorySignaling(SignalingChannel):
    """In-process signaling backend using asyncio queues.

    Every subscription owns a queue drained by a background task, so
    callbacks never run inside ``publish``.  Suitable for a single
    process; for real clients provide a ``SignalingChannel`` backed by
    a hosted realtime service.
    """

    def __init__(
        self,
        max_queue_size: int = 256,
        *,
        delivery_filter: DeliveryFilter | None = None,
    ) -> None:
        """Initialize the in-memory signaling backend.

        Args:
            max_queue_size: Maximum number of events queued per subscription.
                The oldest events are dropped when the queue is full.
            delivery_filter: Optional hook used to simulate lost deliveries.
        """
        self._max_queue_size = max_queue_size
        self._delivery_filter = delivery_filter
        self._subscriptions: dict[str, _Subscription] = {}
        self._rooms: dict[str, set[str]] = {}  # room_id -> handle ids
        self._presence: dict[str, dict[str, dict[str, Any]]] = {}
        self._closed = False

    async def subscribe(self, room_id: str, *, presence_key: str) -> SignalingHandle:
        if self._closed:
            raise SignalingError("signaling backend is closed")

        handle = SignalingHandle(room_id=room_id, presence_key=presence_key)
        sub = _Subscription(
            handle=handle,
            deliver=self.dispatch,
            max_queue_size=self._max_queue_size,
        )
        self._subscriptions[handle.id] = sub
        self._rooms.setdefault(room_id, set()).add(handle.id)
        sub.start()
        logger.debug("Subscribed %s to %s", presence_key, handle.topic)
        return handle

    async def publish(self, handle: SignalingHandle, event: SignalingEvent) -> None:
        if handle.id not in self._subscriptions:
            raise SignalingError(f"handle {handle.id} is not subscribed")
        await self._fan_out(handle.room_id, event)

    async def track_presence(self, handle: SignalingHandle, metadata: dict[str, Any]) -> None:
        if handle.id not in self._subscriptions:
            raise SignalingError(f"handle {handle.id} is not subscribed")
        self._presence.setdefault(handle.room_id, {})[handle.presence_key] = dict(metadata)
        await self._sync_presence(handle.room_id)

    async def untrack_presence(self, handle: SignalingHandle) -> None:
        members = self._presence.get(handle.room_id)
        if members is None or members.pop(handle.presence_key, None) is None:
            return
        if not members:
            del self._presence[handle.room_id]
        await self._sync_presence(handle.room_id)

    def presence_state(self, handle: SignalingHandle) -> PresenceState:
        return copy.deepcopy(self._presence.get(handle.room_id, {}))

    async def unsubscribe(self, handle: SignalingHandle) -> None:
        sub = self._subscriptions.pop(handle.id, None)
        if sub is None:
            return
        handle.active = False

        room_subs = self._rooms.get(handle.room_id)
        if room_subs:
            room_subs.discard(handle.id)
            if not room_subs:
                del self._rooms[handle.room_id]

        await sub.stop()
        await self.untrack_presence(handle)

    async def close(self) -> None:
        """Stop all subscriptions and clean up."""
        self._closed = True
        for sub in list(self._subscriptions.values()):
            sub.handle.active = False
            await sub.stop()
        self._subscriptions.clear()
        self._rooms.clear()
        self._presence.clear()

    @property
    def subscription_count(self) -> int:
        """Return the number of active subscriptions."""
        return len(self._subscriptions)

    async def _sync_presence(self, room_id: str) -> None:
        state = copy.deepcopy(self._presence.get(room_id, {}))
        event = SignalingEvent(
            room_id=room_id,
            kind=SignalKind.PRESENCE_SYNC,
            sender_id="",
            payload={"state": state},
        )
        await self._fan_out(room_id, event)

    async def _fan_out(self, room_id: str, event: SignalingEvent) -> None:
        if self._closed:
            return
        for handle_id in list(self._rooms.get(room_id, ())):
            sub = self._subscriptions.get(handle_id)
            if sub is None:
                continue
            recipient = sub.handle.presence_key
            if self._delivery_filter is not None and not self._delivery_filter(event, recipient):
                logger.debug("Dropped %s from %s to %s", event.kind, event.sender_id, recipient)
                continue
            await sub.enqueue(event)


class _Subscription:
    """Internal subscription handler with queue and background task."""

    def __init__(
        self,
        handle: SignalingHandle,
        deliver: Callable[[SignalingHandle, SignalingEvent], Any],
        max_queue_size: int,
    ) -> None:
        self.handle = handle
        self._deliver = deliver
        self._queue: OrderedDict[str, SignalingEvent] = OrderedDict()
        self._max_queue_size = max_queue_size
        self._event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    async def enqueue(self, event: SignalingEvent) -> None:
        """Add an event to the queue, dropping oldest if full."""
        if self._stopped:
            return

        while len(self._queue) >= self._max_queue_size:
            self._queue.popitem(last=False)

        # Re-publishing the same event object while it is still queued
        # moves it to the back instead of delivering it twice.
        self._queue.pop(event.id, None)
        self._queue[event.id] = event
        self._event.set()

    def start(self) -> None:
        """Start the background task that drains the queue."""
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background task."""
        self._stopped = True
        self._event.set()
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

    async def _run(self) -> None:
        """Background task that drains the queue and invokes callbacks."""
        while not self._stopped:
            await self._event.wait()
            self._event.clear()

            while self._queue and not self._stopped:
                _, event = self._queue.popitem(last=False)
                try:
                    await self._deliver(self.handle, event)
                except Exception:
                    logger.exception("Error delivering %s to %s", event.kind, self.handle.topic)
