"""Abstract base class and types for signaling channels."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from meetmesh.models.enums import SignalKind
from meetmesh.models.signal import SignalingEvent

logger = logging.getLogger("meetmesh.signaling")

PresenceState = dict[str, dict[str, Any]]
SignalCallback = Callable[[SignalingEvent], Coroutine[Any, Any, None]]
PresenceCallback = Callable[[PresenceState], Coroutine[Any, Any, None]]


@dataclass
class SignalingHandle:
    """A subscription to one room topic, keyed by the local presence key."""

    room_id: str
    presence_key: str
    id: str = field(default_factory=lambda: uuid4().hex)
    handlers: dict[SignalKind, list[SignalCallback]] = field(default_factory=dict)
    presence_handlers: list[PresenceCallback] = field(default_factory=list)
    active: bool = True

    @property
    def topic(self) -> str:
        return f"meeting:{self.room_id}"


class SignalingChannel(ABC):
    """Abstract base for broadcast+presence signaling backends.

    Published events are delivered back to their sender as well, so
    consumers must filter on ``sender_id``.  Delivery is at-least-once
    and unordered across senders.  Presence sync always carries the full
    membership snapshot, never a diff.

    Implement this to plug in a hosted realtime service.  The library
    ships with ``InMemorySignaling`` for single-process use and tests.
    """

    @abstractmethod
    async def subscribe(self, room_id: str, *, presence_key: str) -> SignalingHandle:
        """Subscribe to a room topic.

        Raises:
            SignalingError: If the subscription fails.
        """
        ...

    @abstractmethod
    async def publish(self, handle: SignalingHandle, event: SignalingEvent) -> None:
        """Broadcast an event to every subscriber of the handle's room."""
        ...

    @abstractmethod
    async def track_presence(self, handle: SignalingHandle, metadata: dict[str, Any]) -> None:
        """Announce the handle's presence key with *metadata*."""
        ...

    @abstractmethod
    async def untrack_presence(self, handle: SignalingHandle) -> None:
        """Withdraw the handle's presence."""
        ...

    @abstractmethod
    def presence_state(self, handle: SignalingHandle) -> PresenceState:
        """Return the current presence snapshot for the handle's room."""
        ...

    @abstractmethod
    async def unsubscribe(self, handle: SignalingHandle) -> None:
        """Stop delivery to the handle and release its presence."""
        ...

    def on_event(
        self, handle: SignalingHandle, kind: SignalKind, callback: SignalCallback
    ) -> None:
        """Register *callback* for events of *kind* delivered to *handle*."""
        handle.handlers.setdefault(kind, []).append(callback)

    def on_presence_sync(self, handle: SignalingHandle, callback: PresenceCallback) -> None:
        """Register *callback* for full presence snapshots delivered to *handle*."""
        handle.presence_handlers.append(callback)

    async def dispatch(self, handle: SignalingHandle, event: SignalingEvent) -> None:
        """Route one delivered event to the handle's registered callbacks.

        A failing callback is logged and does not prevent the others from
        running.
        """
        if not handle.active:
            return
        if event.kind == SignalKind.PRESENCE_SYNC:
            state: PresenceState = event.payload.get("state", {})
            for presence_cb in list(handle.presence_handlers):
                try:
                    await presence_cb(state)
                except Exception:
                    logger.exception("Error in presence callback for %s", handle.topic)
            return

        for callback in list(handle.handlers.get(event.kind, ())):
            try:
                await callback(event)
            except Exception:
                logger.exception(
                    "Error in %s callback for %s (sender=%s)",
                    event.kind,
                    handle.topic,
                    event.sender_id,
                )

    async def close(self) -> None:
        """Clean up resources.

        Override this method in subclasses that need cleanup.
        """
        return None
