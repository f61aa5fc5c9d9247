"""Peer connection ABC: the seam between PeerLink and a WebRTC runtime."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from meetmesh.models.enums import LinkState
from meetmesh.models.session import IceCandidate, SessionDescription

IceCandidateCallback = Callable[[IceCandidate], Any]
TrackCallback = Callable[[Any], Any]
"""Callback for a received remote media track."""
StateChangeCallback = Callable[[LinkState], Any]


class PeerConnection(ABC):
    """A single media connection to one remote participant.

    Callbacks may be plain functions or coroutine functions; subclasses
    fire them through :meth:`_emit`.
    """

    def __init__(self) -> None:
        self._ice_candidate_callbacks: list[IceCandidateCallback] = []
        self._track_callbacks: list[TrackCallback] = []
        self._state_callbacks: list[StateChangeCallback] = []

    @property
    @abstractmethod
    def connection_state(self) -> LinkState:
        """Current connection state."""
        ...

    @property
    @abstractmethod
    def local_description(self) -> SessionDescription | None:
        """The applied local description, including gathered candidates."""
        ...

    @property
    @abstractmethod
    def remote_description(self) -> SessionDescription | None:
        """The applied remote description."""
        ...

    @abstractmethod
    def add_track(self, track: Any) -> None:
        """Attach a local media track."""
        ...

    @abstractmethod
    async def create_offer(self, *, ice_restart: bool = False) -> SessionDescription:
        ...

    @abstractmethod
    async def create_answer(self) -> SessionDescription:
        ...

    @abstractmethod
    async def set_local_description(self, description: SessionDescription) -> None:
        ...

    @abstractmethod
    async def set_remote_description(self, description: SessionDescription) -> None:
        ...

    @abstractmethod
    async def add_ice_candidate(self, candidate: IceCandidate) -> None:
        ...

    @abstractmethod
    async def restart_ice(self) -> None:
        """Restart ICE in place.

        Raises:
            NotImplementedError: If the runtime cannot restart ICE.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    def on_ice_candidate(self, callback: IceCandidateCallback) -> None:
        """Register a callback for locally gathered ICE candidates."""
        self._ice_candidate_callbacks.append(callback)

    def on_track(self, callback: TrackCallback) -> None:
        """Register a callback for remote tracks."""
        self._track_callbacks.append(callback)

    def on_state_change(self, callback: StateChangeCallback) -> None:
        """Register a callback for connection state transitions."""
        self._state_callbacks.append(callback)

    async def _emit(self, callbacks: list[Any], *args: Any) -> None:
        for callback in list(callbacks):
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
