"""Deterministic in-process peer connection for testing."""

from __future__ import annotations

import itertools
from typing import Any

from meetmesh.media.mock import MockTrack
from meetmesh.models.enums import LinkState
from meetmesh.models.session import IceCandidate, SessionDescription
from meetmesh.peer.base import PeerConnection

_ids = itertools.count(1)


class MockPeerConnection(PeerConnection):
    """Peer connection that "connects" once signaling has completed.

    Applying a local description gathers exactly one new candidate, which
    is trickled and, unless ``bundle_candidates`` is off, also appended to
    the local SDP the way aiortc does.  The connection reports
    ``connected`` as soon as both descriptions are set and at least one
    remote candidate arrived since the last (re)start, and then delivers
    one remote audio track.

    Like a browser, it rejects candidates before a remote description
    and answers without a pending offer.
    """

    def __init__(
        self,
        ice_servers: Any = None,
        *,
        supports_restart: bool = True,
        bundle_candidates: bool = True,
    ) -> None:
        super().__init__()
        self.label = f"pc{next(_ids)}"
        self.ice_servers = ice_servers
        self.supports_restart = supports_restart
        self.bundle_candidates = bundle_candidates
        self.local_tracks: list[Any] = []
        self.remote_candidates: list[IceCandidate] = []
        self.offers_created = 0
        self.answers_created = 0
        self.restarts = 0
        self.closed = False
        self._state = LinkState.NEW
        self._local: SessionDescription | None = None
        self._remote: SessionDescription | None = None
        self._fresh_candidates = 0
        self._gathered = 0
        self._track_sent = False

    @property
    def connection_state(self) -> LinkState:
        return self._state

    @property
    def local_description(self) -> SessionDescription | None:
        return self._local

    @property
    def remote_description(self) -> SessionDescription | None:
        return self._remote

    def add_track(self, track: Any) -> None:
        self.local_tracks.append(track)

    async def create_offer(self, *, ice_restart: bool = False) -> SessionDescription:
        self._check_open()
        self.offers_created += 1
        restart = " ice-restart" if ice_restart else ""
        sdp = f"v=0 {self.label} offer#{self.offers_created}{restart}"
        return SessionDescription("offer", sdp)

    async def create_answer(self) -> SessionDescription:
        self._check_open()
        if self._remote is None or self._remote.type != "offer":
            raise RuntimeError("create_answer called without a remote offer")
        self.answers_created += 1
        return SessionDescription("answer", f"v=0 {self.label} answer#{self.answers_created}")

    async def set_local_description(self, description: SessionDescription) -> None:
        self._check_open()
        if self._state == LinkState.NEW:
            await self._set_state(LinkState.CONNECTING)
        self._gathered += 1
        candidate = IceCandidate(
            candidate=(
                f"candidate:{self.label} {self._gathered} udp 2122260223 10.0.0.1 5000 typ host"
            ),
            sdp_mid="0",
            sdp_mline_index=0,
        )
        if self.bundle_candidates:
            description = SessionDescription(
                description.type, f"{description.sdp}\r\na={candidate.candidate}"
            )
        self._local = description
        await self._emit(self._ice_candidate_callbacks, candidate)
        await self._maybe_connect()

    async def set_remote_description(self, description: SessionDescription) -> None:
        self._check_open()
        if description.type == "answer" and (self._local is None or self._local.type != "offer"):
            raise RuntimeError("answer received without a local offer")
        self._remote = description
        self._fresh_candidates += description.sdp.count("a=candidate:")
        await self._maybe_connect()

    async def add_ice_candidate(self, candidate: IceCandidate) -> None:
        self._check_open()
        if self._remote is None:
            raise RuntimeError("remote description is not set")
        self.remote_candidates.append(candidate)
        self._fresh_candidates += 1
        await self._maybe_connect()

    async def restart_ice(self) -> None:
        self._check_open()
        if not self.supports_restart:
            raise NotImplementedError("ICE restart not supported")
        self.restarts += 1
        self._fresh_candidates = 0
        await self._set_state(LinkState.CONNECTING)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._set_state(LinkState.CLOSED)

    async def fail(self) -> None:
        """Test hook: simulate ICE failure."""
        await self._set_state(LinkState.FAILED)

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("connection is closed")

    async def _maybe_connect(self) -> None:
        if self._state in (LinkState.CONNECTED, LinkState.CLOSED):
            return
        if self._local is None or self._remote is None or self._fresh_candidates == 0:
            return
        await self._set_state(LinkState.CONNECTED)
        if not self._track_sent:
            self._track_sent = True
            await self._emit(self._track_callbacks, MockTrack("audio"))

    async def _set_state(self, state: LinkState) -> None:
        if state == self._state:
            return
        self._state = state
        await self._emit(self._state_callbacks, state)
