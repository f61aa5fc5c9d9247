"""PeerLink: one negotiated media connection to one remote participant."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from meetmesh.models.enums import LinkRole, LinkState, SignalKind
from meetmesh.models.session import IceCandidate, SessionDescription
from meetmesh.peer.base import PeerConnection
from meetmesh.telemetry.base import Attr, NoopTelemetryProvider, SpanKind, TelemetryProvider

logger = logging.getLogger("meetmesh.peer")

SendSignal = Callable[[SignalKind, dict[str, Any]], Awaitable[None]]
"""Transmits a directed signaling payload to the link's remote participant."""

LinkCallback = Callable[["PeerLink"], Any]


def offerer_for(a: str, b: str) -> str:
    """Return which of two participant ids makes the offer.

    The lexicographically smaller id always offers, so both sides reach
    the same answer without negotiating and glare cannot happen.
    """
    return a if a < b else b


def role_for(local_id: str, remote_id: str) -> LinkRole:
    """The local side's role towards *remote_id*."""
    if offerer_for(local_id, remote_id) == local_id:
        return LinkRole.OFFERER
    return LinkRole.ANSWERER


class PeerLink:
    """Offer/answer/ICE state machine over a :class:`PeerConnection`.

    All negotiation steps run under a per-link lock, so a duplicated or
    re-delivered offer can never produce a second answer while the first
    is pending.  Remote candidates that arrive before the remote
    description are buffered and applied once it is set.

    The link never touches room state; it reports back through the
    ``on_remote_media``, ``on_state_change`` and ``on_restart_failed``
    callbacks.
    """

    def __init__(
        self,
        participant_id: str,
        role: LinkRole,
        connection: PeerConnection,
        send: SendSignal,
        *,
        local_tracks: Iterable[Any] = (),
        on_remote_media: LinkCallback | None = None,
        on_state_change: LinkCallback | None = None,
        on_restart_failed: LinkCallback | None = None,
        telemetry: TelemetryProvider | None = None,
        room_id: str | None = None,
    ) -> None:
        self.participant_id = participant_id
        self.role = role
        self.connection = connection
        self.local_tracks: list[Any] = list(local_tracks)
        self.remote_tracks: list[Any] = []
        self.restart_attempts = 0
        self._send = send
        self._on_remote_media = on_remote_media
        self._on_state_change = on_state_change
        self._on_restart_failed = on_restart_failed
        self._telemetry = telemetry or NoopTelemetryProvider()
        self._room_id = room_id

        self._lock = asyncio.Lock()
        self._closed = False
        self._remote_ready = False
        self._awaiting_answer = False
        self._answered_offer: str | None = None
        self._answered_offers: set[str] = set()
        self._applied_answer: str | None = None
        self._pending_candidates: list[IceCandidate] = []
        self._seen_candidates: set[tuple[str, str | None, int | None]] = set()
        self._tasks: set[asyncio.Task[None]] = set()

        for track in self.local_tracks:
            connection.add_track(track)
        connection.on_ice_candidate(self._handle_local_candidate)
        connection.on_track(self._handle_remote_track)
        connection.on_state_change(self._handle_state_change)

        self._span_id: str | None = self._telemetry.start_span(
            SpanKind.PEER_NEGOTIATION,
            f"peer.{role}",
            room_id=room_id,
            attributes={Attr.PEER_ID: participant_id, Attr.LINK_ROLE: role.value},
        )

    def __repr__(self) -> str:
        return f"PeerLink({self.participant_id!r}, {self.role}, {self.state})"

    @property
    def state(self) -> LinkState:
        if self._closed:
            return LinkState.CLOSED
        return self.connection.connection_state

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def has_live_media(self) -> bool:
        return bool(self.remote_tracks)

    @property
    def answered_offer(self) -> str | None:
        """SDP of the last remote offer this link answered."""
        return self._answered_offer

    def has_answered(self, sdp: str) -> bool:
        return sdp in self._answered_offers

    @property
    def pending_candidate_count(self) -> int:
        return len(self._pending_candidates)

    async def start(self) -> None:
        """Kick off negotiation. Offerers send their offer immediately."""
        if self.role == LinkRole.OFFERER:
            await self.send_offer()

    async def send_offer(self, *, ice_restart: bool = False) -> None:
        async with self._lock:
            if self._closed:
                return
            description = await self.create_local_offer(ice_restart=ice_restart)
        await self._send(
            SignalKind.OFFER,
            {"offer": description.to_dict(), "ice_restart": ice_restart},
        )

    async def create_local_offer(self, *, ice_restart: bool = False) -> SessionDescription:
        """Create and apply a local offer. Caller holds the negotiation lock."""
        offer = await self.connection.create_offer(ice_restart=ice_restart)
        await self.connection.set_local_description(offer)
        self._awaiting_answer = True
        return self.connection.local_description or offer

    async def create_local_answer(self) -> SessionDescription:
        """Create and apply a local answer. Caller holds the negotiation lock."""
        answer = await self.connection.create_answer()
        await self.connection.set_local_description(answer)
        return self.connection.local_description or answer

    async def apply_remote_description(self, description: SessionDescription) -> None:
        """Apply a remote offer or answer.

        Offers are answered and the answer transmitted.  Duplicate offers
        and answers are ignored.
        """
        answer: SessionDescription | None = None
        async with self._lock:
            if self._closed:
                return
            if description.type == "offer":
                answer = await self._accept_offer(description)
            elif description.type == "answer":
                await self._accept_answer(description)
            else:
                logger.warning(
                    "Ignoring %r description from %s", description.type, self.participant_id
                )
                return
        if answer is not None:
            await self._send(SignalKind.ANSWER, {"answer": answer.to_dict()})

    async def add_remote_ice_candidate(self, candidate: IceCandidate) -> None:
        """Apply a trickled remote candidate, buffering until the remote
        description is set.  Repeated candidates are ignored."""
        if self._closed or candidate.key in self._seen_candidates:
            return
        self._seen_candidates.add(candidate.key)
        if not self._remote_ready:
            self._pending_candidates.append(candidate)
            return
        await self._apply_candidate(candidate)

    async def restart_ice(self) -> None:
        """Restart ICE in place after a failure.

        The offerer follows up with an ICE-restart offer; the answerer
        waits for it.  If the runtime cannot restart, the link reports
        ``on_restart_failed`` so the owner can recreate it.
        """
        if self._closed:
            return
        self.restart_attempts += 1
        span_id = self._telemetry.start_span(
            SpanKind.PEER_ICE_RESTART,
            "peer.ice_restart",
            room_id=self._room_id,
            attributes={Attr.PEER_ID: self.participant_id, Attr.LINK_ROLE: self.role.value},
        )
        try:
            await self.connection.restart_ice()
            if self.role == LinkRole.OFFERER:
                await self.send_offer(ice_restart=True)
        except Exception as exc:
            self._telemetry.end_span(span_id, status="error", error_message=str(exc))
            logger.warning("ICE restart with %s failed: %s", self.participant_id, exc)
            if self._on_restart_failed is not None:
                await _call(self._on_restart_failed, self)
            return
        self._telemetry.end_span(span_id)
        logger.info(
            "Restarting ICE with %s (attempt %d)", self.participant_id, self.restart_attempts
        )

    async def close(self) -> None:
        """Close the link. In-flight negotiation is abandoned."""
        if self._closed:
            return
        self._closed = True
        self._pending_candidates.clear()
        for task in list(self._tasks):
            if task is not asyncio.current_task():
                task.cancel()
        try:
            await self.connection.close()
        except Exception:
            logger.exception("Error closing connection to %s", self.participant_id)
        self._end_span(status="closed")
        logger.debug("Closed link to %s", self.participant_id)

    async def _accept_offer(self, offer: SessionDescription) -> SessionDescription | None:
        if self.role == LinkRole.OFFERER:
            logger.warning("Offerer link to %s ignoring remote offer", self.participant_id)
            return None
        if offer.sdp in self._answered_offers:
            logger.debug("Duplicate offer from %s ignored", self.participant_id)
            return None
        await self.connection.set_remote_description(offer)
        self._remote_ready = True
        await self._flush_candidates()
        answer = await self.create_local_answer()
        self._answered_offer = offer.sdp
        self._answered_offers.add(offer.sdp)
        return answer

    async def _accept_answer(self, answer: SessionDescription) -> None:
        if not self._awaiting_answer:
            if answer.sdp != self._applied_answer:
                logger.debug("Unexpected answer from %s ignored", self.participant_id)
            return
        await self.connection.set_remote_description(answer)
        self._awaiting_answer = False
        self._applied_answer = answer.sdp
        self._remote_ready = True
        await self._flush_candidates()

    async def _flush_candidates(self) -> None:
        pending, self._pending_candidates = self._pending_candidates, []
        for candidate in pending:
            await self._apply_candidate(candidate)

    async def _apply_candidate(self, candidate: IceCandidate) -> None:
        try:
            await self.connection.add_ice_candidate(candidate)
        except Exception as exc:
            logger.warning("Failed to add ICE candidate from %s: %s", self.participant_id, exc)

    async def _handle_local_candidate(self, candidate: IceCandidate) -> None:
        if self._closed:
            return
        await self._send(SignalKind.ICE_CANDIDATE, {"candidate": candidate.to_dict()})

    async def _handle_remote_track(self, track: Any) -> None:
        if self._closed:
            return
        first = not self.remote_tracks
        self.remote_tracks.append(track)
        logger.info("Received %s track from %s", getattr(track, "kind", "?"), self.participant_id)
        if first and self._on_remote_media is not None:
            await _call(self._on_remote_media, self)

    async def _handle_state_change(self, state: LinkState) -> None:
        if self._closed:
            return
        logger.info("Connection state with %s: %s", self.participant_id, state)
        if state == LinkState.CONNECTED:
            self._end_span(status="ok")
        elif state == LinkState.FAILED:
            self._spawn(self.restart_ice())
        if self._on_state_change is not None:
            await _call(self._on_state_change, self)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task: asyncio.Task[None] = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Link task for %s failed: %s", self.participant_id, exc, exc_info=exc
            )

    def _end_span(self, *, status: str) -> None:
        if self._span_id is None:
            return
        span_id, self._span_id = self._span_id, None
        self._telemetry.end_span(span_id, status=status, attributes={Attr.LINK_STATE: self.state})


async def _call(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result
