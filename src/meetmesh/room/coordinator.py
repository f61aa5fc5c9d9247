"""RoomCoordinator: joins a meeting room and keeps one PeerLink per participant."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from meetmesh.core.errors import RoomStateError, SignalingError
from meetmesh.core.locks import InMemoryLockManager, RoomLockManager
from meetmesh.media.base import LocalMedia, MediaSource
from meetmesh.models.enums import LinkRole, LinkState, PublishStatus, RoomState, SignalKind
from meetmesh.models.participant import Participant
from meetmesh.models.session import IceCandidate, SessionDescription
from meetmesh.models.signal import SignalingEvent
from meetmesh.peer.base import PeerConnection
from meetmesh.peer.link import PeerLink, role_for
from meetmesh.recording.base import FinalizedRecording, Recorder, RecordingSession
from meetmesh.room.config import MeetingConfig
from meetmesh.signaling.base import PresenceState, SignalingChannel, SignalingHandle
from meetmesh.telemetry.base import Attr, NoopTelemetryProvider, SpanKind, TelemetryProvider
from meetmesh.transcription.publisher import (
    PublishOutcome,
    TranscriptDestination,
    TranscriptionPublisher,
)

logger = logging.getLogger("meetmesh.room")

ConnectionFactory = Callable[[list[dict[str, Any]]], PeerConnection]
"""Builds a fresh peer connection from a list of ICE server dicts."""

_LIVE_STATES = (RoomState.JOINING, RoomState.ACTIVE)


@dataclass(frozen=True)
class LeaveOutcome:
    """What happened when the local participant left."""

    was_last: bool
    remaining: int
    recording: FinalizedRecording | None = None
    publish: PublishOutcome | None = None
    error: str | None = None

    @property
    def transcript_published(self) -> bool:
        return self.publish is not None and self.publish.ok


class RoomCoordinator:
    """Drives one local participant through a meeting room.

    The coordinator owns the participant and link maps.  Signaling
    callbacks and link callbacks only ever report back to it; they never
    mutate its state themselves.  Every handler is idempotent, so
    duplicated and reordered signaling events are harmless.

    Negotiation work for a link runs in background tasks, so a slow
    peer never holds up signaling for the others.

    Args:
        room_id: The meeting room (one per department).
        local: The local participant's identity.
        signaling: Broadcast+presence channel shared by the room.
        media_source: Opens the local camera and microphone.
        connection_factory: Builds a peer connection per remote participant.
        config: Timing, ICE and media settings.
        recorder: Records the local audio track while in the room.
        publisher: Archives the transcript when this participant is the
            last to leave.
        destination: Where the transcript goes.
        lock_manager: Serializes leavers of the same room while they
            decide who is last.
        telemetry: Span and metric sink.
    """

    def __init__(
        self,
        room_id: str,
        local: Participant,
        signaling: SignalingChannel,
        media_source: MediaSource,
        connection_factory: ConnectionFactory,
        *,
        config: MeetingConfig | None = None,
        recorder: Recorder | None = None,
        publisher: TranscriptionPublisher | None = None,
        destination: TranscriptDestination | None = None,
        lock_manager: RoomLockManager | None = None,
        telemetry: TelemetryProvider | None = None,
    ) -> None:
        self.room_id = room_id
        self.local = local
        self._signaling = signaling
        self._media_source = media_source
        self._connection_factory = connection_factory
        self._config = config or MeetingConfig()
        self._recorder = recorder
        self._publisher = publisher
        self._destination = destination
        self._locks = lock_manager or InMemoryLockManager()
        self._telemetry = telemetry or NoopTelemetryProvider()

        self._state = RoomState.IDLE
        self._session_id = local.session_id or uuid4().hex
        self._participants: dict[str, Participant] = {}
        self._links: dict[str, PeerLink] = {}
        self._recreates: dict[str, int] = {}
        self._retired_sessions: set[str] = set()
        self._media: LocalMedia | None = None
        self._handle: SignalingHandle | None = None
        self._recording: RecordingSession | None = None
        self._meeting_started_at: datetime | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    def __repr__(self) -> str:
        return f"RoomCoordinator({self.room_id!r}, {self.participant_id!r}, {self._state})"

    # -- Queries ---------------------------------------------------------------

    @property
    def participant_id(self) -> str:
        return self.local.id

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def state(self) -> RoomState:
        return self._state

    @property
    def participants(self) -> dict[str, Participant]:
        """Known remote participants, keyed by id."""
        return dict(self._participants)

    @property
    def participant_count(self) -> int:
        """Number of people in the room, including the local participant."""
        if self._state in (RoomState.IDLE, RoomState.CLOSED):
            return 0
        return len(self._participants) + 1

    @property
    def links(self) -> dict[str, PeerLink]:
        return dict(self._links)

    @property
    def local_media(self) -> LocalMedia | None:
        return self._media

    @property
    def meeting_started_at(self) -> datetime | None:
        return self._meeting_started_at

    def elapsed_seconds(self, now: datetime | None = None) -> float:
        """Seconds since the earliest start any participant announced."""
        if self._meeting_started_at is None:
            return 0.0
        now = now or datetime.now(UTC)
        return max(0.0, (now - self._meeting_started_at).total_seconds())

    # -- Lifecycle -------------------------------------------------------------

    async def join(self) -> None:
        """Enter the room.

        Raises:
            RoomStateError: If the coordinator was already used.
            MediaAcquisitionError: If local media cannot be opened.
            SignalingError: If the room channel cannot be subscribed.
        """
        if self._state != RoomState.IDLE:
            raise RoomStateError(f"cannot join from state {self._state}")
        self._state = RoomState.JOINING
        span_id = self._telemetry.start_span(
            SpanKind.ROOM_JOIN,
            "room.join",
            room_id=self.room_id,
            attributes={Attr.PARTICIPANT_ID: self.participant_id},
        )
        try:
            await self._enter()
        except Exception as exc:
            logger.warning("Failed to join room %s: %s", self.room_id, exc)
            await self._teardown()
            self._state = RoomState.CLOSED
            self._telemetry.end_span(span_id, status="error", error_message=str(exc))
            raise

        self._state = RoomState.ACTIVE
        self._spawn(self._reannounce(), name=f"reannounce:{self.participant_id}")
        self._telemetry.end_span(span_id)
        logger.info("%s joined room %s", self.participant_id, self.room_id)

    async def _enter(self) -> None:
        self._media = await self._media_source.acquire(self._config.media_constraints)

        sub_span = self._telemetry.start_span(
            SpanKind.SIGNALING_SUBSCRIBE, "signaling.subscribe", room_id=self.room_id
        )
        try:
            handle = await asyncio.wait_for(
                self._signaling.subscribe(self.room_id, presence_key=self.participant_id),
                timeout=self._config.subscribe_timeout_seconds,
            )
        except TimeoutError as exc:
            self._telemetry.end_span(sub_span, status="error", error_message="timeout")
            raise SignalingError(f"timed out subscribing to room {self.room_id}") from exc
        except Exception as exc:
            self._telemetry.end_span(sub_span, status="error", error_message=str(exc))
            raise
        self._telemetry.end_span(sub_span)
        self._handle = handle

        on = functools.partial(self._signaling.on_event, handle)
        on(SignalKind.JOINED, self._on_joined)
        on(SignalKind.OFFER, self._on_offer)
        on(SignalKind.ANSWER, self._on_answer)
        on(SignalKind.ICE_CANDIDATE, self._on_ice_candidate)
        on(SignalKind.MEETING_STARTED, self._on_meeting_started)
        on(SignalKind.LEFT, self._on_left)
        self._signaling.on_presence_sync(handle, self._on_presence_sync)

        if self._recorder is not None:
            audio = self._media.audio_tracks
            track = self._media.subscribe(audio[0]) if audio else None
            self._recording = self._recorder.start(track)
            self._meeting_started_at = self._recording.started_at
        else:
            self._meeting_started_at = datetime.now(UTC)

        await self._announce_start()
        await self._signaling.track_presence(handle, self._announcement())
        await self._broadcast(SignalKind.JOINED, self._announcement())

    async def leave(self) -> LeaveOutcome:
        """Leave the room and, if this was the last participant, publish
        the transcript.

        Resources are always released.  Transcription problems are
        reported in the outcome and never raised.

        Raises:
            RoomStateError: If the room is not active.
        """
        if self._state != RoomState.ACTIVE:
            raise RoomStateError(f"cannot leave from state {self._state}")
        self._state = RoomState.LEAVING
        span_id = self._telemetry.start_span(
            SpanKind.ROOM_LEAVE,
            "room.leave",
            room_id=self.room_id,
            attributes={
                Attr.PARTICIPANT_ID: self.participant_id,
                Attr.ROOM_PARTICIPANTS: self.participant_count,
            },
        )

        recording: FinalizedRecording | None = None
        remaining = 0
        was_last = False
        error: str | None = None
        try:
            if self._recorder is not None and self._recording is not None:
                recording = await self._recorder.stop(self._recording)
            if self._handle is not None:
                remaining = await self._withdraw(self._handle)
            was_last = remaining == 0
        except Exception as exc:
            logger.exception("Error while leaving room %s", self.room_id)
            error = str(exc)
        finally:
            await self._teardown()

        publish: PublishOutcome | None = None
        if was_last and recording is not None and self._publisher is not None:
            publish = await self._publish(self._publisher, recording)
        elif not was_last:
            logger.info(
                "%s left room %s with %d remaining, not transcribing",
                self.participant_id,
                self.room_id,
                remaining,
            )

        self._state = RoomState.CLOSED
        self._telemetry.end_span(
            span_id,
            status="error" if error else "ok",
            error_message=error,
            attributes={Attr.ROOM_REMAINING: remaining, Attr.ROOM_LAST_LEAVER: was_last},
        )
        return LeaveOutcome(
            was_last=was_last,
            remaining=remaining,
            recording=recording,
            publish=publish,
            error=error,
        )

    async def _withdraw(self, handle: SignalingHandle) -> int:
        """Announce departure and count who is left.

        Runs under the room's last-leaver lock so concurrent leavers in
        this process take turns.
        """
        async with self._locks.locked(self.room_id):
            await self._broadcast(SignalKind.LEFT, {"session_id": self._session_id})
            await self._signaling.untrack_presence(handle)
            await asyncio.sleep(self._config.settle_delay_seconds)
            state = self._signaling.presence_state(handle)
        return sum(1 for key in state if key != self.participant_id)

    async def _publish(
        self, publisher: TranscriptionPublisher, recording: FinalizedRecording
    ) -> PublishOutcome:
        try:
            return await publisher.publish(recording, self._destination)
        except Exception as exc:
            logger.exception("Transcript publishing failed")
            return PublishOutcome(PublishStatus.TRANSCRIPTION_FAILED, error=str(exc))

    async def _teardown(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

        links, self._links = list(self._links.values()), {}
        for link in links:
            await self._close_link(link)

        if self._media is not None:
            self._media.stop()

        # leave() has already stopped the recorder; a failed join has not.
        # The recorder bounds its final flush itself.
        if (
            self._recorder is not None
            and self._recording is not None
            and self._state == RoomState.JOINING
        ):
            try:
                await self._recorder.stop(self._recording)
            except Exception:
                logger.exception("Error stopping the recorder of a failed join")

        if self._handle is not None:
            try:
                await self._signaling.unsubscribe(self._handle)
            except Exception:
                logger.exception("Error unsubscribing from room %s", self.room_id)

    # -- Media toggles -----------------------------------------------------------

    def set_audio_enabled(self, enabled: bool) -> bool:
        """Mute or unmute the microphone. Returns False without an audio track."""
        return self._media is not None and self._media.set_enabled("audio", enabled)

    def set_video_enabled(self, enabled: bool) -> bool:
        """Turn the camera on or off. Returns False without a video track."""
        return self._media is not None and self._media.set_enabled("video", enabled)

    # -- Signaling handlers -------------------------------------------------------

    async def _on_joined(self, event: SignalingEvent) -> None:
        if not self._accepts(event):
            return
        await self._register(event.sender_id, event.payload)
        self._ensure_link(event.sender_id)
        # Late joiners learn the earliest start from whoever is already here.
        self._spawn(self._announce_start(target_id=event.sender_id))

    async def _on_offer(self, event: SignalingEvent) -> None:
        if not self._accepts(event):
            return
        offer = event.payload.get("offer")
        if not offer:
            return
        description = SessionDescription.from_dict(offer)
        await self._register(event.sender_id, event.payload)

        link = self._links.get(event.sender_id)
        if (
            link is not None
            and link.role == LinkRole.ANSWERER
            and not event.payload.get("ice_restart")
            and link.answered_offer is not None
            and not link.has_answered(description.sdp)
        ):
            # A fresh offer on a negotiated link: the remote side recreated
            # its connection.
            logger.info("%s renegotiated from scratch, replacing link", event.sender_id)
            del self._links[event.sender_id]
            await self._close_link(link)

        link = self._ensure_link(event.sender_id, role=LinkRole.ANSWERER)
        self._spawn(link.apply_remote_description(description))

    async def _on_answer(self, event: SignalingEvent) -> None:
        if not self._accepts(event) or not self._is_current(event):
            return
        link = self._links.get(event.sender_id)
        answer = event.payload.get("answer")
        if link is None or not answer:
            logger.debug("Ignoring answer from %s without a link", event.sender_id)
            return
        self._spawn(link.apply_remote_description(SessionDescription.from_dict(answer)))

    async def _on_ice_candidate(self, event: SignalingEvent) -> None:
        if not self._accepts(event) or not self._is_current(event):
            return
        link = self._links.get(event.sender_id)
        candidate = event.payload.get("candidate")
        if link is None or not candidate:
            logger.debug("Ignoring ICE candidate from %s without a link", event.sender_id)
            return
        self._spawn(link.add_remote_ice_candidate(IceCandidate.from_dict(candidate)))

    async def _on_meeting_started(self, event: SignalingEvent) -> None:
        if not self._accepts(event):
            return
        raw = event.payload.get("started_at")
        if not raw:
            return
        started_at = datetime.fromisoformat(raw)
        if self._meeting_started_at is None or started_at < self._meeting_started_at:
            self._meeting_started_at = started_at
            logger.debug("Meeting start moved to %s", started_at.isoformat())
        if self._recording is not None:
            self._recording.observe_start(started_at)

    async def _on_left(self, event: SignalingEvent) -> None:
        if not self._accepts(event) or not self._is_current(event):
            return
        await self._remove_participant(event.sender_id)
        logger.info("%s left room %s", event.sender_id, self.room_id)

    async def _on_presence_sync(self, state: PresenceState) -> None:
        if self._state not in _LIVE_STATES:
            return
        # Presence only ever adds; participants leave through ``left`` or
        # a failed link.
        for key, metadata in state.items():
            if key == self.participant_id:
                continue
            if key not in self._participants:
                await self._register(key, metadata)
            if key not in self._links:
                self._ensure_link(key)

    def _accepts(self, event: SignalingEvent) -> bool:
        if event.sender_id == self.participant_id:
            return False
        if not event.is_addressed_to(self.participant_id):
            return False
        if event.payload.get("session_id") in self._retired_sessions:
            return False
        return self._state in _LIVE_STATES

    def _is_current(self, event: SignalingEvent) -> bool:
        """False for events from an older session of a known participant."""
        session_id = event.payload.get("session_id")
        known = self._participants.get(event.sender_id)
        if session_id is None or known is None or known.session_id is None:
            return True
        return session_id == known.session_id

    async def _register(self, participant_id: str, payload: dict[str, Any]) -> None:
        incoming = Participant.from_payload(participant_id, payload)
        known = self._participants.get(participant_id)
        if known is None:
            self._participants[participant_id] = incoming
            logger.info("Participant %s is in room %s", participant_id, self.room_id)
            return

        if incoming.session_id and known.session_id and incoming.session_id != known.session_id:
            logger.info("Participant %s rejoined, replacing link", participant_id)
            self._retired_sessions.add(known.session_id)
            self._participants[participant_id] = incoming
            self._recreates.pop(participant_id, None)
            link = self._links.pop(participant_id, None)
            if link is not None:
                await self._close_link(link)
            return

        if incoming.session_id and not known.session_id:
            known.session_id = incoming.session_id
        if payload.get("display_name"):
            known.display_name = incoming.display_name
        if payload.get("avatar_url"):
            known.avatar_url = incoming.avatar_url

    # -- Links ------------------------------------------------------------------

    def _ensure_link(self, participant_id: str, *, role: LinkRole | None = None) -> PeerLink:
        link = self._links.get(participant_id)
        if link is not None:
            return link
        if participant_id not in self._participants:
            self._participants[participant_id] = Participant(id=participant_id)
        role = role or role_for(self.participant_id, participant_id)
        link = self._create_link(participant_id, role)
        if link.role == LinkRole.OFFERER:
            self._spawn(link.start(), name=f"offer:{participant_id}")
        return link

    def _create_link(self, participant_id: str, role: LinkRole) -> PeerLink:
        connection = self._connection_factory(self._config.ice_server_dicts())
        link = PeerLink(
            participant_id,
            role,
            connection,
            functools.partial(self._send_to, participant_id),
            local_tracks=self._sender_tracks(),
            on_remote_media=self._on_remote_media,
            on_state_change=self._on_link_state,
            on_restart_failed=self._on_restart_failed,
            telemetry=self._telemetry,
            room_id=self.room_id,
        )
        self._links[participant_id] = link
        logger.debug("Created %s link to %s", role, participant_id)
        return link

    def _sender_tracks(self) -> list[Any]:
        if self._media is None:
            return []
        return [self._media.subscribe(t, buffered=False) for t in self._media.tracks]

    async def _close_link(self, link: PeerLink) -> None:
        await link.close()
        if self._media is not None:
            self._media.release(link.local_tracks)

    async def _on_remote_media(self, link: PeerLink) -> None:
        participant = self._participants.get(link.participant_id)
        if participant is not None and self._links.get(link.participant_id) is link:
            participant.has_live_media = True

    async def _on_link_state(self, link: PeerLink) -> None:
        if link.state == LinkState.CONNECTED and self._links.get(link.participant_id) is link:
            self._telemetry.record_metric(
                "meetmesh.peer.connected",
                1,
                attributes={Attr.ROOM_ID: self.room_id, Attr.PEER_ID: link.participant_id},
            )

    async def _on_restart_failed(self, link: PeerLink) -> None:
        participant_id = link.participant_id
        if self._state not in _LIVE_STATES or self._links.get(participant_id) is not link:
            return
        attempts = self._recreates.get(participant_id, 0)
        if attempts >= self._config.max_link_recreates:
            logger.warning(
                "Giving up on %s after %d link recreations", participant_id, attempts
            )
            await self._remove_participant(participant_id)
            return

        self._recreates[participant_id] = attempts + 1
        self._telemetry.record_metric(
            "meetmesh.peer.recreated",
            1,
            attributes={Attr.PEER_ID: participant_id, Attr.LINK_RECREATES: attempts + 1},
        )
        logger.info("Recreating link to %s (attempt %d)", participant_id, attempts + 1)
        del self._links[participant_id]
        await self._close_link(link)
        replacement = self._create_link(participant_id, link.role)
        if replacement.role == LinkRole.OFFERER:
            await replacement.start()

    async def _remove_participant(self, participant_id: str) -> None:
        self._participants.pop(participant_id, None)
        self._recreates.pop(participant_id, None)
        link = self._links.pop(participant_id, None)
        if link is not None:
            await self._close_link(link)

    # -- Sending ------------------------------------------------------------------

    def _announcement(self) -> dict[str, Any]:
        return {
            "display_name": self.local.display_name,
            "avatar_url": self.local.avatar_url,
            "session_id": self._session_id,
        }

    async def _broadcast(
        self,
        kind: SignalKind,
        payload: dict[str, Any],
        *,
        target_id: str | None = None,
    ) -> None:
        if self._handle is None or not self._handle.active:
            return
        event = SignalingEvent(
            room_id=self.room_id,
            kind=kind,
            sender_id=self.participant_id,
            payload=payload,
            target_id=target_id,
        )
        await self._signaling.publish(self._handle, event)

    async def _announce_start(self, *, target_id: str | None = None) -> None:
        if self._meeting_started_at is None:
            return
        await self._broadcast(
            SignalKind.MEETING_STARTED,
            {"started_at": self._meeting_started_at.isoformat()},
            target_id=target_id,
        )

    async def _send_to(self, target_id: str, kind: SignalKind, payload: dict[str, Any]) -> None:
        await self._broadcast(
            kind, {**payload, "session_id": self._session_id}, target_id=target_id
        )

    async def _reannounce(self) -> None:
        # Best effort: peers whose subscription went live after our first
        # announcement still hear about us.
        await asyncio.sleep(self._config.reannounce_delay_seconds)
        if self._state == RoomState.ACTIVE:
            logger.debug("Re-announcing %s in room %s", self.participant_id, self.room_id)
            await self._broadcast(SignalKind.JOINED, self._announcement())

    def _spawn(
        self, coro: Coroutine[Any, Any, Any], *, name: str | None = None
    ) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Unhandled exception in room task %s: %s", task.get_name(), exc, exc_info=exc
            )
