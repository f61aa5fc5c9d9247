"""Recorder that pulls frames from a local audio track."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from meetmesh.models.enums import RecordingState
from meetmesh.recording.base import AudioChunk, FinalizedRecording, Recorder, RecordingSession

logger = logging.getLogger(__name__)

FrameConverter = Callable[[Any], AudioChunk]


def default_converter(frame: Any) -> AudioChunk:
    """Accept ``AudioChunk`` frames as-is and wrap raw PCM bytes."""
    if isinstance(frame, AudioChunk):
        return frame
    if isinstance(frame, bytes | bytearray):
        return AudioChunk(data=bytes(frame))
    raise TypeError(f"cannot convert {type(frame).__name__} to AudioChunk; pass a converter")


class TrackRecorder(Recorder):
    """Buffers every frame of the local audio track in memory.

    Runtime frames are turned into chunks by *converter*; use
    :class:`meetmesh.media.rtc.AvFrameConverter` for aiortc tracks.

    Args:
        converter: Turns one track frame into an :class:`AudioChunk`.
        flush_timeout: How long ``stop`` keeps collecting frames that are
            already in flight before the capture is cancelled.
    """

    def __init__(
        self,
        converter: FrameConverter = default_converter,
        *,
        flush_timeout: float = 0.25,
    ) -> None:
        self._converter = converter
        self._flush_timeout = flush_timeout
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def start(self, track: Any | None) -> RecordingSession:
        session = RecordingSession(track=track)
        if track is None:
            logger.warning("No audio track available for recording")
            return session

        session.state = RecordingState.RECORDING
        self._tasks[session.id] = asyncio.create_task(self._capture(session, track))
        logger.info("Recording started (session=%s)", session.id)
        return session

    def stop(self, session: RecordingSession) -> asyncio.Task[FinalizedRecording]:
        task = self._tasks.pop(session.id, None)
        if session.state == RecordingState.RECORDING:
            logger.info("Recording stopped (session=%s)", session.id)
        session.state = RecordingState.STOPPED
        return asyncio.ensure_future(self._finalize(session, task))

    async def _capture(self, session: RecordingSession, track: Any) -> None:
        while True:
            try:
                frame = await track.recv()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.debug("Audio track ended (session=%s): %s", session.id, exc)
                return
            try:
                chunk = self._converter(frame)
            except Exception:
                logger.exception("Dropping unconvertible audio frame")
                continue
            if chunk.data:
                session.chunks.append(chunk)

    async def _finalize(
        self, session: RecordingSession, task: asyncio.Task[None] | None
    ) -> FinalizedRecording:
        if task is not None:
            done, _ = await asyncio.wait({task}, timeout=self._flush_timeout)
            if not done:
                task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        recording = FinalizedRecording(
            id=session.id,
            chunks=tuple(session.chunks),
            started_at=session.started_at,
            stopped_at=datetime.now(UTC),
        )
        logger.debug(
            "Recording %s finalized: %d chunks, %.1fs",
            session.id,
            len(recording.chunks),
            recording.duration_seconds,
        )
        return recording
