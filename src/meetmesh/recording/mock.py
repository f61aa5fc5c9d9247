"""Mock recorder for testing."""

from __future__ import annotations

import asyncio
from typing import Any

from meetmesh.models.enums import RecordingState
from meetmesh.recording.base import AudioChunk, FinalizedRecording, Recorder, RecordingSession


class MockRecorder(Recorder):
    """Recorder that returns preset chunks and tracks calls."""

    def __init__(self, chunks: list[AudioChunk] | None = None) -> None:
        self.chunks = list(chunks or [])
        self.started: list[RecordingSession] = []
        self.stopped: list[RecordingSession] = []
        self.finalized: list[FinalizedRecording] = []

    def start(self, track: Any | None) -> RecordingSession:
        session = RecordingSession(track=track)
        if track is not None:
            session.state = RecordingState.RECORDING
            session.chunks.extend(self.chunks)
        self.started.append(session)
        return session

    def stop(self, session: RecordingSession) -> asyncio.Task[FinalizedRecording]:
        session.state = RecordingState.STOPPED
        self.stopped.append(session)
        return asyncio.ensure_future(self._finalize(session))

    async def _finalize(self, session: RecordingSession) -> FinalizedRecording:
        recording = FinalizedRecording(
            id=session.id,
            chunks=tuple(session.chunks),
            started_at=session.started_at,
        )
        self.finalized.append(recording)
        return recording
