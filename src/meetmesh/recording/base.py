"""Recorder ABC and related data types."""

from __future__ import annotations

import asyncio
import io
import wave
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from meetmesh.models.enums import RecordingState


@dataclass(frozen=True)
class AudioChunk:
    """A chunk of PCM audio captured from the local microphone."""

    data: bytes
    sample_rate: int = 48000
    channels: int = 1
    sample_width: int = 2
    timestamp_ms: int | None = None

    @property
    def duration_seconds(self) -> float:
        frame_size = self.sample_width * self.channels
        if self.sample_rate <= 0 or frame_size <= 0:
            return 0.0
        return len(self.data) / frame_size / self.sample_rate


@dataclass
class RecordingSession:
    """Live state of one recording. Owned exclusively by its recorder."""

    id: str = field(default_factory=lambda: uuid4().hex)
    state: RecordingState = RecordingState.IDLE
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    chunks: list[AudioChunk] = field(default_factory=list)
    track: Any = None

    def observe_start(self, started_at: datetime) -> bool:
        """Adopt *started_at* if it is earlier than the current start.

        Returns True if the session start moved.
        """
        if started_at < self.started_at:
            self.started_at = started_at
            return True
        return False


@dataclass(frozen=True)
class FinalizedRecording:
    """Immutable copy of a stopped recording, handed to the publisher."""

    id: str
    chunks: tuple[AudioChunk, ...] = ()
    started_at: datetime | None = None
    stopped_at: datetime | None = None
    mime_type: str = "audio/wav"

    @property
    def is_empty(self) -> bool:
        return not any(chunk.data for chunk in self.chunks)

    @property
    def sample_rate(self) -> int:
        return self.chunks[0].sample_rate if self.chunks else 48000

    @property
    def channels(self) -> int:
        return self.chunks[0].channels if self.chunks else 1

    @property
    def sample_width(self) -> int:
        return self.chunks[0].sample_width if self.chunks else 2

    @property
    def duration_seconds(self) -> float:
        return sum(chunk.duration_seconds for chunk in self.chunks)

    @property
    def pcm(self) -> bytes:
        return b"".join(chunk.data for chunk in self.chunks)

    def to_wav(self) -> bytes:
        """Assemble the chunks into a WAV file."""
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            wf.writeframes(self.pcm)
        return buf.getvalue()

    @classmethod
    def empty(cls, started_at: datetime | None = None) -> FinalizedRecording:
        now = datetime.now(UTC)
        return cls(id=uuid4().hex, started_at=started_at or now, stopped_at=now)


class Recorder(ABC):
    """Abstract base class for local audio recorders.

    Only the local participant's audio is ever recorded.
    """

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def start(self, track: Any | None) -> RecordingSession:
        """Start capturing *track*.

        With no track, returns a session that records nothing.
        """
        ...

    @abstractmethod
    def stop(self, session: RecordingSession) -> asyncio.Task[FinalizedRecording]:
        """Stop capturing.

        Returns immediately; await the returned task for the recording
        once the final chunk has been flushed.
        """
        ...
