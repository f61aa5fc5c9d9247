"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Coroutine
from typing import Any

import pytest

from meetmesh.core.locks import InMemoryLockManager
from meetmesh.media.mock import MockMediaSource
from meetmesh.models.participant import Participant
from meetmesh.peer.mock import MockPeerConnection
from meetmesh.recording.base import AudioChunk, Recorder
from meetmesh.room.config import MeetingConfig
from meetmesh.room.coordinator import RoomCoordinator
from meetmesh.signaling.memory import InMemorySignaling
from meetmesh.telemetry.base import TelemetryProvider
from meetmesh.transcription.publisher import TranscriptDestination, TranscriptionPublisher


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    ::

        await advance()       # 5 yields (default)
        await advance(20)     # for multi-hop signaling exchanges
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


async def eventually(
    predicate: Callable[[], bool], *, timeout: float = 2.0, message: str = ""
) -> None:
    """Wait until *predicate* holds, failing the test after *timeout* seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError(message or "condition not reached in time")
        await asyncio.sleep(0.001)


def fast_config(**overrides: Any) -> MeetingConfig:
    """Meeting config with delays short enough for tests."""
    defaults: dict[str, Any] = {
        "reannounce_delay_seconds": 0.05,
        "settle_delay_seconds": 0.02,
        "subscribe_timeout_seconds": 1.0,
    }
    defaults.update(overrides)
    return MeetingConfig(**defaults)


def pcm_chunks(
    seconds: float, *, sample_rate: int = 16000, chunk_ms: int = 500
) -> list[AudioChunk]:
    """Constant low-level 16-bit mono PCM split into chunks of *chunk_ms*."""
    per_chunk = sample_rate * chunk_ms // 1000
    count = int(seconds * 1000 // chunk_ms)
    return [
        AudioChunk(
            data=b"\x01\x00" * per_chunk,
            sample_rate=sample_rate,
            timestamp_ms=i * chunk_ms,
        )
        for i in range(count)
    ]


class RoomFactory:
    """Builds coordinators that share one signaling channel and lock manager."""

    def __init__(self, signaling: InMemorySignaling, room_id: str = "dept-1") -> None:
        self.signaling = signaling
        self.room_id = room_id
        self.locks = InMemoryLockManager()
        self.connections: dict[str, list[MockPeerConnection]] = {}
        self.supports_restart = True

    def connection_factory(self, participant_id: str) -> Callable[[Any], MockPeerConnection]:
        def _make(ice_servers: Any) -> MockPeerConnection:
            conn = MockPeerConnection(ice_servers, supports_restart=self.supports_restart)
            self.connections.setdefault(participant_id, []).append(conn)
            return conn

        return _make

    def make(
        self,
        participant_id: str,
        *,
        display_name: str | None = None,
        session_id: str | None = None,
        media_source: MockMediaSource | None = None,
        recorder: Recorder | None = None,
        publisher: TranscriptionPublisher | None = None,
        destination: TranscriptDestination | None = None,
        telemetry: TelemetryProvider | None = None,
        config: MeetingConfig | None = None,
    ) -> RoomCoordinator:
        return RoomCoordinator(
            self.room_id,
            Participant(
                id=participant_id,
                display_name=display_name or participant_id.title(),
                session_id=session_id,
            ),
            self.signaling,
            media_source or MockMediaSource(),
            self.connection_factory(participant_id),
            config=config or fast_config(),
            recorder=recorder,
            publisher=publisher,
            destination=destination,
            lock_manager=self.locks,
            telemetry=telemetry,
        )


@pytest.fixture
async def signaling() -> AsyncIterator[InMemorySignaling]:
    backend = InMemorySignaling()
    yield backend
    await backend.close()


@pytest.fixture
def rooms(signaling: InMemorySignaling) -> RoomFactory:
    return RoomFactory(signaling)
