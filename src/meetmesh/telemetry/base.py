"""Telemetry provider ABC, the no-op default, Span, SpanKind and Attr constants."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class SpanKind(StrEnum):
    """Span classifications for telemetry."""

    ROOM_JOIN = "room.join"
    ROOM_LEAVE = "room.leave"
    SIGNALING_SUBSCRIBE = "signaling.subscribe"
    PEER_NEGOTIATION = "peer.negotiation"
    PEER_ICE_RESTART = "peer.ice_restart"
    TRANSCRIPTION = "transcription.transcribe"
    TRANSCRIPT_PUBLISH = "transcription.publish"
    CUSTOM = "custom"


class Attr:
    """Well-known attribute key constants for telemetry spans and metrics."""

    # Common
    PROVIDER = "provider"
    ROOM_ID = "room_id"
    PARTICIPANT_ID = "participant_id"

    # Peer links
    PEER_ID = "peer.id"
    LINK_ROLE = "peer.role"
    LINK_STATE = "peer.state"
    LINK_RECREATES = "peer.recreates"

    # Room
    ROOM_PARTICIPANTS = "room.participants"
    ROOM_REMAINING = "room.remaining"
    ROOM_LAST_LEAVER = "room.last_leaver"

    # Recording / transcription
    RECORDING_CHUNKS = "recording.chunks"
    RECORDING_DURATION = "recording.duration_seconds"
    TRANSCRIPT_LENGTH = "transcription.text_length"
    PUBLISH_STATUS = "transcription.publish_status"
    HTTP_STATUS = "http.status"


@dataclass
class Span:
    """Represents a telemetry span."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:16])
    kind: SpanKind = SpanKind.CUSTOM
    name: str = ""
    parent_id: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    status: str = "ok"
    error_message: str | None = None
    room_id: str | None = None

    @property
    def duration_ms(self) -> float | None:
        """Duration in milliseconds, or None if not yet ended."""
        if self.end_time is None:
            return None
        delta = self.end_time - self.start_time
        return delta.total_seconds() * 1000


class TelemetryProvider(ABC):
    """Abstract base class for telemetry providers.

    The default ``NoopTelemetryProvider`` has zero overhead.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for identification."""
        ...

    @abstractmethod
    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        parent_id: str | None = None,
        attributes: dict[str, Any] | None = None,
        room_id: str | None = None,
    ) -> str:
        """Start a new telemetry span.

        Returns:
            A unique span ID string.
        """
        ...

    @abstractmethod
    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        """End a previously started span."""
        ...

    @abstractmethod
    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        """Record a metric value."""
        ...


class NoopTelemetryProvider(TelemetryProvider):
    """Discards everything. Used when no provider is configured."""

    @property
    def name(self) -> str:
        return "noop"

    def start_span(self, kind: SpanKind, name: str, **_: Any) -> str:
        return ""

    def end_span(self, span_id: str, **_: Any) -> None:
        pass

    def record_metric(self, name: str, value: float, **_: Any) -> None:
        pass
