"""Telemetry provider that keeps what a room did, for test assertions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from meetmesh.telemetry.base import Attr, Span, SpanKind, TelemetryProvider


@dataclass(frozen=True)
class MetricPoint:
    """One recorded metric value."""

    name: str
    value: float
    unit: str = ""
    attributes: dict[str, Any] = field(default_factory=dict)


class MockTelemetryProvider(TelemetryProvider):
    """Keeps finished spans and metric points, queryable per room and peer.

    Example::

        telemetry = MockTelemetryProvider()
        room = RoomCoordinator(..., telemetry=telemetry)
        await room.join()
        ...
        assert telemetry.get_spans(SpanKind.PEER_NEGOTIATION, peer_id="bob")
        assert not telemetry.open_spans
    """

    def __init__(self) -> None:
        self._open: dict[str, Span] = {}
        self._finished: list[Span] = []
        self._points: list[MetricPoint] = []

    @property
    def name(self) -> str:
        return "mock"

    @property
    def open_spans(self) -> list[Span]:
        """Spans that were started and never ended."""
        return list(self._open.values())

    def get_spans(
        self,
        kind: SpanKind | None = None,
        *,
        room_id: str | None = None,
        peer_id: str | None = None,
        status: str | None = None,
    ) -> list[Span]:
        """Finished spans, narrowed by kind, room, remote peer or status."""
        return [
            span
            for span in self._finished
            if (kind is None or span.kind == kind)
            and (room_id is None or span.room_id == room_id)
            and (peer_id is None or span.attributes.get(Attr.PEER_ID) == peer_id)
            and (status is None or span.status == status)
        ]

    def get_metrics(self, name: str, *, peer_id: str | None = None) -> list[MetricPoint]:
        return [
            point
            for point in self._points
            if point.name == name
            and (peer_id is None or point.attributes.get(Attr.PEER_ID) == peer_id)
        ]

    def metric_total(self, name: str, *, peer_id: str | None = None) -> float:
        return sum(point.value for point in self.get_metrics(name, peer_id=peer_id))

    def start_span(
        self,
        kind: SpanKind,
        name: str,
        *,
        parent_id: str | None = None,
        attributes: dict[str, Any] | None = None,
        room_id: str | None = None,
    ) -> str:
        span = Span(
            kind=kind,
            name=name,
            parent_id=parent_id,
            attributes=dict(attributes or {}),
            room_id=room_id,
        )
        self._open[span.id] = span
        return span.id

    def end_span(
        self,
        span_id: str,
        *,
        status: str = "ok",
        error_message: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> None:
        # Unknown or already-ended ids are ignored.
        span = self._open.pop(span_id, None)
        if span is None:
            return
        span.end_time = datetime.now(UTC)
        span.status = status
        span.error_message = error_message
        span.attributes.update(attributes or {})
        self._finished.append(span)

    def record_metric(
        self,
        name: str,
        value: float,
        *,
        unit: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        self._points.append(MetricPoint(name, value, unit, dict(attributes or {})))
