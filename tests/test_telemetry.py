"""Tests for the telemetry providers."""

from __future__ import annotations

from meetmesh.telemetry import Attr, MockTelemetryProvider, NoopTelemetryProvider, SpanKind


class TestNoopTelemetryProvider:
    def test_accepts_everything(self) -> None:
        telemetry = NoopTelemetryProvider()
        span_id = telemetry.start_span(SpanKind.ROOM_JOIN, "room.join", room_id="dept-1")
        telemetry.end_span(span_id, status="error", error_message="boom")
        telemetry.record_metric("meetmesh.peer.connected", 1, attributes={Attr.PEER_ID: "b"})
        assert telemetry.name == "noop"
        assert span_id == ""


class TestMockTelemetryProvider:
    def test_span_is_open_until_ended(self) -> None:
        telemetry = MockTelemetryProvider()
        span_id = telemetry.start_span(
            SpanKind.PEER_NEGOTIATION,
            "peer.offerer",
            attributes={Attr.PEER_ID: "bob"},
            room_id="dept-1",
        )
        assert [s.id for s in telemetry.open_spans] == [span_id]
        assert telemetry.get_spans() == []

        telemetry.end_span(span_id, attributes={Attr.LINK_STATE: "connected"})

        assert telemetry.open_spans == []
        [span] = telemetry.get_spans(SpanKind.PEER_NEGOTIATION)
        assert span.status == "ok"
        assert span.attributes == {Attr.PEER_ID: "bob", Attr.LINK_STATE: "connected"}
        assert span.duration_ms is not None

    def test_spans_by_room_and_peer(self) -> None:
        telemetry = MockTelemetryProvider()
        for room, peer in (("dept-1", "bob"), ("dept-1", "carol"), ("dept-2", "bob")):
            telemetry.end_span(
                telemetry.start_span(
                    SpanKind.PEER_NEGOTIATION,
                    "peer.offerer",
                    room_id=room,
                    attributes={Attr.PEER_ID: peer},
                )
            )

        assert len(telemetry.get_spans(peer_id="bob")) == 2
        [span] = telemetry.get_spans(SpanKind.PEER_NEGOTIATION, room_id="dept-1", peer_id="bob")
        assert span.room_id == "dept-1"
        assert telemetry.get_spans(SpanKind.ROOM_JOIN, room_id="dept-1") == []

    def test_spans_by_status(self) -> None:
        telemetry = MockTelemetryProvider()
        ok = telemetry.start_span(SpanKind.PEER_ICE_RESTART, "peer.ice_restart")
        bad = telemetry.start_span(SpanKind.PEER_ICE_RESTART, "peer.ice_restart")
        telemetry.end_span(ok)
        telemetry.end_span(bad, status="error", error_message="unsupported")

        [failed] = telemetry.get_spans(SpanKind.PEER_ICE_RESTART, status="error")
        assert failed.id == bad
        assert failed.error_message == "unsupported"

    def test_parent_child(self) -> None:
        telemetry = MockTelemetryProvider()
        parent = telemetry.start_span(SpanKind.TRANSCRIPT_PUBLISH, "publish")
        child = telemetry.start_span(SpanKind.TRANSCRIPTION, "transcribe", parent_id=parent)
        telemetry.end_span(child)
        telemetry.end_span(parent)

        [span] = telemetry.get_spans(SpanKind.TRANSCRIPTION)
        assert span.parent_id == parent

    def test_ending_unknown_or_twice_is_ignored(self) -> None:
        telemetry = MockTelemetryProvider()
        telemetry.end_span("missing")
        span_id = telemetry.start_span(SpanKind.ROOM_LEAVE, "room.leave")
        telemetry.end_span(span_id)
        telemetry.end_span(span_id, status="error")

        [span] = telemetry.get_spans()
        assert span.status == "ok"

    def test_metric_points_per_peer(self) -> None:
        telemetry = MockTelemetryProvider()
        telemetry.record_metric(
            "meetmesh.peer.recreated", 1, attributes={Attr.PEER_ID: "bob", Attr.LINK_RECREATES: 1}
        )
        telemetry.record_metric(
            "meetmesh.peer.recreated", 1, attributes={Attr.PEER_ID: "bob", Attr.LINK_RECREATES: 2}
        )
        telemetry.record_metric("meetmesh.peer.recreated", 1, attributes={Attr.PEER_ID: "carol"})
        telemetry.record_metric("meetmesh.peer.connected", 1)

        assert telemetry.metric_total("meetmesh.peer.recreated") == 3
        assert telemetry.metric_total("meetmesh.peer.recreated", peer_id="bob") == 2
        last = telemetry.get_metrics("meetmesh.peer.recreated", peer_id="bob")[-1]
        assert last.attributes[Attr.LINK_RECREATES] == 2
        assert telemetry.metric_total("meetmesh.peer.missing") == 0
