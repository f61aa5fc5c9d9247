"""Tests for data models and enums."""

from __future__ import annotations

from datetime import UTC, datetime

from meetmesh.core.errors import MediaAcquisitionError, TranscriptionError
from meetmesh.models import (
    ChatMessage,
    IceCandidate,
    MediaErrorReason,
    Participant,
    SessionDescription,
    SignalingEvent,
    SignalKind,
)


class TestSignalKind:
    def test_wire_values(self) -> None:
        assert SignalKind.JOINED == "joined"
        assert SignalKind.ICE_CANDIDATE == "ice-candidate"
        assert SignalKind.MEETING_STARTED == "meeting-started"
        assert SignalKind("presence-sync") is SignalKind.PRESENCE_SYNC


class TestSignalingEvent:
    def test_to_dict_and_from_dict(self) -> None:
        event = SignalingEvent(
            room_id="dept-1",
            kind=SignalKind.OFFER,
            sender_id="alice",
            target_id="bob",
            payload={"offer": {"type": "offer", "sdp": "v=0"}},
        )
        restored = SignalingEvent.from_dict(event.to_dict())

        assert restored == event
        assert restored.kind is SignalKind.OFFER

    def test_defaults(self) -> None:
        event = SignalingEvent(room_id="dept-1", kind=SignalKind.JOINED, sender_id="alice")
        assert event.id
        assert event.payload == {}
        assert event.target_id is None
        assert event.timestamp.tzinfo is not None

    def test_broadcast_is_addressed_to_everyone(self) -> None:
        event = SignalingEvent(room_id="r", kind=SignalKind.JOINED, sender_id="alice")
        assert event.is_addressed_to("bob")
        assert event.is_addressed_to("carol")

    def test_directed_event_is_addressed_to_target_only(self) -> None:
        event = SignalingEvent(
            room_id="r", kind=SignalKind.ANSWER, sender_id="bob", target_id="alice"
        )
        assert event.is_addressed_to("alice")
        assert not event.is_addressed_to("carol")


class TestSessionModels:
    def test_ice_candidate_uses_browser_keys(self) -> None:
        candidate = IceCandidate("candidate:1 1 udp 1 10.0.0.1 5000 typ host", "0", 0)
        data = candidate.to_dict()
        assert data == {
            "candidate": "candidate:1 1 udp 1 10.0.0.1 5000 typ host",
            "sdpMid": "0",
            "sdpMLineIndex": 0,
        }
        assert IceCandidate.from_dict(data) == candidate

    def test_ice_candidate_missing_optional_keys(self) -> None:
        candidate = IceCandidate.from_dict({"candidate": "candidate:x"})
        assert candidate.sdp_mid is None
        assert candidate.sdp_mline_index is None

    def test_candidate_key_identifies_duplicates(self) -> None:
        a = IceCandidate("candidate:x", "0", 0)
        b = IceCandidate("candidate:x", "0", 0)
        c = IceCandidate("candidate:x", "1", 1)
        assert a.key == b.key
        assert a.key != c.key

    def test_session_description_round_trip(self) -> None:
        desc = SessionDescription("answer", "v=0 answer")
        assert SessionDescription.from_dict(desc.to_dict()) == desc


class TestParticipant:
    def test_from_payload(self) -> None:
        participant = Participant.from_payload(
            "bob",
            {"display_name": "Bob", "avatar_url": "https://a/b.png", "session_id": "s1"},
        )
        assert participant.id == "bob"
        assert participant.display_name == "Bob"
        assert participant.avatar_url == "https://a/b.png"
        assert participant.session_id == "s1"
        assert participant.has_live_media is False

    def test_from_empty_payload_defaults_name(self) -> None:
        participant = Participant.from_payload("bob", {})
        assert participant.display_name == "User"
        assert participant.session_id is None


class TestChatMessage:
    def test_defaults(self) -> None:
        msg = ChatMessage(chat_id="chat-1", sender_id="alice", content="hi")
        assert msg.id is None
        assert msg.is_ai_transcript is False
        assert msg.created_at <= datetime.now(UTC)


class TestErrors:
    def test_media_error_guidance_differs_by_reason(self) -> None:
        messages = {MediaAcquisitionError(reason).guidance for reason in MediaErrorReason}
        assert len(messages) == len(MediaErrorReason)

    def test_media_error_carries_reason(self) -> None:
        exc = MediaAcquisitionError(MediaErrorReason.DEVICE_BUSY, "in use")
        assert exc.reason is MediaErrorReason.DEVICE_BUSY
        assert "device_busy" in str(exc)
        assert "another application" in exc.guidance

    def test_transcription_error_message(self) -> None:
        exc = TranscriptionError("quota", status_code=403, provider="google")
        assert str(exc) == "[google] quota (HTTP 403)"
        assert exc.status_code == 403
