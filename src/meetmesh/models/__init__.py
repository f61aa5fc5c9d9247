"""Data models."""

from meetmesh.models.chat import ChatMessage
from meetmesh.models.enums import (
    LinkRole,
    LinkState,
    MediaErrorReason,
    PublishStatus,
    RecordingState,
    RoomState,
    SignalKind,
)
from meetmesh.models.participant import Participant
from meetmesh.models.session import IceCandidate, SessionDescription
from meetmesh.models.signal import SignalingEvent

__all__ = [
    "ChatMessage",
    "IceCandidate",
    "LinkRole",
    "LinkState",
    "MediaErrorReason",
    "Participant",
    "PublishStatus",
    "RecordingState",
    "RoomState",
    "SessionDescription",
    "SignalKind",
    "SignalingEvent",
]
