"""All string enums for meetmesh."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class SignalKind(StrEnum):
    JOINED = "joined"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    MEETING_STARTED = "meeting-started"
    PRESENCE_SYNC = "presence-sync"
    LEFT = "left"


@unique
class LinkState(StrEnum):
    NEW = "new"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"
    CLOSED = "closed"


@unique
class LinkRole(StrEnum):
    OFFERER = "offerer"
    ANSWERER = "answerer"


@unique
class RoomState(StrEnum):
    IDLE = "idle"
    JOINING = "joining"
    ACTIVE = "active"
    LEAVING = "leaving"
    CLOSED = "closed"


@unique
class RecordingState(StrEnum):
    IDLE = "idle"
    RECORDING = "recording"
    STOPPED = "stopped"


@unique
class MediaErrorReason(StrEnum):
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    DEVICE_BUSY = "device_busy"
    UNKNOWN = "unknown"


@unique
class PublishStatus(StrEnum):
    PUBLISHED = "published"
    SKIPPED_EMPTY = "skipped_empty"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    TRANSCRIPTION_FAILED = "transcription_failed"
    EMPTY_TRANSCRIPT = "empty_transcript"
    UPLOAD_FAILED = "upload_failed"
    MESSAGE_FAILED = "message_failed"
    NO_DESTINATION = "no_destination"
