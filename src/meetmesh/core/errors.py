"""Exception hierarchy for meetmesh."""

from __future__ import annotations

from meetmesh.models.enums import MediaErrorReason

_MEDIA_GUIDANCE: dict[MediaErrorReason, str] = {
    MediaErrorReason.PERMISSION_DENIED: (
        "Camera and microphone access is required. Please allow access and try again."
    ),
    MediaErrorReason.NOT_FOUND: "No camera or microphone found. Please connect a device.",
    MediaErrorReason.DEVICE_BUSY: (
        "Your camera or microphone is in use by another application. Close it and try again."
    ),
    MediaErrorReason.UNKNOWN: "Failed to access camera/microphone. Please check permissions.",
}


class MeetMeshError(Exception):
    """Base exception for all meetmesh errors."""


class RoomStateError(MeetMeshError):
    """An operation was attempted in the wrong room state."""


class MediaAcquisitionError(MeetMeshError):
    """Local media could not be acquired. Fatal to room entry."""

    def __init__(self, reason: MediaErrorReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)

    @property
    def guidance(self) -> str:
        """User-facing message for this failure."""
        return _MEDIA_GUIDANCE[self.reason]


class SignalingError(MeetMeshError):
    """The signaling channel could not be subscribed or used."""


class PeerLinkError(MeetMeshError):
    """A single peer link failed. Never fatal to the room."""


class TranscriptionError(MeetMeshError):
    """The transcription collaborator returned an error."""

    def __init__(self, detail: str, *, status_code: int | None = None, provider: str = "") -> None:
        self.detail = detail
        self.status_code = status_code
        self.provider = provider
        prefix = f"[{provider}] " if provider else ""
        suffix = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"{prefix}{detail}{suffix}")


class StorageError(MeetMeshError):
    """An upload or write to an external store failed."""
