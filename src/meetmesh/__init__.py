"""meetmesh - Async Python library for multi-party WebRTC meeting rooms."""

from meetmesh._version import __version__
from meetmesh.core.errors import (
    MediaAcquisitionError,
    MeetMeshError,
    PeerLinkError,
    RoomStateError,
    SignalingError,
    StorageError,
    TranscriptionError,
)
from meetmesh.core.locks import InMemoryLockManager, RoomLockManager
from meetmesh.media import (
    LocalMedia,
    MediaConstraints,
    MediaSource,
    MockMediaSource,
    MockTrack,
)
from meetmesh.models import (
    ChatMessage,
    IceCandidate,
    LinkRole,
    LinkState,
    MediaErrorReason,
    Participant,
    PublishStatus,
    RecordingState,
    RoomState,
    SessionDescription,
    SignalingEvent,
    SignalKind,
)
from meetmesh.peer import MockPeerConnection, PeerConnection, PeerLink, offerer_for, role_for
from meetmesh.recording import (
    AudioChunk,
    FinalizedRecording,
    MockRecorder,
    Recorder,
    RecordingSession,
    TrackRecorder,
)
from meetmesh.room import IceServer, LeaveOutcome, MeetingConfig, RoomCoordinator
from meetmesh.signaling import InMemorySignaling, SignalingChannel, SignalingHandle
from meetmesh.store import (
    ArtifactStore,
    ChatRecord,
    ChatStore,
    InMemoryArtifactStore,
    InMemoryChatStore,
    SupabaseArtifactStore,
    SupabaseChatStore,
    SupabaseConfig,
)
from meetmesh.telemetry import (
    MockTelemetryProvider,
    NoopTelemetryProvider,
    SpanKind,
    TelemetryProvider,
)
from meetmesh.transcription import (
    FallbackTranscriber,
    GoogleSpeechConfig,
    GoogleSpeechTranscriber,
    HTTPTranscriber,
    HTTPTranscriberConfig,
    MockTranscriber,
    PublishOutcome,
    Transcriber,
    TranscriptDestination,
    TranscriptionPublisher,
    WhisperConfig,
    WhisperTranscriber,
    resolve_destination,
)

__all__ = [
    "__version__",
    # Errors
    "MediaAcquisitionError",
    "MeetMeshError",
    "PeerLinkError",
    "RoomStateError",
    "SignalingError",
    "StorageError",
    "TranscriptionError",
    # Locks
    "InMemoryLockManager",
    "RoomLockManager",
    # Media
    "LocalMedia",
    "MediaConstraints",
    "MediaSource",
    "MockMediaSource",
    "MockTrack",
    # Models
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
    # Peer links
    "MockPeerConnection",
    "PeerConnection",
    "PeerLink",
    "offerer_for",
    "role_for",
    # Recording
    "AudioChunk",
    "FinalizedRecording",
    "MockRecorder",
    "Recorder",
    "RecordingSession",
    "TrackRecorder",
    # Room
    "IceServer",
    "LeaveOutcome",
    "MeetingConfig",
    "RoomCoordinator",
    # Signaling
    "InMemorySignaling",
    "SignalingChannel",
    "SignalingHandle",
    # Stores
    "ArtifactStore",
    "ChatRecord",
    "ChatStore",
    "InMemoryArtifactStore",
    "InMemoryChatStore",
    "SupabaseArtifactStore",
    "SupabaseChatStore",
    "SupabaseConfig",
    # Telemetry
    "MockTelemetryProvider",
    "NoopTelemetryProvider",
    "SpanKind",
    "TelemetryProvider",
    # Transcription
    "FallbackTranscriber",
    "GoogleSpeechConfig",
    "GoogleSpeechTranscriber",
    "HTTPTranscriber",
    "HTTPTranscriberConfig",
    "MockTranscriber",
    "PublishOutcome",
    "Transcriber",
    "TranscriptDestination",
    "TranscriptionPublisher",
    "WhisperConfig",
    "WhisperTranscriber",
    "resolve_destination",
]
