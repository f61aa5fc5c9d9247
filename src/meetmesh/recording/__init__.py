"""Local audio recording."""

from meetmesh.recording.base import AudioChunk, FinalizedRecording, Recorder, RecordingSession
from meetmesh.recording.mock import MockRecorder
from meetmesh.recording.track import FrameConverter, TrackRecorder, default_converter

__all__ = [
    "AudioChunk",
    "FinalizedRecording",
    "FrameConverter",
    "MockRecorder",
    "Recorder",
    "RecordingSession",
    "TrackRecorder",
    "default_converter",
]
