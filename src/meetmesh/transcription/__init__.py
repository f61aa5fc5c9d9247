"""Transcription providers and the transcript publisher."""

from meetmesh.transcription.base import Transcriber
from meetmesh.transcription.fallback import FallbackTranscriber
from meetmesh.transcription.google import GoogleSpeechConfig, GoogleSpeechTranscriber
from meetmesh.transcription.http import HTTPTranscriber, HTTPTranscriberConfig
from meetmesh.transcription.mock import MockTranscriber
from meetmesh.transcription.publisher import (
    PublishOutcome,
    TranscriptDestination,
    TranscriptionPublisher,
    resolve_destination,
    transcript_file_name,
)
from meetmesh.transcription.whisper import WhisperConfig, WhisperTranscriber

__all__ = [
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
    "transcript_file_name",
]
