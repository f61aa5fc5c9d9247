"""Mock transcriber for testing."""

from __future__ import annotations

from meetmesh.recording.base import FinalizedRecording
from meetmesh.transcription.base import Transcriber


class MockTranscriber(Transcriber):
    """Mock transcriber for testing.

    Returns *transcript* for every call, or raises *error* when set.
    """

    def __init__(
        self, transcript: str = "Hello team", *, error: Exception | None = None
    ) -> None:
        self.transcript = transcript
        self.error = error
        self.calls: list[FinalizedRecording] = []

    async def transcribe(self, recording: FinalizedRecording) -> str:
        self.calls.append(recording)
        if self.error is not None:
            raise self.error
        return self.transcript
