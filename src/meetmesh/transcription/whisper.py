"""OpenAI Whisper transcriber (``audio/transcriptions``)."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, SecretStr

from meetmesh.core.errors import TranscriptionError
from meetmesh.recording.base import FinalizedRecording
from meetmesh.transcription.base import Transcriber, json_object

logger = logging.getLogger(__name__)


class WhisperConfig(BaseModel):
    """Configuration for :class:`WhisperTranscriber`."""

    api_key: SecretStr
    model: str = "whisper-1"
    base_url: str = "https://api.openai.com/v1"
    timeout: float = 300.0
    filename: str = "meeting-recording.wav"


class WhisperTranscriber(Transcriber):
    """Uploads the recording as a WAV file to the transcription endpoint."""

    def __init__(self, config: WhisperConfig) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Authorization": f"Bearer {config.api_key.get_secret_value()}"},
            timeout=config.timeout,
        )

    @property
    def name(self) -> str:
        return "whisper"

    async def transcribe(self, recording: FinalizedRecording) -> str:
        try:
            resp = await self._client.post(
                "/audio/transcriptions",
                files={"file": (self._config.filename, recording.to_wav(), recording.mime_type)},
                data={"model": self._config.model},
            )
        except httpx.HTTPError as exc:
            raise TranscriptionError(str(exc), provider=self.name) from exc

        if resp.status_code >= 400:
            raise TranscriptionError(resp.text, status_code=resp.status_code, provider=self.name)

        text = json_object(resp, self.name).get("text") or ""
        if not isinstance(text, str):
            raise TranscriptionError("response text is not a string", provider=self.name)
        logger.debug("Whisper returned %d characters", len(text))
        return text

    async def close(self) -> None:
        await self._client.aclose()
