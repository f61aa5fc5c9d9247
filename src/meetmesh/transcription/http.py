"""Transcriber that posts the recording to a transcription endpoint."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, Field, SecretStr

from meetmesh.core.errors import TranscriptionError
from meetmesh.recording.base import FinalizedRecording
from meetmesh.transcription.base import Transcriber, json_object

logger = logging.getLogger(__name__)


class HTTPTranscriberConfig(BaseModel):
    """Configuration for :class:`HTTPTranscriber`."""

    url: str
    api_key: SecretStr | None = None
    timeout: float = 120.0
    headers: dict[str, str] = Field(default_factory=dict)
    filename: str = "meeting-recording.wav"


class HTTPTranscriber(Transcriber):
    """Posts the recording as the multipart field ``audio``.

    The endpoint answers ``{"transcript": "..."}`` on success and
    ``{"error": "...", "details": "..."}`` with a non-2xx status on
    failure.
    """

    def __init__(self, config: HTTPTranscriberConfig) -> None:
        self._config = config
        headers = dict(config.headers)
        if config.api_key is not None:
            headers["Authorization"] = f"Bearer {config.api_key.get_secret_value()}"
        self._client = httpx.AsyncClient(headers=headers, timeout=config.timeout)

    @property
    def name(self) -> str:
        return "http"

    async def transcribe(self, recording: FinalizedRecording) -> str:
        files = {"audio": (self._config.filename, recording.to_wav(), recording.mime_type)}
        try:
            resp = await self._client.post(self._config.url, files=files)
        except httpx.HTTPError as exc:
            raise TranscriptionError(str(exc), provider=self.name) from exc

        if resp.status_code >= 400:
            raise TranscriptionError(
                _error_detail(resp), status_code=resp.status_code, provider=self.name
            )

        data = json_object(resp, self.name)
        transcript = data.get("transcript")
        if not isinstance(transcript, str):
            raise TranscriptionError("response has no transcript", provider=self.name)
        return transcript

    async def close(self) -> None:
        await self._client.aclose()


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        error = body.get("error") or "Failed to transcribe audio"
        details = body.get("details")
        return f"{error}: {details}" if details else str(error)
    return str(body)
