"""Google Cloud Speech-to-Text transcriber (synchronous ``speech:recognize``)."""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx
from pydantic import BaseModel, SecretStr

from meetmesh.core.errors import TranscriptionError
from meetmesh.recording.base import FinalizedRecording
from meetmesh.transcription.base import Transcriber, json_object

logger = logging.getLogger(__name__)


class GoogleSpeechConfig(BaseModel):
    """Configuration for :class:`GoogleSpeechTranscriber`."""

    api_key: SecretStr
    language_code: str = "en-US"
    enable_automatic_punctuation: bool = True
    base_url: str = "https://speech.googleapis.com/v1"
    timeout: float = 60.0


class GoogleSpeechTranscriber(Transcriber):
    """Sends the recording as LINEAR16 PCM.

    The synchronous API rejects audio longer than about a minute with
    HTTP 400; wrap this in a :class:`FallbackTranscriber` for longer
    meetings.
    """

    def __init__(self, config: GoogleSpeechConfig) -> None:
        self._config = config
        self._client = httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout)

    @property
    def name(self) -> str:
        return "google"

    def _build_body(self, recording: FinalizedRecording) -> dict[str, Any]:
        return {
            "config": {
                "encoding": "LINEAR16",
                "sampleRateHertz": recording.sample_rate,
                "audioChannelCount": recording.channels,
                "languageCode": self._config.language_code,
                "enableAutomaticPunctuation": self._config.enable_automatic_punctuation,
            },
            "audio": {"content": base64.b64encode(recording.pcm).decode("ascii")},
        }

    async def transcribe(self, recording: FinalizedRecording) -> str:
        logger.debug(
            "Google transcription request: %d bytes at %d Hz",
            len(recording.pcm),
            recording.sample_rate,
        )
        try:
            resp = await self._client.post(
                "/speech:recognize",
                params={"key": self._config.api_key.get_secret_value()},
                json=self._build_body(recording),
            )
        except httpx.HTTPError as exc:
            raise TranscriptionError(str(exc), provider=self.name) from exc

        if resp.status_code >= 400:
            raise TranscriptionError(
                _error_message(resp), status_code=resp.status_code, provider=self.name
            )

        results = json_object(resp, self.name).get("results") or []
        try:
            return " ".join(
                (result.get("alternatives") or [{}])[0].get("transcript", "")
                for result in results
            ).strip()
        except (AttributeError, IndexError, TypeError) as exc:
            raise TranscriptionError(
                f"malformed recognition results: {exc}", provider=self.name
            ) from exc

    async def close(self) -> None:
        await self._client.aclose()


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return resp.text
