"""Transcriber ABC."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from meetmesh.core.errors import TranscriptionError
from meetmesh.recording.base import FinalizedRecording


class Transcriber(ABC):
    """Turns a finalized recording into text."""

    @property
    def name(self) -> str:
        """Provider name (e.g. 'google', 'whisper')."""
        return self.__class__.__name__

    @abstractmethod
    async def transcribe(self, recording: FinalizedRecording) -> str:
        """Transcribe a complete recording.

        Returns:
            The transcript, possibly empty when no speech was detected.

        Raises:
            TranscriptionError: If the provider rejects the request or
                answers with a body it cannot read.
        """
        ...

    async def close(self) -> None:  # noqa: B027
        """Release resources. Override in subclasses if needed."""


def json_object(resp: httpx.Response, provider: str) -> dict[str, Any]:
    """Decode a successful response whose body must be a JSON object.

    Proxies and captive portals answer 200 with HTML, so anything else
    is reported as a :class:`TranscriptionError`.
    """
    try:
        data = resp.json()
    except ValueError as exc:
        snippet = resp.text[:120] or "empty body"
        raise TranscriptionError(f"unreadable response: {snippet}", provider=provider) from exc
    if not isinstance(data, dict):
        raise TranscriptionError(
            f"expected a JSON object, got {type(data).__name__}", provider=provider
        )
    return data
