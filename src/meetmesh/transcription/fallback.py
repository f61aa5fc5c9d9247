"""Transcriber that retries through a secondary provider."""

from __future__ import annotations

import logging

from meetmesh.core.errors import TranscriptionError
from meetmesh.recording.base import FinalizedRecording
from meetmesh.transcription.base import Transcriber

logger = logging.getLogger(__name__)

FALLBACK_STATUSES = frozenset({400, 403})


class FallbackTranscriber(Transcriber):
    """Uses *primary*, falling back to *secondary* when the primary
    rejects the request as blocked (403) or invalid, e.g. too long (400).

    Any other primary failure is raised unchanged.  If the secondary
    also fails, the primary's error is raised with the secondary's
    chained.
    """

    def __init__(
        self,
        primary: Transcriber,
        secondary: Transcriber,
        *,
        fallback_statuses: frozenset[int] = FALLBACK_STATUSES,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._fallback_statuses = fallback_statuses

    @property
    def name(self) -> str:
        return f"{self._primary.name}+{self._secondary.name}"

    async def transcribe(self, recording: FinalizedRecording) -> str:
        try:
            return await self._primary.transcribe(recording)
        except TranscriptionError as exc:
            if exc.status_code not in self._fallback_statuses:
                raise
            primary_error = exc

        logger.info(
            "%s failed with HTTP %s, falling back to %s",
            self._primary.name,
            primary_error.status_code,
            self._secondary.name,
        )
        try:
            return await self._secondary.transcribe(recording)
        except TranscriptionError as exc:
            logger.warning("Fallback transcriber %s also failed: %s", self._secondary.name, exc)
            raise primary_error from exc

    async def close(self) -> None:
        await self._primary.close()
        await self._secondary.close()
