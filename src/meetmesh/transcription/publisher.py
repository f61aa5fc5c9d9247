"""Transcribe the final recording and archive it into the department chat."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from meetmesh.core.errors import StorageError, TranscriptionError
from meetmesh.models.chat import ChatMessage
from meetmesh.models.enums import PublishStatus
from meetmesh.recording.base import FinalizedRecording
from meetmesh.store.base import ArtifactStore, ChatStore
from meetmesh.telemetry.base import Attr, NoopTelemetryProvider, SpanKind, TelemetryProvider
from meetmesh.transcription.base import Transcriber

logger = logging.getLogger("meetmesh.transcription")


@dataclass(frozen=True)
class TranscriptDestination:
    """Where a transcript is archived, and as whom."""

    chat_id: str
    sender_id: str
    label: str


@dataclass(frozen=True)
class PublishOutcome:
    """Result of one publish attempt. Never raised, always returned."""

    status: PublishStatus
    transcript: str | None = None
    file_name: str | None = None
    file_url: str | None = None
    message: ChatMessage | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == PublishStatus.PUBLISHED


async def resolve_destination(
    chat_store: ChatStore,
    department_id: str,
    sender_id: str,
    label: str,
) -> TranscriptDestination | None:
    """Look up the department's general chat.

    Returns ``None`` when the department has no such chat.
    """
    chat_id = await chat_store.find_department_chat(department_id)
    if chat_id is None:
        logger.warning("No general chat for department %s", department_id)
        return None
    return TranscriptDestination(chat_id=chat_id, sender_id=sender_id, label=label)


def transcript_file_name(when: datetime) -> str:
    """``DD.MM.YYYY.txt`` for the given date."""
    return f"{when:%d.%m.%Y}.txt"


class TranscriptionPublisher:
    """Runs the transcribe, upload and post pipeline exactly once.

    Each step only runs if the previous one succeeded, so nothing is
    written when transcription fails and no message is posted when the
    upload fails.  When the chat message cannot be written the uploaded
    file is deleted again, so a failed publish leaves no orphan behind.
    A publisher publishes at most one non-empty recording in its lifetime.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        chat_store: ChatStore,
        artifact_store: ArtifactStore,
        *,
        telemetry: TelemetryProvider | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._transcriber = transcriber
        self._chat_store = chat_store
        self._artifact_store = artifact_store
        self._telemetry = telemetry or NoopTelemetryProvider()
        self._clock = clock
        self._started = False

    @property
    def has_published(self) -> bool:
        return self._started

    async def publish(
        self,
        recording: FinalizedRecording,
        destination: TranscriptDestination | None,
    ) -> PublishOutcome:
        if recording.is_empty:
            logger.info("Recording %s is empty, nothing to transcribe", recording.id)
            return PublishOutcome(PublishStatus.SKIPPED_EMPTY)
        if destination is None:
            return PublishOutcome(PublishStatus.NO_DESTINATION, error="no destination chat")
        if self._started:
            logger.warning("Transcript already published, ignoring recording %s", recording.id)
            return PublishOutcome(PublishStatus.SKIPPED_DUPLICATE)
        self._started = True

        span_id = self._telemetry.start_span(
            SpanKind.TRANSCRIPT_PUBLISH,
            "transcription.publish",
            attributes={
                Attr.RECORDING_CHUNKS: len(recording.chunks),
                Attr.RECORDING_DURATION: recording.duration_seconds,
            },
        )
        try:
            outcome = await self._run(recording, destination, parent_id=span_id)
        except Exception as exc:
            logger.exception("Unexpected error publishing recording %s", recording.id)
            outcome = PublishOutcome(PublishStatus.TRANSCRIPTION_FAILED, error=str(exc))
        self._telemetry.end_span(
            span_id,
            status="ok" if outcome.ok else "error",
            error_message=outcome.error,
            attributes={Attr.PUBLISH_STATUS: outcome.status.value},
        )
        return outcome

    async def _run(
        self,
        recording: FinalizedRecording,
        destination: TranscriptDestination,
        *,
        parent_id: str,
    ) -> PublishOutcome:
        span_id = self._telemetry.start_span(
            SpanKind.TRANSCRIPTION,
            "transcription.transcribe",
            parent_id=parent_id,
            attributes={Attr.PROVIDER: self._transcriber.name},
        )
        try:
            transcript = await self._transcriber.transcribe(recording)
        except Exception as exc:
            self._telemetry.end_span(
                span_id,
                status="error",
                error_message=str(exc),
                attributes={Attr.HTTP_STATUS: getattr(exc, "status_code", None)},
            )
            if isinstance(exc, TranscriptionError):
                logger.error("Transcription failed: %s", exc)
            else:
                logger.exception("Transcriber %s crashed", self._transcriber.name)
            return PublishOutcome(PublishStatus.TRANSCRIPTION_FAILED, error=str(exc))
        self._telemetry.end_span(span_id, attributes={Attr.TRANSCRIPT_LENGTH: len(transcript)})

        if not transcript.strip():
            logger.warning("Transcript for recording %s is empty", recording.id)
            return PublishOutcome(
                PublishStatus.EMPTY_TRANSCRIPT, transcript=transcript, error="Transcript is empty"
            )

        file_name = transcript_file_name(self._clock())
        path = f"{destination.chat_id}/{file_name}"
        try:
            file_url = await self._artifact_store.upload(
                path, transcript.encode("utf-8"), "text/plain"
            )
        except StorageError as exc:
            logger.error("Error uploading transcript: %s", exc)
            return PublishOutcome(
                PublishStatus.UPLOAD_FAILED,
                transcript=transcript,
                file_name=file_name,
                error=str(exc),
            )

        try:
            message = await self._chat_store.add_message(
                ChatMessage(
                    chat_id=destination.chat_id,
                    sender_id=destination.sender_id,
                    content=f"Meeting transcript - {destination.label}",
                    file_url=file_url,
                    file_name=file_name,
                    is_ai_transcript=True,
                )
            )
        except StorageError as exc:
            logger.error("Error sending transcript message: %s", exc)
            await self._discard(path)
            return PublishOutcome(
                PublishStatus.MESSAGE_FAILED,
                transcript=transcript,
                file_name=file_name,
                file_url=file_url,
                error=str(exc),
            )

        logger.info("Transcript %s sent to chat %s", file_name, destination.chat_id)
        return PublishOutcome(
            PublishStatus.PUBLISHED,
            transcript=transcript,
            file_name=file_name,
            file_url=file_url,
            message=message,
        )

    async def _discard(self, path: str) -> None:
        try:
            await self._artifact_store.delete(path)
        except StorageError as exc:
            logger.warning("Could not remove unsent transcript %s: %s", path, exc)
