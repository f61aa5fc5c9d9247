"""Chat message model for transcript archival."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A message row in the external chat store."""

    id: str | None = None
    chat_id: str
    sender_id: str
    content: str
    file_url: str | None = None
    file_name: str | None = None
    is_ai_transcript: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
