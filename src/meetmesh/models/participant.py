"""Participant model."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class Participant(BaseModel):
    """A remote participant known to a meeting room."""

    id: str
    display_name: str = "User"
    avatar_url: str | None = None
    session_id: str | None = None
    has_live_media: bool = False
    joined_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, participant_id: str, payload: dict[str, Any]) -> Participant:
        """Build a participant from a ``joined`` payload or presence metadata."""
        return cls(
            id=participant_id,
            display_name=payload.get("display_name") or "User",
            avatar_url=payload.get("avatar_url"),
            session_id=payload.get("session_id"),
        )
