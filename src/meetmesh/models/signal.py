"""Signaling events exchanged between room participants."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from meetmesh.models.enums import SignalKind


@dataclass(frozen=True)
class SignalingEvent:
    """An immutable event carried by a signaling channel.

    Events are ordered only by the delivery order of the underlying
    channel and may be delivered more than once.
    """

    room_id: str
    kind: SignalKind
    sender_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    target_id: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_addressed_to(self, participant_id: str) -> bool:
        """True for broadcasts and for events directed at *participant_id*."""
        return self.target_id is None or self.target_id == participant_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "room_id": self.room_id,
            "kind": self.kind.value,
            "sender_id": self.sender_id,
            "target_id": self.target_id,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignalingEvent:
        """Create a SignalingEvent from a dictionary."""
        return cls(
            id=data["id"],
            room_id=data["room_id"],
            kind=SignalKind(data["kind"]),
            sender_id=data["sender_id"],
            target_id=data.get("target_id"),
            payload=data.get("payload", {}),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
