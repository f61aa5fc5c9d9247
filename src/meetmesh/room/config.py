"""Meeting room configuration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from meetmesh.media.base import MediaConstraints


class IceServer(BaseModel):
    """A STUN or TURN server entry."""

    urls: list[str]
    username: str | None = None
    credential: str | None = None


def _default_ice_servers() -> list[IceServer]:
    return [
        IceServer(urls=["stun:stun.l.google.com:19302"]),
        IceServer(urls=["stun:stun1.l.google.com:19302"]),
    ]


class MeetingConfig(BaseModel):
    """Configuration for a :class:`RoomCoordinator`.

    The delays are mitigations for a broadcast channel without ordering
    or delivery guarantees, not correctness guarantees.
    """

    ice_servers: list[IceServer] = Field(default_factory=_default_ice_servers)

    # Re-broadcast ``joined`` this long after joining, for peers whose
    # subscription was not yet live when the first one went out.
    reannounce_delay_seconds: float = Field(default=1.0, ge=0)

    # Wait after withdrawing presence before counting who is left.
    settle_delay_seconds: float = Field(default=1.0, ge=0)

    subscribe_timeout_seconds: float = Field(default=10.0, gt=0)

    # Recreations allowed per participant after ICE restart fails.
    max_link_recreates: int = Field(default=2, ge=0)

    media_constraints: MediaConstraints = Field(default_factory=MediaConstraints)
    transcript_bucket: str = "chat-files"

    def ice_server_dicts(self) -> list[dict[str, Any]]:
        return [server.model_dump(exclude_none=True) for server in self.ice_servers]
