"""Session descriptions and ICE candidates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SessionDescription:
    """An SDP offer or answer."""

    type: str
    sdp: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "sdp": self.sdp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionDescription:
        return cls(type=data["type"], sdp=data["sdp"])


@dataclass(frozen=True)
class IceCandidate:
    """A trickled ICE candidate in its browser ``toJSON()`` shape."""

    candidate: str
    sdp_mid: str | None = None
    sdp_mline_index: int | None = None

    @property
    def key(self) -> tuple[str, str | None, int | None]:
        """Identity used to drop duplicate deliveries."""
        return (self.candidate, self.sdp_mid, self.sdp_mline_index)

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidate": self.candidate,
            "sdpMid": self.sdp_mid,
            "sdpMLineIndex": self.sdp_mline_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IceCandidate:
        return cls(
            candidate=data["candidate"],
            sdp_mid=data.get("sdpMid"),
            sdp_mline_index=data.get("sdpMLineIndex"),
        )
