"""Broadcast+presence signaling channels."""

from meetmesh.signaling.base import (
    PresenceCallback,
    PresenceState,
    SignalCallback,
    SignalingChannel,
    SignalingHandle,
)
from meetmesh.signaling.memory import DeliveryFilter, InMemorySignaling

__all__ = [
    "DeliveryFilter",
    "InMemorySignaling",
    "PresenceCallback",
    "PresenceState",
    "SignalCallback",
    "SignalingChannel",
    "SignalingHandle",
]
