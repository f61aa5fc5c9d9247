"""Room coordination: join, peer links per participant, and leave."""

from meetmesh.room.config import IceServer, MeetingConfig
from meetmesh.room.coordinator import ConnectionFactory, LeaveOutcome, RoomCoordinator

__all__ = [
    "ConnectionFactory",
    "IceServer",
    "LeaveOutcome",
    "MeetingConfig",
    "RoomCoordinator",
]
