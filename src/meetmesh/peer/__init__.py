"""Peer links: negotiated media connections to remote participants."""

from meetmesh.peer.base import PeerConnection
from meetmesh.peer.link import PeerLink, offerer_for, role_for
from meetmesh.peer.mock import MockPeerConnection

__all__ = [
    "MockPeerConnection",
    "PeerConnection",
    "PeerLink",
    "offerer_for",
    "role_for",
]
