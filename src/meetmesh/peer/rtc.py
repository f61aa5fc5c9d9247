"""aiortc-backed peer connection.

Requires the ``rtc`` extra: ``pip install meetmesh[rtc]``.
"""

from __future__ import annotations

import logging
from typing import Any

from aiortc import RTCConfiguration, RTCIceServer, RTCPeerConnection, RTCSessionDescription
from aiortc.sdp import candidate_from_sdp

from meetmesh.models.enums import LinkState
from meetmesh.models.session import IceCandidate, SessionDescription
from meetmesh.peer.base import PeerConnection

logger = logging.getLogger(__name__)

_STATES: dict[str, LinkState] = {
    "new": LinkState.NEW,
    "connecting": LinkState.CONNECTING,
    "connected": LinkState.CONNECTED,
    "disconnected": LinkState.CONNECTING,
    "failed": LinkState.FAILED,
    "closed": LinkState.CLOSED,
}


def build_configuration(ice_servers: list[dict[str, Any]] | None) -> RTCConfiguration:
    """Build an ``RTCConfiguration`` from plain ``{"urls", "username", "credential"}`` dicts."""
    servers = [
        RTCIceServer(
            urls=server["urls"],
            username=server.get("username"),
            credential=server.get("credential"),
        )
        for server in ice_servers or ()
    ]
    return RTCConfiguration(iceServers=servers)


class AiortcPeerConnection(PeerConnection):
    """Adapts :class:`aiortc.RTCPeerConnection` to the ``PeerConnection`` seam.

    aiortc gathers every candidate before ``setLocalDescription`` returns
    and bundles them into the SDP, so no trickle candidates are emitted.
    It also cannot restart ICE in place; :meth:`restart_ice` raises and
    the owning link is recreated instead.
    """

    def __init__(self, ice_servers: list[dict[str, Any]] | None = None) -> None:
        super().__init__()
        self._pc = RTCPeerConnection(configuration=build_configuration(ice_servers))

        @self._pc.on("connectionstatechange")
        async def _on_state() -> None:
            state = self.connection_state
            logger.debug("aiortc connection state: %s", self._pc.connectionState)
            await self._emit(self._state_callbacks, state)

        @self._pc.on("track")
        async def _on_track(track: Any) -> None:
            logger.debug("aiortc received %s track", track.kind)
            await self._emit(self._track_callbacks, track)

    @property
    def connection_state(self) -> LinkState:
        return _STATES.get(self._pc.connectionState, LinkState.CONNECTING)

    @property
    def local_description(self) -> SessionDescription | None:
        return _to_description(self._pc.localDescription)

    @property
    def remote_description(self) -> SessionDescription | None:
        return _to_description(self._pc.remoteDescription)

    def add_track(self, track: Any) -> None:
        self._pc.addTrack(track)

    async def create_offer(self, *, ice_restart: bool = False) -> SessionDescription:
        offer = await self._pc.createOffer()
        return SessionDescription(type=offer.type, sdp=offer.sdp)

    async def create_answer(self) -> SessionDescription:
        answer = await self._pc.createAnswer()
        return SessionDescription(type=answer.type, sdp=answer.sdp)

    async def set_local_description(self, description: SessionDescription) -> None:
        await self._pc.setLocalDescription(
            RTCSessionDescription(sdp=description.sdp, type=description.type)
        )

    async def set_remote_description(self, description: SessionDescription) -> None:
        await self._pc.setRemoteDescription(
            RTCSessionDescription(sdp=description.sdp, type=description.type)
        )

    async def add_ice_candidate(self, candidate: IceCandidate) -> None:
        sdp = candidate.candidate
        if sdp.startswith("candidate:"):
            sdp = sdp[len("candidate:"):]
        if not sdp:
            # End-of-candidates marker.
            return
        rtc_candidate = candidate_from_sdp(sdp)
        rtc_candidate.sdpMid = candidate.sdp_mid
        rtc_candidate.sdpMLineIndex = candidate.sdp_mline_index
        await self._pc.addIceCandidate(rtc_candidate)

    async def restart_ice(self) -> None:
        raise NotImplementedError("aiortc cannot restart ICE on an existing connection")

    async def close(self) -> None:
        await self._pc.close()


def _to_description(description: RTCSessionDescription | None) -> SessionDescription | None:
    if description is None:
        return None
    return SessionDescription(type=description.type, sdp=description.sdp)
