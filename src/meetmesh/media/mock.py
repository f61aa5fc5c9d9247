"""Mock media source and tracks for testing."""

from __future__ import annotations

import asyncio
from typing import Any
from uuid import uuid4

from meetmesh.core.errors import MediaAcquisitionError
from meetmesh.media.base import LocalMedia, MediaConstraints, MediaSource, MediaStreamEnded
from meetmesh.models.enums import MediaErrorReason

_END = object()


class MockTrack:
    """In-memory track whose frames are pushed by the test."""

    def __init__(self, kind: str = "audio") -> None:
        self.kind = kind
        self.id = uuid4().hex
        self.enabled = True
        self.stopped = False
        self._frames: asyncio.Queue[Any] = asyncio.Queue()

    def push(self, frame: Any) -> None:
        self._frames.put_nowait(frame)

    async def recv(self) -> Any:
        if self.stopped and self._frames.empty():
            raise MediaStreamEnded(self.id)
        frame = await self._frames.get()
        if frame is _END:
            raise MediaStreamEnded(self.id)
        return frame

    def stop(self) -> None:
        if not self.stopped:
            self.stopped = True
            self._frames.put_nowait(_END)


class MockMediaSource(MediaSource):
    """Hands out mock tracks, or fails with a configured reason."""

    def __init__(self, *, fail_with: MediaErrorReason | None = None) -> None:
        self.fail_with = fail_with
        self.acquired: list[LocalMedia] = []

    async def acquire(self, constraints: MediaConstraints) -> LocalMedia:
        if self.fail_with is not None:
            raise MediaAcquisitionError(self.fail_with, "mock device failure")
        tracks: list[Any] = []
        if constraints.audio:
            tracks.append(MockTrack("audio"))
        if constraints.video:
            tracks.append(MockTrack("video"))
        media = LocalMedia(tracks=tracks)
        self.acquired.append(media)
        return media
