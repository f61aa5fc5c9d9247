"""Local media acquisition ABC and types."""

from __future__ import annotations

import errno
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from meetmesh.models.enums import MediaErrorReason

logger = logging.getLogger("meetmesh.media")


class MediaStreamEnded(Exception):
    """Raised by ``recv()`` on a track that has been stopped."""


class MediaConstraints(BaseModel):
    """What to capture from local devices."""

    audio: bool = True
    video: bool = True
    width: int = 1280
    height: int = 720


@dataclass
class LocalMedia:
    """Local tracks acquired for one room session.

    Tracks follow the aiortc ``MediaStreamTrack`` shape: a ``kind``
    attribute, ``async recv()`` and ``stop()``.

    ``recv()`` on a device track hands each frame to one caller only, so
    the recorder and every peer link read through their own view from
    :meth:`subscribe`.  *fanout* builds such a view (aiortc's
    ``MediaRelay.subscribe``); without it consumers share the track.
    """

    tracks: list[Any] = field(default_factory=list)
    fanout: Callable[..., Any] | None = None
    stopped: bool = False
    _views: list[Any] = field(default_factory=list, init=False, repr=False)

    @property
    def audio_tracks(self) -> list[Any]:
        return [t for t in self.tracks if t.kind == "audio"]

    @property
    def video_tracks(self) -> list[Any]:
        return [t for t in self.tracks if t.kind == "video"]

    def subscribe(self, track: Any, *, buffered: bool = True) -> Any:
        """A view of *track* for one consumer.

        Unbuffered views keep only the latest frame, which suits RTP
        senders; the recorder needs every frame.
        """
        if self.fanout is None:
            return track
        view = self.fanout(track, buffered=buffered)
        self._views.append(view)
        return view

    def release(self, views: Iterable[Any]) -> None:
        """Stop views handed out by :meth:`subscribe`. Shared tracks are left running."""
        for view in views:
            if any(view is mine for mine in self._views):
                self._views = [v for v in self._views if v is not view]
                view.stop()

    def set_enabled(self, kind: str, enabled: bool) -> bool:
        """Enable or mute every track of *kind*. Returns False if there is none."""
        matched = False
        for track in self.tracks:
            if track.kind == kind:
                track.enabled = enabled
                matched = True
        return matched

    def stop(self) -> None:
        """Stop every track. Safe to call more than once."""
        if self.stopped:
            return
        self.stopped = True
        self.release(list(self._views))
        for track in self.tracks:
            try:
                track.stop()
            except Exception:
                logger.exception("Error stopping %s track", track.kind)


class MediaSource(ABC):
    """Acquires the local participant's camera and microphone."""

    @abstractmethod
    async def acquire(self, constraints: MediaConstraints) -> LocalMedia:
        """Open local devices.

        Raises:
            MediaAcquisitionError: With a reason distinguishing permission
                denied, missing device and busy device.
        """
        ...


def classify_media_error(exc: BaseException) -> MediaErrorReason:
    """Map a device-open failure onto a :class:`MediaErrorReason`."""
    if isinstance(exc, PermissionError):
        return MediaErrorReason.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return MediaErrorReason.NOT_FOUND
    if isinstance(exc, OSError):
        if exc.errno in (errno.EACCES, errno.EPERM):
            return MediaErrorReason.PERMISSION_DENIED
        if exc.errno in (errno.ENOENT, errno.ENODEV, errno.ENXIO):
            return MediaErrorReason.NOT_FOUND
        if exc.errno == errno.EBUSY:
            return MediaErrorReason.DEVICE_BUSY
    return MediaErrorReason.UNKNOWN
