"""Local media acquisition."""

from meetmesh.media.base import (
    LocalMedia,
    MediaConstraints,
    MediaSource,
    MediaStreamEnded,
    classify_media_error,
)
from meetmesh.media.mock import MockMediaSource, MockTrack

__all__ = [
    "LocalMedia",
    "MediaConstraints",
    "MediaSource",
    "MediaStreamEnded",
    "MockMediaSource",
    "MockTrack",
    "classify_media_error",
]
