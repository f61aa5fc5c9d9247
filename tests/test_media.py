"""Tests for local media acquisition helpers."""

from __future__ import annotations

import errno

import pytest

from meetmesh.core.errors import MediaAcquisitionError
from meetmesh.media import (
    LocalMedia,
    MediaConstraints,
    MediaStreamEnded,
    MockMediaSource,
    MockTrack,
    classify_media_error,
)
from meetmesh.models import MediaErrorReason


class TestClassifyMediaError:
    @pytest.mark.parametrize(
        ("exc", "reason"),
        [
            (PermissionError("denied"), MediaErrorReason.PERMISSION_DENIED),
            (OSError(errno.EACCES, "access"), MediaErrorReason.PERMISSION_DENIED),
            (FileNotFoundError("/dev/video0"), MediaErrorReason.NOT_FOUND),
            (OSError(errno.ENODEV, "no device"), MediaErrorReason.NOT_FOUND),
            (OSError(errno.EBUSY, "busy"), MediaErrorReason.DEVICE_BUSY),
            (OSError(errno.EIO, "io"), MediaErrorReason.UNKNOWN),
            (RuntimeError("codec"), MediaErrorReason.UNKNOWN),
        ],
    )
    def test_reasons(self, exc: BaseException, reason: MediaErrorReason) -> None:
        assert classify_media_error(exc) is reason


class TestLocalMedia:
    def test_set_enabled_by_kind(self) -> None:
        audio, video = MockTrack("audio"), MockTrack("video")
        media = LocalMedia(tracks=[audio, video])

        assert media.set_enabled("audio", False) is True

        assert audio.enabled is False
        assert video.enabled is True
        assert media.audio_tracks == [audio]
        assert media.video_tracks == [video]

    def test_set_enabled_without_track(self) -> None:
        media = LocalMedia(tracks=[MockTrack("audio")])
        assert media.set_enabled("video", False) is False

    def test_subscribe_without_fanout_shares_the_track(self) -> None:
        track = MockTrack("audio")
        media = LocalMedia(tracks=[track])

        assert media.subscribe(track) is track
        media.release([track])
        assert not track.stopped

    def test_views_are_released_individually(self) -> None:
        track = MockTrack("audio")
        media = LocalMedia(tracks=[track], fanout=lambda t, buffered: MockTrack(t.kind))
        first = media.subscribe(track)
        second = media.subscribe(track, buffered=False)

        media.release([first])

        assert first.stopped
        assert not second.stopped
        assert not track.stopped

        media.stop()
        assert second.stopped
        assert track.stopped

    def test_stop_is_idempotent(self) -> None:
        track = MockTrack("audio")
        media = LocalMedia(tracks=[track])

        media.stop()
        media.stop()

        assert media.stopped
        assert track.stopped


class TestMockMediaSource:
    async def test_acquire_respects_constraints(self) -> None:
        source = MockMediaSource()

        media = await source.acquire(MediaConstraints(video=False))

        assert [t.kind for t in media.tracks] == ["audio"]
        assert source.acquired == [media]

    async def test_failure_reason(self) -> None:
        source = MockMediaSource(fail_with=MediaErrorReason.NOT_FOUND)

        with pytest.raises(MediaAcquisitionError) as exc_info:
            await source.acquire(MediaConstraints())

        assert exc_info.value.reason is MediaErrorReason.NOT_FOUND
        assert source.acquired == []


class TestMockTrack:
    async def test_recv_after_stop_raises(self) -> None:
        track = MockTrack("audio")
        track.push(b"frame")
        track.stop()

        assert await track.recv() == b"frame"
        with pytest.raises(MediaStreamEnded):
            await track.recv()
        with pytest.raises(MediaStreamEnded):
            await track.recv()
