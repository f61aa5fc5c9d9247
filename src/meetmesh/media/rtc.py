"""aiortc-backed media source.

Requires the ``rtc`` extra: ``pip install meetmesh[rtc]``.
"""

from __future__ import annotations

import logging
from typing import Any

import av
from aiortc import MediaStreamTrack
from aiortc.contrib.media import MediaPlayer, MediaRelay

from meetmesh.core.errors import MediaAcquisitionError
from meetmesh.media.base import LocalMedia, MediaConstraints, MediaSource, classify_media_error
from meetmesh.recording.base import AudioChunk

logger = logging.getLogger(__name__)


class GatedTrack(MediaStreamTrack):
    """Wraps a device track so it can be muted without renegotiation.

    While ``enabled`` is False, frames keep flowing but their planes are
    zeroed (silence for audio, a blank picture for video).
    """

    def __init__(self, source: MediaStreamTrack) -> None:
        super().__init__()
        self.kind = source.kind
        self.enabled = True
        self._source = source

    async def recv(self) -> Any:
        frame = await self._source.recv()
        if not self.enabled:
            for plane in frame.planes:
                plane.update(bytes(plane.buffer_size))
        return frame

    def stop(self) -> None:
        super().stop()
        self._source.stop()


class AiortcMediaSource(MediaSource):
    """Opens local capture devices through ``aiortc.contrib.media.MediaPlayer``.

    Device tracks are fanned out through a ``MediaRelay``; see
    :meth:`LocalMedia.subscribe`.

    Defaults target Linux (PulseAudio microphone, V4L2 camera).
    """

    def __init__(
        self,
        *,
        audio_device: str = "default",
        audio_format: str = "pulse",
        video_device: str = "/dev/video0",
        video_format: str = "v4l2",
    ) -> None:
        self._audio_device = audio_device
        self._audio_format = audio_format
        self._video_device = video_device
        self._video_format = video_format

    async def acquire(self, constraints: MediaConstraints) -> LocalMedia:
        tracks: list[Any] = []
        try:
            if constraints.audio:
                audio = MediaPlayer(self._audio_device, format=self._audio_format)
                if audio.audio is not None:
                    tracks.append(GatedTrack(audio.audio))
            if constraints.video:
                video = MediaPlayer(
                    self._video_device,
                    format=self._video_format,
                    options={"video_size": f"{constraints.width}x{constraints.height}"},
                )
                if video.video is not None:
                    tracks.append(GatedTrack(video.video))
        except Exception as exc:
            for track in tracks:
                track.stop()
            reason = classify_media_error(exc)
            logger.warning("Media acquisition failed (%s): %s", reason, exc)
            raise MediaAcquisitionError(reason, str(exc)) from exc

        return LocalMedia(tracks=tracks, fanout=MediaRelay().subscribe)


class AvFrameConverter:
    """Converts PyAV audio frames into mono s16 PCM chunks for the recorder."""

    def __init__(self, sample_rate: int = 48000) -> None:
        self.sample_rate = sample_rate
        self._resampler = av.AudioResampler(format="s16", layout="mono", rate=sample_rate)

    def __call__(self, frame: Any) -> AudioChunk:
        data = b"".join(
            bytes(out.planes[0])[: out.samples * 2] for out in self._resampler.resample(frame)
        )
        timestamp_ms = int(frame.time * 1000) if frame.time is not None else None
        return AudioChunk(data=data, sample_rate=self.sample_rate, timestamp_ms=timestamp_ms)
