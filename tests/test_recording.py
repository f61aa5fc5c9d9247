"""Tests for the local audio recorders."""

from __future__ import annotations

import io
import wave
from datetime import UTC, datetime, timedelta

from meetmesh.media.mock import MockTrack
from meetmesh.models import RecordingState
from meetmesh.recording import AudioChunk, FinalizedRecording, MockRecorder, TrackRecorder
from meetmesh.recording.base import RecordingSession
from tests.conftest import eventually, pcm_chunks


class TestAudioChunk:
    def test_duration(self) -> None:
        chunk = AudioChunk(data=b"\x00\x00" * 16000, sample_rate=16000)
        assert chunk.duration_seconds == 1.0

    def test_stereo_duration(self) -> None:
        chunk = AudioChunk(data=b"\x00" * 4 * 48000, sample_rate=48000, channels=2)
        assert chunk.duration_seconds == 1.0


class TestRecordingSession:
    def test_earlier_start_wins(self) -> None:
        session = RecordingSession()
        earlier = session.started_at - timedelta(seconds=30)

        assert session.observe_start(earlier) is True
        assert session.started_at == earlier

    def test_later_start_ignored(self) -> None:
        session = RecordingSession()
        original = session.started_at

        assert session.observe_start(original + timedelta(seconds=5)) is False
        assert session.started_at == original


class TestFinalizedRecording:
    def test_to_wav(self) -> None:
        recording = FinalizedRecording(id="r", chunks=tuple(pcm_chunks(3)))

        with wave.open(io.BytesIO(recording.to_wav()), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 16000
            assert wf.getnframes() == 3 * 16000

    def test_empty(self) -> None:
        recording = FinalizedRecording.empty()
        assert recording.is_empty
        assert recording.duration_seconds == 0
        assert recording.stopped_at is not None

    def test_chunks_without_data_are_empty(self) -> None:
        recording = FinalizedRecording(id="r", chunks=(AudioChunk(data=b""),))
        assert recording.is_empty

    def test_duration_sums_chunks(self) -> None:
        recording = FinalizedRecording(id="r", chunks=tuple(pcm_chunks(45)))
        assert recording.duration_seconds == 45


class TestTrackRecorder:
    async def test_captures_frames_in_order(self) -> None:
        track = MockTrack("audio")
        recorder = TrackRecorder()
        session = recorder.start(track)
        chunks = pcm_chunks(1.5)
        for chunk in chunks:
            track.push(chunk)
        track.stop()

        recording = await recorder.stop(session)

        assert session.state == RecordingState.STOPPED
        assert list(recording.chunks) == chunks
        assert recording.started_at == session.started_at
        assert recording.stopped_at is not None

    async def test_stop_flushes_in_flight_frames(self) -> None:
        track = MockTrack("audio")
        recorder = TrackRecorder(flush_timeout=0.05)
        session = recorder.start(track)
        track.push(b"\x01\x00" * 480)
        await eventually(lambda: len(session.chunks) == 1)

        # The track is still live; stop gives up after the flush timeout
        recording = await recorder.stop(session)

        assert len(recording.chunks) == 1
        assert recording.chunks[0].sample_rate == 48000

    async def test_unconvertible_frames_are_dropped(self) -> None:
        track = MockTrack("audio")
        recorder = TrackRecorder()
        session = recorder.start(track)
        track.push("not audio")
        track.push(AudioChunk(data=b"\x01\x00" * 10))
        track.push(AudioChunk(data=b""))
        track.stop()

        recording = await recorder.stop(session)

        assert len(recording.chunks) == 1

    async def test_custom_converter(self) -> None:
        track = MockTrack("audio")
        recorder = TrackRecorder(lambda frame: AudioChunk(data=frame * 2, sample_rate=8000))
        session = recorder.start(track)
        track.push(b"\x01\x00")
        track.stop()

        recording = await recorder.stop(session)

        assert recording.pcm == b"\x01\x00\x01\x00"
        assert recording.sample_rate == 8000

    async def test_no_track_records_nothing(self) -> None:
        recorder = TrackRecorder()
        session = recorder.start(None)

        assert session.state == RecordingState.IDLE
        recording = await recorder.stop(session)
        assert recording.is_empty

    async def test_late_start_adopted_before_finalize(self) -> None:
        track = MockTrack("audio")
        recorder = TrackRecorder()
        session = recorder.start(track)
        earlier = datetime.now(UTC) - timedelta(minutes=2)
        session.observe_start(earlier)
        track.stop()

        recording = await recorder.stop(session)

        assert recording.started_at == earlier


class TestMockRecorder:
    async def test_returns_preset_chunks(self) -> None:
        recorder = MockRecorder(pcm_chunks(2))
        session = recorder.start(MockTrack("audio"))

        recording = await recorder.stop(session)

        assert recording.duration_seconds == 2
        assert recorder.started == [session]
        assert recorder.stopped == [session]

    async def test_without_track(self) -> None:
        recorder = MockRecorder(pcm_chunks(2))
        recording = await recorder.stop(recorder.start(None))
        assert recording.is_empty
