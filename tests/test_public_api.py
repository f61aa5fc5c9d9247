"""Tests for public API surface."""

from __future__ import annotations

import meetmesh


class TestPublicAPI:
    def test_version_string(self) -> None:
        assert isinstance(meetmesh.__version__, str)
        assert meetmesh.__version__ == "0.1.0"

    def test_all_names_importable(self) -> None:
        for name in meetmesh.__all__:
            obj = getattr(meetmesh, name)
            assert obj is not None, f"{name} is None"

    def test_core_classes_available(self) -> None:
        assert meetmesh.RoomCoordinator is not None
        assert meetmesh.PeerLink is not None
        assert meetmesh.TranscriptionPublisher is not None
        assert meetmesh.InMemorySignaling is not None

    def test_subpackage_imports(self) -> None:
        from meetmesh.core import locks
        from meetmesh.models import enums
        from meetmesh.signaling import memory
        from meetmesh.store import supabase

        assert enums is not None
        assert locks is not None
        assert memory is not None
        assert supabase is not None

    def test_exception_classes(self) -> None:
        for exc in (
            meetmesh.MediaAcquisitionError,
            meetmesh.RoomStateError,
            meetmesh.SignalingError,
            meetmesh.StorageError,
            meetmesh.TranscriptionError,
        ):
            assert issubclass(exc, meetmesh.MeetMeshError)
