"""Tests for meeting configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from meetmesh.room import IceServer, MeetingConfig


class TestMeetingConfig:
    def test_defaults(self) -> None:
        config = MeetingConfig()
        assert config.reannounce_delay_seconds == 1.0
        assert config.settle_delay_seconds == 1.0
        assert config.max_link_recreates == 2
        assert config.transcript_bucket == "chat-files"
        assert config.media_constraints.audio and config.media_constraints.video

    def test_ice_server_dicts_drop_unset_credentials(self) -> None:
        config = MeetingConfig(
            ice_servers=[
                IceServer(urls=["stun:stun.example.com"]),
                IceServer(urls=["turn:turn.example.com"], username="u", credential="p"),
            ]
        )
        assert config.ice_server_dicts() == [
            {"urls": ["stun:stun.example.com"]},
            {"urls": ["turn:turn.example.com"], "username": "u", "credential": "p"},
        ]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"settle_delay_seconds": -1},
            {"subscribe_timeout_seconds": 0},
            {"max_link_recreates": -1},
        ],
    )
    def test_rejects_invalid_values(self, overrides: dict[str, float]) -> None:
        with pytest.raises(ValidationError):
            MeetingConfig(**overrides)
