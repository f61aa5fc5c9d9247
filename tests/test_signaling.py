"""Tests for the in-memory signaling backend."""

from __future__ import annotations

import asyncio

import pytest

from meetmesh.core.errors import SignalingError
from meetmesh.models import SignalingEvent, SignalKind
from meetmesh.signaling import InMemorySignaling
from meetmesh.signaling.base import PresenceState
from tests.conftest import eventually


def _event(kind: SignalKind, sender: str, **payload: object) -> SignalingEvent:
    return SignalingEvent(room_id="dept-1", kind=kind, sender_id=sender, payload=dict(payload))


class TestInMemorySignaling:
    async def test_publish_delivers_to_every_subscriber_including_sender(
        self, signaling: InMemorySignaling
    ) -> None:
        alice = await signaling.subscribe("dept-1", presence_key="alice")
        bob = await signaling.subscribe("dept-1", presence_key="bob")
        seen: dict[str, list[str]] = {"alice": [], "bob": []}

        async def record_alice(event: SignalingEvent) -> None:
            seen["alice"].append(event.sender_id)

        async def record_bob(event: SignalingEvent) -> None:
            seen["bob"].append(event.sender_id)

        signaling.on_event(alice, SignalKind.JOINED, record_alice)
        signaling.on_event(bob, SignalKind.JOINED, record_bob)

        await signaling.publish(alice, _event(SignalKind.JOINED, "alice"))
        await eventually(lambda: seen["alice"] and seen["bob"])

        assert seen == {"alice": ["alice"], "bob": ["alice"]}

    async def test_rooms_are_isolated(self, signaling: InMemorySignaling) -> None:
        alice = await signaling.subscribe("dept-1", presence_key="alice")
        other = await signaling.subscribe("dept-2", presence_key="carol")
        received: list[SignalingEvent] = []

        async def record(event: SignalingEvent) -> None:
            received.append(event)

        signaling.on_event(other, SignalKind.JOINED, record)
        await signaling.publish(alice, _event(SignalKind.JOINED, "alice"))
        await asyncio.sleep(0.01)

        assert received == []

    async def test_handlers_only_receive_their_kind(self, signaling: InMemorySignaling) -> None:
        handle = await signaling.subscribe("dept-1", presence_key="alice")
        kinds: list[SignalKind] = []

        async def record(event: SignalingEvent) -> None:
            kinds.append(event.kind)

        signaling.on_event(handle, SignalKind.OFFER, record)
        await signaling.publish(handle, _event(SignalKind.JOINED, "bob"))
        await signaling.publish(handle, _event(SignalKind.OFFER, "bob"))
        await eventually(lambda: bool(kinds))
        await asyncio.sleep(0.01)

        assert kinds == [SignalKind.OFFER]

    async def test_failing_handler_does_not_block_others(
        self, signaling: InMemorySignaling
    ) -> None:
        handle = await signaling.subscribe("dept-1", presence_key="alice")
        received: list[str] = []

        async def broken(event: SignalingEvent) -> None:
            raise RuntimeError("boom")

        async def record(event: SignalingEvent) -> None:
            received.append(event.sender_id)

        signaling.on_event(handle, SignalKind.JOINED, broken)
        signaling.on_event(handle, SignalKind.JOINED, record)
        await signaling.publish(handle, _event(SignalKind.JOINED, "bob"))
        await signaling.publish(handle, _event(SignalKind.JOINED, "carol"))

        await eventually(lambda: len(received) == 2)
        assert received == ["bob", "carol"]

    async def test_presence_sync_carries_full_snapshot(
        self, signaling: InMemorySignaling
    ) -> None:
        alice = await signaling.subscribe("dept-1", presence_key="alice")
        bob = await signaling.subscribe("dept-1", presence_key="bob")
        snapshots: list[PresenceState] = []

        async def on_sync(state: PresenceState) -> None:
            snapshots.append(state)

        signaling.on_presence_sync(alice, on_sync)
        await signaling.track_presence(alice, {"display_name": "Alice"})
        await signaling.track_presence(bob, {"display_name": "Bob"})

        await eventually(lambda: len(snapshots) == 2)
        assert set(snapshots[0]) == {"alice"}
        assert set(snapshots[1]) == {"alice", "bob"}
        assert signaling.presence_state(bob)["bob"] == {"display_name": "Bob"}

    async def test_untrack_presence_removes_key(self, signaling: InMemorySignaling) -> None:
        alice = await signaling.subscribe("dept-1", presence_key="alice")
        bob = await signaling.subscribe("dept-1", presence_key="bob")
        await signaling.track_presence(alice, {})
        await signaling.track_presence(bob, {})

        await signaling.untrack_presence(bob)

        assert set(signaling.presence_state(alice)) == {"alice"}

    async def test_presence_state_is_a_copy(self, signaling: InMemorySignaling) -> None:
        alice = await signaling.subscribe("dept-1", presence_key="alice")
        await signaling.track_presence(alice, {"display_name": "Alice"})

        snapshot = signaling.presence_state(alice)
        snapshot["alice"]["display_name"] = "Mallory"

        assert signaling.presence_state(alice)["alice"]["display_name"] == "Alice"

    async def test_unsubscribe_stops_delivery_and_untracks(
        self, signaling: InMemorySignaling
    ) -> None:
        alice = await signaling.subscribe("dept-1", presence_key="alice")
        bob = await signaling.subscribe("dept-1", presence_key="bob")
        await signaling.track_presence(bob, {})
        received: list[SignalingEvent] = []

        async def record(event: SignalingEvent) -> None:
            received.append(event)

        signaling.on_event(bob, SignalKind.JOINED, record)
        await signaling.unsubscribe(bob)
        await signaling.publish(alice, _event(SignalKind.JOINED, "alice"))
        await asyncio.sleep(0.01)

        assert received == []
        assert bob.active is False
        assert "bob" not in signaling.presence_state(alice)
        assert signaling.subscription_count == 1

    async def test_unsubscribe_twice_is_noop(self, signaling: InMemorySignaling) -> None:
        handle = await signaling.subscribe("dept-1", presence_key="alice")
        await signaling.unsubscribe(handle)
        await signaling.unsubscribe(handle)
        assert signaling.subscription_count == 0

    async def test_publish_on_unsubscribed_handle_raises(
        self, signaling: InMemorySignaling
    ) -> None:
        handle = await signaling.subscribe("dept-1", presence_key="alice")
        await signaling.unsubscribe(handle)
        with pytest.raises(SignalingError):
            await signaling.publish(handle, _event(SignalKind.JOINED, "alice"))

    async def test_subscribe_after_close_raises(self) -> None:
        backend = InMemorySignaling()
        await backend.close()
        with pytest.raises(SignalingError):
            await backend.subscribe("dept-1", presence_key="alice")

    async def test_delivery_filter_drops_selected_deliveries(self) -> None:
        def drop_joined_to_bob(event: SignalingEvent, recipient: str) -> bool:
            return not (event.kind == SignalKind.JOINED and recipient == "bob")

        backend = InMemorySignaling(delivery_filter=drop_joined_to_bob)
        try:
            alice = await backend.subscribe("dept-1", presence_key="alice")
            bob = await backend.subscribe("dept-1", presence_key="bob")
            received: dict[str, list[SignalKind]] = {"alice": [], "bob": []}

            async def record_alice(event: SignalingEvent) -> None:
                received["alice"].append(event.kind)

            async def record_bob(event: SignalingEvent) -> None:
                received["bob"].append(event.kind)

            for kind in (SignalKind.JOINED, SignalKind.OFFER):
                backend.on_event(alice, kind, record_alice)
                backend.on_event(bob, kind, record_bob)

            await backend.publish(alice, _event(SignalKind.JOINED, "alice"))
            await backend.publish(alice, _event(SignalKind.OFFER, "alice"))
            await eventually(lambda: len(received["alice"]) == 2 and received["bob"])

            assert received["bob"] == [SignalKind.OFFER]
        finally:
            await backend.close()

    async def test_queue_overflow_drops_oldest(self) -> None:
        backend = InMemorySignaling(max_queue_size=2)
        try:
            handle = await backend.subscribe("dept-1", presence_key="alice")
            senders: list[str] = []

            async def record(event: SignalingEvent) -> None:
                senders.append(event.sender_id)

            backend.on_event(handle, SignalKind.JOINED, record)
            # Publishing without yielding lets the queue fill up
            for sender in ("a", "b", "c"):
                await backend.publish(handle, _event(SignalKind.JOINED, sender))
            await eventually(lambda: len(senders) == 2)

            assert senders == ["b", "c"]
        finally:
            await backend.close()
