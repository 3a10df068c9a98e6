"""Tests for live fan-out routing and delivery."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.observations.errors import TransportDeliveryError
from src.observations.fanout import (
    FanoutDispatcher,
    SubscriberRegistry,
    WebSocketSubscriber,
)
from src.observations.tests.conftest import RecordingSubscriber, make_observation


class TestRoute:
    def test_only_matching_subscriber_is_routed(
        self, registry: SubscriberRegistry, dispatcher: FanoutDispatcher
    ) -> None:
        sub_a = RecordingSubscriber("dev-A")
        sub_b = RecordingSubscriber("dev-B")
        registry.add(sub_a)
        registry.add(sub_b)

        routed = dispatcher.route([make_observation(device_id="dev-A")])

        assert [s for s, _ in routed] == [sub_a]

    def test_subsequence_keeps_batch_order(
        self, registry: SubscriberRegistry, dispatcher: FanoutDispatcher
    ) -> None:
        sub = RecordingSubscriber("dev-A")
        registry.add(sub)
        batch = [
            make_observation(device_id="dev-A", value=1),
            make_observation(device_id="dev-B", value=2),
            make_observation(device_id="dev-A", value=3),
        ]
        (_, observations), = dispatcher.route(batch)
        assert [o.value for o in observations] == [1, 3]

    def test_no_subscribers(self, dispatcher: FanoutDispatcher) -> None:
        assert dispatcher.route([make_observation()]) == []


class TestDispatch:
    @pytest.mark.asyncio
    async def test_single_message_per_subscriber(
        self, registry: SubscriberRegistry, dispatcher: FanoutDispatcher
    ) -> None:
        sub_a = RecordingSubscriber("dev-A")
        sub_b = RecordingSubscriber("dev-B")
        registry.add(sub_a)
        registry.add(sub_b)
        batch = [
            make_observation(device_id="dev-A", observation_id="heart-rate"),
            make_observation(device_id="dev-A", observation_id="SpO2"),
        ]

        delivered = await dispatcher.dispatch(batch)

        assert delivered == 1
        assert len(sub_a.messages) == 1
        assert sub_b.messages == []
        sent = json.loads(sub_a.messages[0])
        assert [o["observation_id"] for o in sent] == ["heart-rate", "SpO2"]

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(
        self, registry: SubscriberRegistry, dispatcher: FanoutDispatcher
    ) -> None:
        broken = RecordingSubscriber("dev-A", fail=True)
        healthy = RecordingSubscriber("dev-A")
        registry.add(broken)
        registry.add(healthy)

        delivered = await dispatcher.dispatch([make_observation(device_id="dev-A")])

        assert delivered == 1
        assert len(healthy.messages) == 1
        assert broken not in list(registry)
        assert healthy in list(registry)

    @pytest.mark.asyncio
    async def test_websocket_subscriber_wraps_transport_errors(self) -> None:
        websocket = MagicMock()
        websocket.send_text = AsyncMock(side_effect=RuntimeError("closed"))
        subscriber = WebSocketSubscriber(websocket, "dev-A")

        with pytest.raises(TransportDeliveryError):
            await subscriber.send("[]")

    @pytest.mark.asyncio
    async def test_websocket_subscriber_sends_text(self) -> None:
        websocket = MagicMock()
        websocket.send_text = AsyncMock()
        subscriber = WebSocketSubscriber(websocket, "dev-A")

        await subscriber.send('[{"a": 1}]')

        websocket.send_text.assert_awaited_once_with('[{"a": 1}]')


class TestRegistry:
    def test_discard_unknown_is_noop(self, registry: SubscriberRegistry) -> None:
        registry.discard(RecordingSubscriber("x"))
        assert len(registry) == 0
