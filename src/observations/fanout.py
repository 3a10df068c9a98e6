"""Live fan-out of ingested observations to real-time subscribers.

Each subscriber is tagged with the device id it is watching.  For every
ingested batch the dispatcher works out which observations go to which
subscriber (``route``, pure) and then delivers them (``dispatch``), one JSON
array per subscriber.  Subscribers with nothing to receive get no message.

Delivery is best-effort: a subscriber whose send fails is logged, dropped
from the registry, and does not affect anybody else or the ingestion call.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Iterator, Sequence

from fastapi import WebSocket

from src.observations.base import Observation
from src.observations.errors import TransportDeliveryError

logger = logging.getLogger("vigil.observations.fanout")


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------


class Subscriber(ABC):
    """A live connection watching one device."""

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id

    @abstractmethod
    async def send(self, message: str) -> None:
        """Push one serialized message.

        Raises:
            TransportDeliveryError: If the transport could not deliver it.
        """


class WebSocketSubscriber(Subscriber):
    """Subscriber backed by a FastAPI/Starlette websocket."""

    def __init__(self, websocket: WebSocket, device_id: str) -> None:
        super().__init__(device_id)
        self._websocket = websocket

    async def send(self, message: str) -> None:
        try:
            await self._websocket.send_text(message)
        except Exception as exc:
            raise TransportDeliveryError(
                f"websocket send to {self.device_id} subscriber failed: {exc}"
            ) from exc

    def __repr__(self) -> str:
        client = self._websocket.client
        return f"WebSocketSubscriber(device_id={self.device_id!r}, client={client})"


class SubscriberRegistry:
    """The set of currently connected subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def add(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)
        logger.debug("Subscriber added for %s (%d live)", subscriber.device_id, len(self))

    def discard(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            logger.debug(
                "Subscriber removed for %s (%d live)", subscriber.device_id, len(self)
            )

    def __iter__(self) -> Iterator[Subscriber]:
        # Iterate over a copy so delivery can discard dead subscribers.
        return iter(list(self._subscribers))

    def __len__(self) -> int:
        return len(self._subscribers)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


def serialize_batch(observations: Sequence[Observation]) -> str:
    return json.dumps([o.to_json() for o in observations], default=str)


class FanoutDispatcher:
    """Filter each batch per subscriber and deliver it."""

    def __init__(self, registry: SubscriberRegistry) -> None:
        self._registry = registry

    def route(
        self, batch: Sequence[Observation]
    ) -> list[tuple[Subscriber, list[Observation]]]:
        """Pair every subscriber with the part of ``batch`` for its device.

        Subscribers with no matching observation are left out entirely.

        Args:
            batch: Flattened observations from one ingestion call.

        Returns:
            (subscriber, matching observations in batch order) pairs.
        """
        routed = []
        for subscriber in self._registry:
            matching = [o for o in batch if o.device_id == subscriber.device_id]
            if matching:
                routed.append((subscriber, matching))
        return routed

    async def deliver(
        self, routed: list[tuple[Subscriber, list[Observation]]]
    ) -> int:
        """Send pre-routed messages; returns the number delivered."""
        delivered = 0
        for subscriber, observations in routed:
            try:
                await subscriber.send(serialize_batch(observations))
                delivered += 1
            except TransportDeliveryError as exc:
                logger.warning("Fan-out delivery failed, dropping subscriber: %s", exc)
                self._registry.discard(subscriber)
            except Exception as exc:
                logger.warning(
                    "Fan-out delivery to %r raised %s, dropping subscriber",
                    subscriber, exc,
                )
                self._registry.discard(subscriber)
        return delivered

    async def dispatch(self, batch: Sequence[Observation]) -> int:
        """Route and deliver one batch.

        Args:
            batch: Flattened observations from one ingestion call.

        Returns:
            Number of subscribers that received a message.
        """
        return await self.deliver(self.route(batch))
