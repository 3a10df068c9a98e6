"""Shared fixtures for observation engine tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from src.observations.base import Observation
from src.observations.fanout import FanoutDispatcher, Subscriber, SubscriberRegistry
from src.observations.ingest import ObservationIngestor
from src.observations.latest import LatestVitalsIndex
from src.observations.request_log import RequestLog
from src.observations.store import WindowedDeviceStore

T0 = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class MutableClock:
    """Deterministic clock; call ``advance`` to move time forward."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingSubscriber(Subscriber):
    """Subscriber that keeps every message it was sent."""

    def __init__(self, device_id: str, fail: bool = False) -> None:
        super().__init__(device_id)
        self.messages: list[str] = []
        self.fail = fail

    async def send(self, message: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.messages.append(message)


def make_raw(
    device_id: str = "192.168.1.10",
    observation_id: str = "heart-rate",
    value: Any = 72,
    status: str = "final",
    **extra: Any,
) -> dict[str, Any]:
    raw = {
        "device_id": device_id,
        "observation_id": observation_id,
        "status": status,
        "value": value,
        "date-time": "2024-01-01 00:00:00",
    }
    raw.update(extra)
    return raw


def make_observation(**kwargs: Any) -> Observation:
    return Observation.from_payload(make_raw(**kwargs))


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def store(clock: MutableClock) -> WindowedDeviceStore:
    return WindowedDeviceStore(window_size=10, clock=clock)


@pytest.fixture
def index() -> LatestVitalsIndex:
    return LatestVitalsIndex()


@pytest.fixture
def registry() -> SubscriberRegistry:
    return SubscriberRegistry()


@pytest.fixture
def dispatcher(registry: SubscriberRegistry) -> FanoutDispatcher:
    return FanoutDispatcher(registry)


@pytest.fixture
def request_log(clock: MutableClock) -> RequestLog:
    return RequestLog(size=10, clock=clock)


@pytest.fixture
def ingestor(
    store: WindowedDeviceStore,
    index: LatestVitalsIndex,
    request_log: RequestLog,
    dispatcher: FanoutDispatcher,
) -> ObservationIngestor:
    return ObservationIngestor(store, index, request_log, dispatcher)
