"""App fixtures for route tests: real engine, fake CARE collaborators."""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from src.config import Settings
from src.context import AppContext, build_context
from src.main import create_app
from src.observations.tests.conftest import MutableClock
from src.sync.tests.conftest import FakeDirectory, FakeSink


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        sync_timer_enabled=False,
        database_url=None,
        jwt_signing_key="test-key",
    )


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def context(
    settings: Settings, directory: FakeDirectory, sink: FakeSink, clock: MutableClock
) -> AppContext:
    return build_context(settings, directory=directory, sink=sink, clock=clock)


@pytest.fixture
def client(settings: Settings, context: AppContext) -> Iterator[TestClient]:
    with TestClient(create_app(settings, context)) as test_client:
        yield test_client
