"""Shared fixtures and fake CARE collaborators for sync tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from src.care.directory import Asset, DeviceDirectory, PatientContext
from src.care.sink import ClinicalRecordSink
from src.observations.errors import UpstreamDependencyError
from src.observations.store import WindowedDeviceStore
from src.observations.tests.conftest import MutableClock
from src.sync.config_loader import RoundsConfig, load_rounds_config
from src.sync.rounds import DailyRoundPayload


class FakeDirectory(DeviceDirectory):
    """In-memory directory that records every lookup."""

    def __init__(self) -> None:
        self.assets: dict[str, Asset] = {}
        self.contexts: dict[str, PatientContext] = {}
        self.failing_devices: set[str] = set()
        self.hanging_devices: set[str] = set()
        self.asset_lookups: list[str] = []
        self.patient_lookups: list[str] = []

    def register(
        self,
        device_id: str,
        consultation_id: str | None = "c-1",
        patient_id: str | None = "p-1",
    ) -> Asset:
        asset = Asset(id=len(self.assets) + 1, external_id=f"asset-{device_id}", ip_address=device_id)
        self.assets[device_id] = asset
        self.contexts[asset.external_id] = PatientContext(consultation_id, patient_id)
        return asset

    async def get_asset(self, device_id: str) -> Asset | None:
        self.asset_lookups.append(device_id)
        await asyncio.sleep(0)
        if device_id in self.failing_devices:
            raise UpstreamDependencyError(f"lookup for {device_id} exploded", dependency="assets")
        if device_id in self.hanging_devices:
            await asyncio.sleep(3600)
        return self.assets.get(device_id)

    async def get_patient_context(self, asset: Asset) -> PatientContext | None:
        self.patient_lookups.append(asset.external_id)
        return self.contexts.get(asset.external_id)

    def auth_headers(self, asset: Asset) -> dict[str, str]:
        return {"Authorization": f"Middleware_Bearer token-for-{asset.external_id}"}


class FakeSink(ClinicalRecordSink):
    """Sink that records submissions; can be told to fail per consultation."""

    def __init__(self) -> None:
        self.submissions: list[tuple[str, DailyRoundPayload, dict[str, str]]] = []
        self.failing_consultations: set[str] = set()

    async def submit(
        self, consultation_id: str, payload: DailyRoundPayload, headers: dict[str, str]
    ) -> Any:
        if consultation_id in self.failing_consultations:
            raise UpstreamDependencyError("CARE returned 500", dependency="care")
        self.submissions.append((consultation_id, payload, headers))
        return {"id": len(self.submissions)}


@pytest.fixture
def rounds_config() -> RoundsConfig:
    return load_rounds_config()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def store(clock: MutableClock) -> WindowedDeviceStore:
    return WindowedDeviceStore(clock=clock)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()
