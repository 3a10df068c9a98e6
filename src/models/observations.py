"""Pydantic response models for the observation endpoints.

Observations themselves stay plain dicts (``dict[str, Any]``) so that every
attribute a monitor sent is echoed back untouched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from src.models.base import VigilBase


class DeviceBufferRead(VigilBase):
    device_id: str
    observations: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)
    last_updated: datetime | None = None


class LogEntryRead(VigilBase):
    date_time: datetime = Field(alias="dateTime", serialization_alias="dateTime")
    data: Any = None


class LatestVitalsResponse(VigilBase):
    status: str = "success"
    data: dict[str, dict[str, Any]]


class TimeResponse(VigilBase):
    time: str


class HealthResponse(VigilBase):
    status: str
    version: str
    environment: str
    tracked_devices: int
    live_subscribers: int
    sync_gate_policy: str
    last_synced_at: datetime | None = None
    sync_in_flight: bool = False
    database: str
    timestamp: str
