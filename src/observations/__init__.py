"""Vigil observation engine.

Ingests bedside monitor payloads and keeps the in-memory views the rest of
the gateway reads from.

Core modules:
    base         Observation / DeviceBuffer / LogEntry models
    errors       Domain exception hierarchy
    normalizer   Flatten nested payloads into observations
    store        Windowed per-device history (last N per type)
    latest       Latest value per device and parameter
    request_log  Diagnostic ring of raw payloads
    fanout       Live per-subscriber delivery
    ingest       The synchronous ingestion path tying it together
"""

from src.observations.base import DeviceBuffer, LogEntry, Observation
from src.observations.errors import (
    ClientInputError,
    NotFoundError,
    TransportDeliveryError,
    UpstreamDependencyError,
    VigilError,
)
from src.observations.latest import LatestVitalsIndex
from src.observations.normalizer import flatten, normalize_observations
from src.observations.store import WindowedDeviceStore

__all__ = [
    "Observation",
    "DeviceBuffer",
    "LogEntry",
    "VigilError",
    "ClientInputError",
    "NotFoundError",
    "UpstreamDependencyError",
    "TransportDeliveryError",
    "LatestVitalsIndex",
    "WindowedDeviceStore",
    "flatten",
    "normalize_observations",
]
