"""Canonical data models for the Vigil observation engine.

An ``Observation`` is one timestamped reading of one physiological parameter
from one bedside monitor.  Monitors send loosely structured JSON, so the
model keeps the original object verbatim in ``raw`` and exposes the handful
of fields the engine actually reads as properties.  Serializing an
observation always gives back exactly what the device sent.

A ``DeviceBuffer`` is the bounded recent history for one device, kept by the
windowed store.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.observations.errors import ClientInputError

FINAL_STATUS = "final"


def _first_present(raw: dict, *keys: str) -> Any:
    """Return the value of the first key present in ``raw`` (None if none are)."""
    for key in keys:
        if key in raw:
            return raw[key]
    return None


# ---------------------------------------------------------------------------
# Observation
# ---------------------------------------------------------------------------


@dataclass
class Observation:
    """One atomic reading pushed by a bedside monitor.

    Attributes:
        device_id:      Stable monitor identifier (usually its IP address).
        observation_id: Parameter name, e.g. 'heart-rate', 'SpO2'.
        raw:            The JSON object exactly as received.
    """

    device_id: str
    observation_id: str
    raw: dict[str, Any] = field(repr=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "Observation":
        """Build an Observation from one flattened leaf of an ingested payload.

        Args:
            payload: A JSON leaf value.

        Returns:
            Observation wrapping ``payload``.

        Raises:
            ClientInputError: If the leaf is not an object or lacks
                              ``device_id`` / ``observation_id``.
        """
        if not isinstance(payload, dict):
            raise ClientInputError(
                f"Invalid observation provided: expected an object, got {type(payload).__name__}"
            )
        device_id = payload.get("device_id")
        observation_id = payload.get("observation_id")
        if device_id is None or device_id == "":
            raise ClientInputError("Invalid observation provided: missing device_id")
        if observation_id is None or observation_id == "":
            raise ClientInputError("Invalid observation provided: missing observation_id")
        return cls(device_id=str(device_id), observation_id=str(observation_id), raw=payload)

    @property
    def status(self) -> str | None:
        return self.raw.get("status")

    @property
    def is_final(self) -> bool:
        return self.status == FINAL_STATUS

    @property
    def value(self) -> Any:
        return self.raw.get("value")

    @property
    def date_time(self) -> str | None:
        """Device-reported timestamp string ('date-time' on the wire)."""
        return _first_present(self.raw, "date-time", "date_time")

    @property
    def low_limit(self) -> Any:
        return _first_present(self.raw, "low-limit", "low_limit")

    @property
    def high_limit(self) -> Any:
        return _first_present(self.raw, "high-limit", "high_limit")

    def component_value(self, name: str) -> Any:
        """Return the value of a nested component such as 'systolic'.

        Monitors send components as ``{"value": 120, "unit": "mmHg"}``; a bare
        number is accepted as well.
        """
        component = self.raw.get(name)
        if isinstance(component, dict):
            return component.get("value")
        return component

    def to_json(self) -> dict[str, Any]:
        return self.raw


# ---------------------------------------------------------------------------
# Device buffer
# ---------------------------------------------------------------------------


@dataclass
class DeviceBuffer:
    """Recent observation history for one device.

    Attributes:
        device_id:    Monitor identifier.
        observations: observation_id → most recent readings, oldest first.
        last_updated: Server time of the last ingested observation (any type).
    """

    device_id: str
    observations: dict[str, list[Observation]] = field(default_factory=dict)
    last_updated: datetime | None = None

    def latest(self, observation_id: str) -> Observation | None:
        """Return the newest reading of ``observation_id``, or None."""
        window = self.observations.get(observation_id)
        return window[-1] if window else None

    def copy(self) -> "DeviceBuffer":
        """Point-in-time copy; later appends to this buffer are not visible in it."""
        return DeviceBuffer(
            device_id=self.device_id,
            observations={k: list(v) for k, v in self.observations.items()},
            last_updated=self.last_updated,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "observations": {
                k: [copy.deepcopy(o.raw) for o in v] for k, v in self.observations.items()
            },
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


# ---------------------------------------------------------------------------
# Diagnostic log entry
# ---------------------------------------------------------------------------


@dataclass
class LogEntry:
    """One raw ingested payload kept for diagnostic inspection."""

    date_time: datetime
    data: Any

    def to_json(self) -> dict[str, Any]:
        return {"dateTime": self.date_time.isoformat(), "data": self.data}
