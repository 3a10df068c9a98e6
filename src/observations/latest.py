"""Latest-vitals index: the current value of every parameter per device.

Independent of the windowed store: no ordering or window, just
replace-on-write.  Point lookups for an unknown device raise ``NotFoundError``
so callers can answer 404 instead of an empty success.
"""

from __future__ import annotations

from typing import Iterable

from src.observations.base import Observation
from src.observations.errors import NotFoundError


class LatestVitalsIndex:
    """device_id → observation_id → most recent Observation."""

    def __init__(self) -> None:
        self._latest: dict[str, dict[str, Observation]] = {}

    def __len__(self) -> int:
        return len(self._latest)

    def set(self, observations: Iterable[Observation]) -> None:
        """Record a batch; the later of two readings for the same key wins."""
        for observation in observations:
            self._latest.setdefault(observation.device_id, {})[
                observation.observation_id
            ] = observation

    def get(self, device_id: str) -> dict[str, Observation]:
        """Return a copy of the latest readings for ``device_id``.

        Raises:
            NotFoundError: If nothing was ever recorded for the device.
        """
        readings = self._latest.get(device_id)
        if readings is None:
            raise NotFoundError(f"No data found with device id {device_id}")
        return dict(readings)
