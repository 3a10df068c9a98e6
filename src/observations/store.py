"""Windowed per-device observation store.

Keeps, for every device, the last ``window_size`` readings of each
observation type plus the time the device was last heard from.  Buffers are
held in an ``OrderedDict`` keyed by device id and ordered by recency, so a
whole-device capacity can be enforced by evicting from the front (the device
with the oldest ``last_updated``).

All mutation is synchronous: one ``record`` call is never interleaved with
another coroutine, which is what lets the ingestion path update the store
atomically from the event loop.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Callable

from src.models.base import utc_now
from src.observations.base import DeviceBuffer, Observation

logger = logging.getLogger("vigil.observations.store")

DEFAULT_WINDOW_SIZE = 10


class WindowedDeviceStore:
    """Bounded recent history per device and observation type.

    Usage::

        store = WindowedDeviceStore(window_size=10, max_devices=500)
        store.record(observation)
        for buffer in store.snapshot_all():
            ...
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        max_devices: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the store.

        Args:
            window_size: Readings kept per (device, observation type).
            max_devices: Whole-device capacity; None keeps every device for the
                         life of the process.
            clock:       Returns the current UTC time (injectable for tests).
        """
        if window_size < 1:
            raise ValueError("window_size must be at least 1")
        if max_devices is not None and max_devices < 1:
            raise ValueError("max_devices must be at least 1 (or None)")
        self._window_size = window_size
        self._max_devices = max_devices
        self._clock = clock
        self._buffers: OrderedDict[str, DeviceBuffer] = OrderedDict()

    def __len__(self) -> int:
        return len(self._buffers)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._buffers

    def record(self, observation: Observation) -> DeviceBuffer:
        """Append one observation to its device's window.

        ``last_updated`` is set to the current server time regardless of the
        observation's own timestamp.

        Args:
            observation: The reading to store.

        Returns:
            The (live) buffer for the observation's device.
        """
        now = self._clock()
        buffer = self._buffers.get(observation.device_id)
        if buffer is None:
            buffer = DeviceBuffer(device_id=observation.device_id)
            self._buffers[observation.device_id] = buffer
            logger.info("Tracking new device %s", observation.device_id)
        else:
            self._buffers.move_to_end(observation.device_id)

        window = buffer.observations.setdefault(observation.observation_id, [])
        window.append(observation)
        if len(window) > self._window_size:
            del window[: len(window) - self._window_size]
        buffer.last_updated = now

        self._evict_if_needed()
        return buffer

    def _evict_if_needed(self) -> None:
        if self._max_devices is None:
            return
        while len(self._buffers) > self._max_devices:
            device_id, buffer = self._buffers.popitem(last=False)
            logger.info(
                "Evicted device %s (last updated %s); store at capacity %d",
                device_id,
                buffer.last_updated,
                self._max_devices,
            )

    def get(self, device_id: str) -> DeviceBuffer | None:
        """Return a point-in-time copy of one device's buffer, or None."""
        buffer = self._buffers.get(device_id)
        return buffer.copy() if buffer else None

    def snapshot_all(self) -> list[DeviceBuffer]:
        """Return point-in-time copies of every buffer.

        Readings recorded after the snapshot is taken do not appear in it,
        which is what the sync pass relies on while it awaits external calls.
        """
        return [buffer.copy() for buffer in self._buffers.values()]

    def query(self, device_id: str | None = None) -> list[DeviceBuffer]:
        """Return all buffers, or only the one matching ``device_id``.

        Args:
            device_id: Optional device identifier filter.

        Returns:
            List of buffer copies (empty when the filter matches nothing).
        """
        if device_id is None:
            return self.snapshot_all()
        buffer = self.get(device_id)
        return [buffer] if buffer else []
