"""Rate-limit policies for the upstream sync pass.

Two policies share one interface so the scheduler never needs to know which
is in use:

    GlobalSyncGate      one process-wide timestamp; at most one pass per
                        interval for all devices together (the default).
    PerDeviceSyncGate   every pass may start, but each device is submitted
                        at most once per interval.

Both stamp their timestamp when they admit work, before any external call is
made, and both checks are synchronous so two triggers on the same event loop
can never both be admitted.

Note: under the global policy a busy deployment only ever forwards devices
that were active during the one pass per hour.  That is the established
behaviour and is kept as the default.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

DEFAULT_SYNC_INTERVAL = timedelta(hours=1)


class SyncGatePolicy(ABC):
    """Decides whether a pass may start and which devices it may submit."""

    def __init__(self, interval: timedelta = DEFAULT_SYNC_INTERVAL) -> None:
        self.interval = interval

    @abstractmethod
    def try_begin_pass(self, now: datetime) -> bool:
        """Return True (and record the start) if a pass may begin at ``now``."""

    def try_claim_device(self, device_id: str, now: datetime) -> bool:
        """Return True (and record the claim) if ``device_id`` may be submitted."""
        return True

    @property
    @abstractmethod
    def last_synced_at(self) -> datetime | None:
        """Most recent admission time, for status reporting."""


class GlobalSyncGate(SyncGatePolicy):
    def __init__(self, interval: timedelta = DEFAULT_SYNC_INTERVAL) -> None:
        super().__init__(interval)
        self._last_synced_at: datetime | None = None

    def try_begin_pass(self, now: datetime) -> bool:
        if self._last_synced_at is not None and now - self._last_synced_at < self.interval:
            return False
        self._last_synced_at = now
        return True

    @property
    def last_synced_at(self) -> datetime | None:
        return self._last_synced_at


class PerDeviceSyncGate(SyncGatePolicy):
    def __init__(self, interval: timedelta = DEFAULT_SYNC_INTERVAL) -> None:
        super().__init__(interval)
        self._device_synced_at: dict[str, datetime] = {}

    def try_begin_pass(self, now: datetime) -> bool:
        return True

    def try_claim_device(self, device_id: str, now: datetime) -> bool:
        previous = self._device_synced_at.get(device_id)
        if previous is not None and now - previous < self.interval:
            return False
        self._device_synced_at[device_id] = now
        return True

    @property
    def last_synced_at(self) -> datetime | None:
        return max(self._device_synced_at.values(), default=None)


GATE_POLICIES: dict[str, type[SyncGatePolicy]] = {
    "global": GlobalSyncGate,
    "per_device": PerDeviceSyncGate,
}


def build_gate(policy: str, interval: timedelta = DEFAULT_SYNC_INTERVAL) -> SyncGatePolicy:
    """Instantiate a gate policy by name.

    Raises:
        KeyError: If ``policy`` is not registered.
    """
    if policy not in GATE_POLICIES:
        raise KeyError(
            f"Unknown sync gate policy '{policy}'. Available: {list(GATE_POLICIES)}"
        )
    return GATE_POLICIES[policy](interval)
