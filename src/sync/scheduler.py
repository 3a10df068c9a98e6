"""Rate-limited upstream sync of recent vitals to CARE.

A sync pass walks every device buffer in a snapshot of the windowed store:
1. Skip devices not heard from within ``stale_after``
2. Resolve device → asset via the device directory
3. Resolve asset → consultation + patient
4. Derive the daily-rounds payload from the latest window entries
5. Submit it to the clinical record sink with asset-scoped headers

Each external call runs under a timeout.  Any failure for one device is
logged and the pass moves on to the next one; nothing propagates to the
ingestion request that triggered the pass.

Passes are admitted by a ``SyncGatePolicy`` (one pass per hour, process-wide,
by default).  The gate is checked and stamped before the first await, and an
in-flight flag keeps re-entrant triggers out while a pass is still running.
Readings that arrive during a pass are not re-read by it; they are picked up
by the next one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, TypeVar

from src.care.directory import DeviceDirectory
from src.care.sink import ClinicalRecordSink
from src.models.base import utc_now
from src.observations.base import DeviceBuffer
from src.observations.errors import UpstreamDependencyError
from src.observations.store import WindowedDeviceStore
from src.sync.config_loader import RoundsConfig
from src.sync.gate import GlobalSyncGate, SyncGatePolicy
from src.sync.rounds import build_daily_round

logger = logging.getLogger("vigil.sync.scheduler")

T = TypeVar("T")

DEFAULT_STALE_AFTER = timedelta(hours=1)


@dataclass
class DeviceSyncResult:
    """Outcome for one device within a pass.

    Attributes:
        device_id:       Monitor identifier.
        status:          'submitted', 'skipped' or 'error'.
        reason:          Why it was skipped or failed.
        consultation_id: CARE consultation the round was posted to.
    """

    device_id: str
    status: str = "submitted"
    reason: str | None = None
    consultation_id: str | None = None


@dataclass
class SyncPassResult:
    """Summary of one sync pass."""

    started_at: datetime
    devices: list[DeviceSyncResult] = field(default_factory=list)
    finished_at: datetime | None = None

    def _count(self, status: str) -> int:
        return sum(1 for d in self.devices if d.status == status)

    @property
    def submitted(self) -> int:
        return self._count("submitted")

    @property
    def skipped(self) -> int:
        return self._count("skipped")

    @property
    def failed(self) -> int:
        return self._count("error")


class UpstreamSyncScheduler:
    """Forward derived daily rounds for recently active devices.

    Usage::

        scheduler = UpstreamSyncScheduler(store, directory, sink)
        background_tasks.add_task(scheduler.run_if_due)   # after each ingestion
        asyncio.create_task(scheduler.run_forever(60))    # periodic timer
    """

    def __init__(
        self,
        store: WindowedDeviceStore,
        directory: DeviceDirectory,
        sink: ClinicalRecordSink,
        gate: SyncGatePolicy | None = None,
        rounds_config: RoundsConfig | None = None,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        call_timeout_seconds: float = 10.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the scheduler.

        Args:
            store:                The windowed device store to snapshot.
            directory:            Device → asset → patient resolver.
            sink:                 Clinical record sink for submissions.
            gate:                 Rate-limit policy (global hourly by default).
            rounds_config:        Channel mapping; the global config by default.
            stale_after:          Devices idle longer than this are skipped.
            call_timeout_seconds: Timeout for every external call.
            clock:                Returns the current UTC time.
        """
        self._store = store
        self._directory = directory
        self._sink = sink
        self._gate = gate or GlobalSyncGate()
        self._rounds_config = rounds_config
        self._stale_after = stale_after
        self._call_timeout = call_timeout_seconds
        self._clock = clock
        self._in_flight = False
        self.last_result: SyncPassResult | None = None

    @property
    def gate(self) -> SyncGatePolicy:
        return self._gate

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def run_if_due(self) -> SyncPassResult | None:
        """Run one pass if the gate admits it.

        Returns:
            The pass summary, or None when the gate refused or a pass is
            already running.
        """
        now = self._clock()
        if self._in_flight:
            logger.debug("Sync pass already in flight; trigger ignored")
            return None
        if not self._gate.try_begin_pass(now):
            return None

        self._in_flight = True
        try:
            return await self._run_pass(now)
        finally:
            self._in_flight = False

    async def _run_pass(self, now: datetime) -> SyncPassResult:
        snapshot = self._store.snapshot_all()
        result = SyncPassResult(started_at=now)
        logger.info("Sync pass started: %d tracked devices", len(snapshot))

        for buffer in snapshot:
            try:
                device_result = await self._sync_device(buffer, now)
            except UpstreamDependencyError as exc:
                logger.warning("Sync failed for device %s: %s", buffer.device_id, exc)
                device_result = DeviceSyncResult(
                    device_id=buffer.device_id, status="error", reason=str(exc)
                )
            except Exception as exc:
                logger.exception("Unexpected sync error for device %s", buffer.device_id)
                device_result = DeviceSyncResult(
                    device_id=buffer.device_id, status="error", reason=repr(exc)
                )
            result.devices.append(device_result)

        result.finished_at = self._clock()
        self.last_result = result
        logger.info(
            "Sync pass complete: %d submitted, %d skipped, %d errors",
            result.submitted,
            result.skipped,
            result.failed,
        )
        return result

    async def _sync_device(self, buffer: DeviceBuffer, now: datetime) -> DeviceSyncResult:
        """Run steps 1–5 for one device."""
        device_id = buffer.device_id

        if buffer.last_updated is None or now - buffer.last_updated > self._stale_after:
            return DeviceSyncResult(device_id, status="skipped", reason="stale")

        if not self._gate.try_claim_device(device_id, now):
            return DeviceSyncResult(device_id, status="skipped", reason="rate limited")

        logger.info("Updating observations for device: %s", device_id)

        asset = await self._call(self._directory.get_asset(device_id), f"asset lookup for {device_id}")
        if asset is None:
            return DeviceSyncResult(device_id, status="skipped", reason="no asset")

        context = await self._call(
            self._directory.get_patient_context(asset),
            f"patient lookup for asset {asset.external_id}",
        )
        if context is None or not context.patient_id:
            return DeviceSyncResult(device_id, status="skipped", reason="no patient")
        if not context.consultation_id:
            return DeviceSyncResult(device_id, status="skipped", reason="no consultation")

        payload = build_daily_round(buffer, self._rounds_config)
        await self._call(
            self._sink.submit(
                context.consultation_id, payload, self._directory.auth_headers(asset)
            ),
            f"daily round submission for {device_id}",
        )
        logger.info(
            "Updated observations for device %s (consultation %s)",
            device_id,
            context.consultation_id,
        )
        return DeviceSyncResult(
            device_id, status="submitted", consultation_id=context.consultation_id
        )

    async def _call(self, call: Awaitable[T], what: str) -> T:
        """Await an external call under the per-call timeout.

        Raises:
            UpstreamDependencyError: If the call timed out.
        """
        try:
            return await asyncio.wait_for(call, timeout=self._call_timeout)
        except asyncio.TimeoutError as exc:
            raise UpstreamDependencyError(
                f"{what} timed out after {self._call_timeout:g}s"
            ) from exc

    async def run_forever(self, check_interval_seconds: float = 60.0) -> None:
        """Timer loop: check the gate every ``check_interval_seconds``.

        Runs until cancelled (at app shutdown).
        """
        logger.info("Sync timer started (check every %.0fs)", check_interval_seconds)
        while True:
            await self.run_if_due()
            await asyncio.sleep(check_interval_seconds)
