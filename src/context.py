"""Process-wide engine state, built once at startup.

Everything mutable (windowed store, latest-vitals index, diagnostic log,
live subscribers, sync gate) hangs off one ``AppContext`` that the app
factory stores on ``app.state``.  Routes receive it through the ``Engine``
dependency, and tests build their own with fake collaborators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from src.care.auth import MiddlewareTokenSigner
from src.care.client import CareApiClient
from src.care.directory import AssetRepository, CareDeviceDirectory, DeviceDirectory
from src.care.sink import CareRoundsSink, ClinicalRecordSink
from src.config import Settings
from src.models.base import utc_now
from src.observations.fanout import FanoutDispatcher, SubscriberRegistry
from src.observations.ingest import ObservationIngestor
from src.observations.latest import LatestVitalsIndex
from src.observations.request_log import RequestLog
from src.observations.store import WindowedDeviceStore
from src.sync.gate import build_gate
from src.sync.scheduler import UpstreamSyncScheduler

logger = logging.getLogger("vigil.context")


@dataclass
class AppContext:
    """All engine components for one running process."""

    settings: Settings
    store: WindowedDeviceStore
    index: LatestVitalsIndex
    request_log: RequestLog
    subscribers: SubscriberRegistry
    dispatcher: FanoutDispatcher
    ingestor: ObservationIngestor
    scheduler: UpstreamSyncScheduler
    care_client: CareApiClient | None = field(default=None, repr=False)

    async def aclose(self) -> None:
        if self.care_client is not None:
            await self.care_client.aclose()


def build_context(
    settings: Settings,
    directory: DeviceDirectory | None = None,
    sink: ClinicalRecordSink | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> AppContext:
    """Wire up a fresh AppContext.

    Args:
        settings:  Application settings.
        directory: Device directory; the CARE/database-backed one by default.
        sink:      Clinical record sink; CARE daily rounds by default.
        clock:     Current-time source shared by every component.
    """
    care_client = None
    if directory is None or sink is None:
        care_client = CareApiClient(settings.care_api_url, settings.care_request_timeout_seconds)
        if not settings.jwt_signing_key:
            logger.warning("JWT_SIGNING_KEY not set; CARE will reject asset tokens")
        signer = MiddlewareTokenSigner(
            settings.jwt_signing_key,
            algorithm=settings.jwt_algorithm,
            ttl_seconds=settings.jwt_ttl_seconds,
            facility_id=settings.facility_id,
        )
        directory = directory or CareDeviceDirectory(AssetRepository(), care_client, signer)
        sink = sink or CareRoundsSink(care_client)

    store = WindowedDeviceStore(
        window_size=settings.observation_window_size,
        max_devices=settings.max_tracked_devices,
        clock=clock,
    )
    index = LatestVitalsIndex()
    request_log = RequestLog(size=settings.log_window_size, clock=clock)
    subscribers = SubscriberRegistry()
    dispatcher = FanoutDispatcher(subscribers)

    scheduler = UpstreamSyncScheduler(
        store,
        directory,
        sink,
        gate=build_gate(
            settings.sync_gate_policy, timedelta(seconds=settings.sync_interval_seconds)
        ),
        stale_after=timedelta(seconds=settings.stale_after_seconds),
        call_timeout_seconds=settings.care_request_timeout_seconds,
        clock=clock,
    )

    return AppContext(
        settings=settings,
        store=store,
        index=index,
        request_log=request_log,
        subscribers=subscribers,
        dispatcher=dispatcher,
        ingestor=ObservationIngestor(store, index, request_log, dispatcher),
        scheduler=scheduler,
        care_client=care_client,
    )
