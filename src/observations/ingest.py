"""Ingestion path for monitor payloads.

``ObservationIngestor.ingest`` is synchronous: logging the raw body,
validation, the latest-vitals update, the windowed-store update and fan-out
routing all happen without yielding to the event loop, so readers never see
half of an ingestion call.  Sending the fan-out messages and triggering the
upstream sync are left to the caller as background work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from src.observations.base import Observation
from src.observations.fanout import FanoutDispatcher, Subscriber
from src.observations.latest import LatestVitalsIndex
from src.observations.normalizer import normalize_observations
from src.observations.request_log import RequestLog
from src.observations.store import WindowedDeviceStore

logger = logging.getLogger("vigil.observations.ingest")


@dataclass
class IngestResult:
    """Outcome of one ingestion call.

    Attributes:
        observations: The flattened batch, in payload order.
        routed:       Fan-out messages still to be delivered.
    """

    observations: list[Observation]
    routed: list[tuple[Subscriber, list[Observation]]] = field(default_factory=list)

    @property
    def device_ids(self) -> set[str]:
        return {o.device_id for o in self.observations}


class ObservationIngestor:
    def __init__(
        self,
        store: WindowedDeviceStore,
        index: LatestVitalsIndex,
        request_log: RequestLog,
        dispatcher: FanoutDispatcher,
    ) -> None:
        self._store = store
        self._index = index
        self._log = request_log
        self._dispatcher = dispatcher

    def ingest(self, payload: Any) -> IngestResult:
        """Validate, normalize and record one request body.

        The raw body is written to the diagnostic log before validation so
        that rejected payloads stay visible to operators.  The store and the
        index are only touched once the whole batch has validated.

        Raises:
            ClientInputError: If the payload is missing or malformed.
        """
        self._log.record(payload)
        observations = normalize_observations(payload)

        self._index.set(observations)
        for observation in observations:
            logger.debug(
                "%s: %s | %s",
                observation.date_time,
                observation.device_id,
                observation.observation_id,
            )
            self._store.record(observation)

        return IngestResult(
            observations=observations,
            routed=self._dispatcher.route(observations),
        )
