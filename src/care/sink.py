"""Clinical record sink: where derived daily rounds are submitted."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from src.care.client import CareApiClient
from src.sync.rounds import DailyRoundPayload

logger = logging.getLogger("vigil.care.sink")


class ClinicalRecordSink(ABC):
    @abstractmethod
    async def submit(
        self,
        consultation_id: str,
        payload: DailyRoundPayload,
        headers: dict[str, str],
    ) -> Any:
        """Submit one rounds payload for a consultation.

        Raises:
            UpstreamDependencyError: If the submission failed.
        """


class CareRoundsSink(ClinicalRecordSink):
    """Posts daily rounds to CARE."""

    def __init__(self, client: CareApiClient) -> None:
        self._client = client

    async def submit(
        self,
        consultation_id: str,
        payload: DailyRoundPayload,
        headers: dict[str, str],
    ) -> dict[str, Any]:
        response = await self._client.post_daily_round(
            consultation_id, payload.to_json(), headers
        )
        logger.debug("CARE accepted daily round for consultation %s: %s", consultation_id, response)
        return response
