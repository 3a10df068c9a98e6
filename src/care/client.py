"""HTTP client for the CARE clinical record API.

Endpoints used:
    GET  /api/v1/consultation/patient_from_asset/         asset → consultation + patient
    POST /api/v1/consultation/{consultation_id}/daily_rounds/  submit vitals

Every transport or status error is re-raised as ``UpstreamDependencyError``
so the sync scheduler can isolate it to the device being processed.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.observations.errors import UpstreamDependencyError

logger = logging.getLogger("vigil.care.client")

_PATIENT_FROM_ASSET_PATH = "/api/v1/consultation/patient_from_asset/"
_DAILY_ROUNDS_PATH = "/api/v1/consultation/{consultation_id}/daily_rounds/"


class CareApiClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url:        CARE API root, e.g. ``https://care.example.org``.
            timeout_seconds: Per-request timeout when no client is injected.
            http_client:     Optional pre-configured httpx client (for testing
                             or connection reuse).
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._http_client = http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()

    async def get_patient_from_asset(self, headers: dict[str, str]) -> dict[str, Any]:
        """Return the consultation/patient currently linked to the calling asset.

        The asset is identified by the token in ``headers``.
        """
        return await self._request("GET", _PATIENT_FROM_ASSET_PATH, headers=headers)

    async def post_daily_round(
        self, consultation_id: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> dict[str, Any]:
        """Submit one daily-rounds record for a consultation."""
        path = _DAILY_ROUNDS_PATH.format(consultation_id=consultation_id)
        return await self._request("POST", path, headers=headers, json=payload)

    async def _request(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a request against CARE.

        Returns:
            Decoded JSON body ({} for an empty body).

        Raises:
            UpstreamDependencyError: On transport errors and non-2xx responses.
        """
        url = f"{self._base_url}{path}"
        try:
            if self._http_client:
                response = await self._http_client.request(
                    method, url, headers=headers, json=json
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, headers=headers, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500] if exc.response is not None else ""
            raise UpstreamDependencyError(
                f"CARE {method} {path} returned {exc.response.status_code}: {detail}",
                dependency="care",
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamDependencyError(
                f"CARE {method} {path} failed: {exc}", dependency="care"
            ) from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamDependencyError(
                f"CARE {method} {path} returned a non-JSON body", dependency="care"
            ) from exc
