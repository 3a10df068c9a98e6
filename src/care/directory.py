"""Device directory: monitor → asset → consultation/patient.

The sync scheduler only sees the ``DeviceDirectory`` interface.  The
production implementation, ``CareDeviceDirectory``, resolves assets from the
shared ``Asset`` table (asyncpg) and patient context from the CARE API
(httpx), signing each CARE call with an asset-scoped token.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import asyncpg

from src.care.auth import MiddlewareTokenSigner
from src.care.client import CareApiClient
from src.observations.errors import UpstreamDependencyError
from src.services import database

logger = logging.getLogger("vigil.care.directory")


@dataclass
class Asset:
    """A registered bedside monitor.

    Attributes:
        id:          Local database id.
        external_id: CARE asset id, used for CARE authorization.
        name:        Display name.
        ip_address:  Monitor address; this is what monitors send as device_id.
    """

    id: int | str
    external_id: str
    name: str | None = None
    ip_address: str | None = None


@dataclass
class PatientContext:
    """Clinical context currently linked to an asset."""

    consultation_id: str | None
    patient_id: str | None


class DeviceDirectory(ABC):
    """Resolve monitors to assets and assets to clinical context."""

    @abstractmethod
    async def get_asset(self, device_id: str) -> Asset | None:
        """Return the asset for a monitor, or None if it is not registered.

        Raises:
            UpstreamDependencyError: If the lookup itself failed.
        """

    @abstractmethod
    async def get_patient_context(self, asset: Asset) -> PatientContext | None:
        """Return the consultation/patient linked to an asset, or None.

        Raises:
            UpstreamDependencyError: If the lookup itself failed.
        """

    @abstractmethod
    def auth_headers(self, asset: Asset) -> dict[str, str]:
        """Return the authorization headers for CARE calls made for ``asset``."""


# ---------------------------------------------------------------------------
# Asset repository (shared admin database)
# ---------------------------------------------------------------------------

_ASSET_BY_DEVICE_SQL = """
    SELECT id, "externalId", name, "ipAddress"
    FROM "Asset"
    WHERE "ipAddress" = $1 AND deleted = false
    ORDER BY "updatedAt" DESC
    LIMIT 1
"""

RowFetcher = Callable[..., Awaitable[Any]]


class AssetRepository:
    def __init__(self, fetchrow: RowFetcher | None = None) -> None:
        """Initialize the repository.

        Args:
            fetchrow: Async ``fetchrow(query, *args)``; the shared asyncpg pool
                      by default.
        """
        self._fetchrow = fetchrow or database.fetchrow

    async def find_by_device(self, device_id: str) -> Asset | None:
        try:
            row = await self._fetchrow(_ASSET_BY_DEVICE_SQL, device_id)
        except (asyncpg.PostgresError, OSError, RuntimeError) as exc:
            raise UpstreamDependencyError(
                f"asset lookup for {device_id} failed: {exc}", dependency="assets"
            ) from exc
        if row is None:
            return None
        return Asset(
            id=row["id"],
            external_id=str(row["externalId"]),
            name=row["name"],
            ip_address=row["ipAddress"],
        )


# ---------------------------------------------------------------------------
# Production directory
# ---------------------------------------------------------------------------


class CareDeviceDirectory(DeviceDirectory):
    def __init__(
        self,
        assets: AssetRepository,
        care: CareApiClient,
        signer: MiddlewareTokenSigner,
    ) -> None:
        self._assets = assets
        self._care = care
        self._signer = signer

    async def get_asset(self, device_id: str) -> Asset | None:
        return await self._assets.find_by_device(device_id)

    async def get_patient_context(self, asset: Asset) -> PatientContext | None:
        data = await self._care.get_patient_from_asset(self.auth_headers(asset))
        if not data:
            return None
        consultation_id = data.get("consultation_id") or data.get("consultation")
        patient_id = data.get("patient_id") or data.get("patient")
        return PatientContext(
            consultation_id=str(consultation_id) if consultation_id else None,
            patient_id=str(patient_id) if patient_id else None,
        )

    def auth_headers(self, asset: Asset) -> dict[str, str]:
        return self._signer.headers(asset.external_id)
