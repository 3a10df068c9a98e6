"""Per-asset authorization headers for calls into CARE.

CARE authenticates this gateway per asset: every request carries a short
lived JWT naming the asset it is acting for, sent as
``Authorization: Middleware_Bearer <token>``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt as pyjwt

logger = logging.getLogger("vigil.care.auth")

AUTH_SCHEME = "Middleware_Bearer"


class MiddlewareTokenSigner:
    """Mint asset-scoped JWTs and the headers that carry them."""

    def __init__(
        self,
        signing_key: str,
        algorithm: str = "HS256",
        ttl_seconds: int = 300,
        facility_id: str | None = None,
    ) -> None:
        """Initialize the signer.

        Args:
            signing_key:  Shared secret (HS*) or PEM private key (RS*/ES*).
            algorithm:    JWT algorithm understood by PyJWT.
            ttl_seconds:  Token lifetime.
            facility_id:  Optional CARE facility id sent as X-Facility-Id.
        """
        self._signing_key = signing_key
        self._algorithm = algorithm
        self._ttl = timedelta(seconds=ttl_seconds)
        self._facility_id = facility_id

    def sign(self, asset_id: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "asset_id": asset_id,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
        }
        return pyjwt.encode(claims, self._signing_key, algorithm=self._algorithm)

    def headers(self, asset_id: str) -> dict[str, str]:
        """Return request headers authorizing a call on behalf of ``asset_id``."""
        headers = {
            "Authorization": f"{AUTH_SCHEME} {self.sign(asset_id)}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._facility_id:
            headers["X-Facility-Id"] = self._facility_id
        return headers
