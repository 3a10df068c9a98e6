"""asyncpg connection pool for the asset directory database.

The gateway shares its database with the bed/camera admin app; Vigil only
reads the ``Asset`` table to resolve a monitor's device id to its asset.
The pool is optional: with no ``DATABASE_URL`` configured it is never
created and ``is_configured()`` reports False.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from src.config import Settings, get_settings

logger = logging.getLogger("vigil.db")

# Module-level connection pool, initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool | None:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    if not s.database_url:
        logger.warning("DATABASE_URL not set; asset lookups are disabled")
        return None
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=1,
        max_size=s.database_pool_size,
        command_timeout=s.care_request_timeout_seconds,
    )
    logger.info("Database pool initialized (max=%d)", s.database_pool_size)
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def is_configured() -> bool:
    return _pool is not None


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    pool = get_pool()
    async with pool.acquire() as conn:
        yield conn


async def fetchrow(query: str, *args: Any) -> asyncpg.Record | None:
    """Fetch a single row."""
    async with get_connection() as conn:
        return await conn.fetchrow(query, *args)
