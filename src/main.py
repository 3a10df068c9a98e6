"""Vigil API: FastAPI application entry point.

Run locally:
    uvicorn src.main:app --reload --port 8090
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.config import Settings, get_settings
from src.context import AppContext, build_context
from src.observations.errors import ClientInputError, NotFoundError
from src.routers import health, live, observations
from src.services.database import close_pool, init_pool

# ---------- Logging ----------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger("vigil")


# ---------- Lifespan ----------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown hooks."""
    settings: Settings = app.state.settings
    context: AppContext = app.state.context
    logger.info(
        "Starting Vigil API v%s [%s]",
        settings.app_version,
        settings.environment,
    )
    await init_pool(settings)

    timer: asyncio.Task | None = None
    if settings.sync_timer_enabled:
        timer = asyncio.create_task(
            context.scheduler.run_forever(settings.sync_check_interval_seconds)
        )
    yield
    if timer is not None:
        timer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await timer
    await context.aclose()
    await close_pool()
    logger.info("Vigil API shut down")


# ---------- Exception handlers ----------

async def _client_input_error(request: Request, exc: ClientInputError) -> JSONResponse:
    logger.info("Rejected payload on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _not_found_error(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# ---------- App factory ----------

def create_app(
    settings: Settings | None = None, context: AppContext | None = None
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Overrides the environment-derived settings.
        context:  Pre-built engine context (tests inject fakes here).
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Vigil API",
        description=(
            "Bedside monitor gateway: ingests live vitals, serves recent "
            "history and live feeds, and forwards hourly rounds to CARE."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.context = context or build_context(settings)

    app.add_exception_handler(ClientInputError, _client_input_error)
    app.add_exception_handler(NotFoundError, _not_found_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(observations.router)
    app.include_router(live.router)

    return app


app = create_app()
