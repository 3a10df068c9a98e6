"""Observation ingestion and query endpoints.

    POST /update_observations   ingest one observation or a nested collection
    GET  /observations          windowed store, optionally for one device
    GET  /log_data              last raw payloads received
    GET  /last_request_data     most recent raw payload
    GET  /time                  server time
    GET  /vitals                latest value per parameter for one device
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Query, Request
from fastapi.responses import JSONResponse

from src.dependencies import Engine
from src.models.base import ErrorDetail, utc_now
from src.models.observations import (
    DeviceBufferRead,
    LatestVitalsResponse,
    LogEntryRead,
    TimeResponse,
)
from src.observations.errors import ClientInputError

router = APIRouter(tags=["observations"])
logger = logging.getLogger("vigil.routers.observations")


def _reject_constant(token: str) -> Any:
    raise ClientInputError(f"Invalid observations provided: {token} is not valid JSON")


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return None
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ClientInputError(f"Invalid observations provided: {exc}") from exc


@router.post("/update_observations", responses={400: {"model": ErrorDetail}})
async def update_observations(
    request: Request, engine: Engine, background_tasks: BackgroundTasks
) -> Any:
    payload = await _read_json(request)
    result = engine.ingestor.ingest(payload)

    if result.routed:
        background_tasks.add_task(engine.dispatcher.deliver, result.routed)
    background_tasks.add_task(engine.scheduler.run_if_due)

    return JSONResponse(content=payload)


@router.get("/observations", response_model=list[DeviceBufferRead])
async def list_observations(
    engine: Engine,
    device_id: str | None = Query(default=None),
    ip: str | None = Query(default=None, description="Alias of device_id"),
) -> Any:
    return [b.to_json() for b in engine.store.query(device_id or ip)]


@router.get("/log_data", response_model=list[LogEntryRead])
async def log_data(engine: Engine) -> Any:
    return [e.to_json() for e in engine.request_log.entries()]


@router.get("/last_request_data")
async def last_request_data(engine: Engine) -> Any:
    return JSONResponse(content=engine.request_log.last_request)


@router.get("/time", response_model=TimeResponse)
async def get_time() -> Any:
    return {"time": utc_now().isoformat()}


@router.get(
    "/vitals",
    response_model=LatestVitalsResponse,
    responses={404: {"model": ErrorDetail}},
)
async def latest_vitals(engine: Engine, device_id: str = Query(...)) -> Any:
    readings = engine.index.get(device_id)
    return {
        "status": "success",
        "data": {k: v.to_json() for k, v in readings.items()},
    }
