"""Real-time observation feed over websockets.

Clients connect to ``/observations?device_id=<id>`` (``ip`` is accepted as an
alias) and receive a JSON array every time observations for that device are
ingested.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query, WebSocket, status

from src.dependencies import Engine
from src.observations.fanout import WebSocketSubscriber

router = APIRouter(tags=["live"])
logger = logging.getLogger("vigil.routers.live")


@router.websocket("/observations")
async def observations_feed(
    websocket: WebSocket,
    engine: Engine,
    device_id: str | None = Query(default=None),
    ip: str | None = Query(default=None),
) -> None:
    target = device_id or ip
    if not target:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="device_id is required")
        return

    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket, target)
    engine.subscribers.add(subscriber)
    logger.info("Live feed opened for %s", target)
    try:
        while True:
            # Clients only listen; text and binary frames are both ignored.
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        engine.subscribers.discard(subscriber)
        logger.info("Live feed for %s disconnected", target)
