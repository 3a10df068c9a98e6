"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.requests import HTTPConnection

from src.context import AppContext


def get_context(connection: HTTPConnection) -> AppContext:
    """Return the engine context the app factory stored on ``app.state``.

    Works for both HTTP requests and websocket connections.
    """
    return connection.app.state.context


# Annotated shortcut for route signatures
Engine = Annotated[AppContext, Depends(get_context)]
