"""Diagnostic ring of recently ingested raw payloads.

Nothing in the engine reads this back; it exists for the ``/log_data`` and
``/last_request_data`` endpoints so an operator can see what monitors are
actually sending, rejected payloads included.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Any, Callable

from src.models.base import utc_now
from src.observations.base import LogEntry

DEFAULT_LOG_SIZE = 10


class RequestLog:
    def __init__(
        self,
        size: int = DEFAULT_LOG_SIZE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=size)
        self._clock = clock
        self._last_request: Any = {}

    def record(self, payload: Any) -> LogEntry:
        entry = LogEntry(date_time=self._clock(), data=payload)
        self._entries.append(entry)
        self._last_request = payload
        return entry

    def entries(self) -> list[LogEntry]:
        """Oldest first."""
        return list(self._entries)

    @property
    def last_request(self) -> Any:
        """The most recent raw body, or ``{}`` before anything was ingested."""
        return self._last_request
