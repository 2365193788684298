from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, Iterable, List, Optional, Tuple

from iwp_web.domain.models import LogEvent, LogLevel

SUCCESS_LEVEL = 25
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

_STDLIB_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.SUCCESS: SUCCESS_LEVEL,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogSink:
    """Strategy interface."""
    def emit(self, event: LogEvent) -> None:
        raise NotImplementedError

    def info(self, message: str) -> None:
        self.emit(LogEvent(LogLevel.INFO, message))

    def success(self, message: str) -> None:
        self.emit(LogEvent(LogLevel.SUCCESS, message))

    def warning(self, message: str) -> None:
        self.emit(LogEvent(LogLevel.WARNING, message))

    def error(self, message: str) -> None:
        self.emit(LogEvent(LogLevel.ERROR, message))


class LoggingSink(LogSink):
    """Forwards events to a stdlib logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("iwp_web.jobs")

    def emit(self, event: LogEvent) -> None:
        self._logger.log(_STDLIB_LEVELS[event.level], event.message)


class MemorySink(LogSink):
    """
    Bounded in-memory event buffer.
    Sequence numbers keep increasing after old events are dropped, so readers can poll with `since`.
    """

    def __init__(self, capacity: int = 500):
        self._events: Deque[Tuple[int, LogEvent]] = deque(maxlen=capacity)
        self._next_seq = 0
        self._lock = threading.Lock()

    def emit(self, event: LogEvent) -> None:
        with self._lock:
            self._events.append((self._next_seq, event))
            self._next_seq += 1

    def events_since(self, since: int = 0) -> List[Tuple[int, LogEvent]]:
        with self._lock:
            return [(seq, e) for seq, e in self._events if seq >= since]

    @property
    def events(self) -> List[LogEvent]:
        with self._lock:
            return [e for _, e in self._events]

    @property
    def next_seq(self) -> int:
        with self._lock:
            return self._next_seq


class FanOutSink(LogSink):
    def __init__(self, sinks: Iterable[LogSink]):
        self._sinks = list(sinks)

    def emit(self, event: LogEvent) -> None:
        for sink in self._sinks:
            sink.emit(event)
