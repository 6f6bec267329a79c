"""Bounded history of diagnostic messages shown on the Log screen."""

from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_PREVIEW = 3
READ_POLL_SECONDS = 0.1

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: str
    text: str


class MessageLog:
    """Thread-safe ring buffer of messages from the engine and the UI.

    ``attach`` starts a reader thread that pumps a source queue into the log;
    ``close`` stops and joins every reader.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=max(1, capacity))
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._stop_event = threading.Event()
        self._readers: list[threading.Thread] = []

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def push(self, text: str, level: str = "info") -> LogEntry:
        entry = LogEntry(timestamp=self._clock(), level=level, text=text)
        with self._lock:
            self._entries.append(entry)
        logger.log(_LEVELS.get(level, logging.INFO), text)
        return entry

    def info(self, text: str) -> LogEntry:
        return self.push(text, "info")

    def error(self, text: str) -> LogEntry:
        return self.push(text, "error")

    def entries(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    def tail(self, count: int = DEFAULT_PREVIEW) -> list[LogEntry]:
        if count <= 0:
            return []
        with self._lock:
            return list(self._entries)[-count:]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def attach(self, source: queue.Queue[str], *, level: str = "error") -> None:
        """Pump messages from ``source`` into the log until ``close``."""
        if self._stop_event.is_set():
            raise RuntimeError("message log is closed")
        thread = threading.Thread(
            target=self._read, args=(source, level), name="rv-message-log", daemon=True
        )
        self._readers.append(thread)
        thread.start()

    def _read(self, source: queue.Queue[str], level: str) -> None:
        while not self._stop_event.is_set():
            try:
                text = source.get(timeout=READ_POLL_SECONDS)
            except queue.Empty:
                continue
            self.push(text, level)

    def close(self) -> None:
        self._stop_event.set()
        readers, self._readers = self._readers, []
        for thread in readers:
            thread.join()
