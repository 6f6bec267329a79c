"""Periodic key enumeration for a single scan spec."""

from __future__ import annotations

import logging
import queue
import threading
import time
from datetime import datetime
from enum import Enum
from typing import Callable

from rv_common.errors import RVError, ScanError, error_to_payload
from rv_scanner.models import ScanSpec, WorkerSnapshot
from rv_scanner.store import ScanCancelled, StoreClient

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class WorkerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLED = "cancelled"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ScanWorker:
    """Runs one spec's enumeration on its own schedule.

    ``run`` is the thread target. Result, timestamp and the enabled flag live
    behind one private lock and leave the worker only as copies. Failures go
    to ``errors``, a single-slot queue; a message is dropped when the slot is
    still occupied.
    """

    def __init__(
        self,
        spec: ScanSpec,
        store: StoreClient,
        stop_event: threading.Event,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.spec = spec
        self._store = store
        self._stop_event = stop_event
        self._clock = clock or _local_now
        self._lock = threading.Lock()
        self._matches: tuple[str, ...] = ()
        self._updated: datetime | None = None
        self._enabled = True
        self._status = WorkerStatus.IDLE
        self.errors: queue.Queue[str] = queue.Queue(maxsize=1)

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def status(self) -> WorkerStatus:
        with self._lock:
            return self._status

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def run(self) -> None:
        """Scan now, then once per interval tick while enabled, until stopped."""
        with self._lock:
            if self._status is not WorkerStatus.IDLE:
                raise RuntimeError(f"worker {self.name!r} already started")
            self._status = WorkerStatus.RUNNING
        logger.debug("Worker %s started (interval %.3fs)", self.name, self.spec.interval)
        try:
            if not self._stop_event.is_set():
                self.scan_once()
            interval = self.spec.interval
            next_tick = time.monotonic() + interval
            while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
                next_tick = _next_tick(next_tick, interval, time.monotonic())
                if self.enabled:
                    self.scan_once()
        finally:
            with self._lock:
                self._status = WorkerStatus.CANCELLED
            logger.debug("Worker %s stopped", self.name)

    def scan_once(self) -> bool:
        """Run one full enumeration; return True when the stored result was replaced."""
        try:
            matches = self._store.scan(self.spec.pattern, self._stop_event.is_set)
        except ScanCancelled:
            return False
        except RVError as exc:
            self._report(ScanError(
                str(exc), context={"worker": self.name, "pattern": self.spec.pattern}, cause=exc
            ))
            return False
        except Exception as exc:
            self._report(ScanError(
                f"{type(exc).__name__}: {exc}",
                context={"worker": self.name, "pattern": self.spec.pattern},
                cause=exc,
            ))
            return False

        with self._lock:
            self._matches = tuple(matches)
            now = self._clock()
            # Keep the timestamp non-decreasing across wall-clock steps.
            if self._updated is not None and now < self._updated:
                now = self._updated
            self._updated = now
        return True

    def snapshot(self) -> WorkerSnapshot:
        with self._lock:
            matches, updated, enabled = self._matches, self._updated, self._enabled
        return WorkerSnapshot(
            name=self.name,
            pattern=self.spec.pattern,
            shape=self.spec.shape,
            matches=matches,
            updated=updated,
            enabled=enabled,
            single=self.spec.is_single,
        )

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        """Suppress future ticks; a scan already in flight still completes."""
        with self._lock:
            self._enabled = False

    def _report(self, error: ScanError) -> None:
        logger.warning(
            "Scan failed for %s: %s", self.name, error, extra=error_to_payload(error)
        )
        try:
            self.errors.put_nowait(f"(worker: {self.name}): {error}")
        except queue.Full:
            logger.debug("Error slot of %s occupied, dropping message", self.name)


def _next_tick(previous: float, interval: float, now: float) -> float:
    """Advance to the next grid point after ``now``; missed ticks are skipped."""
    tick = previous + interval
    if tick <= now:
        missed = int((now - previous) // interval)
        tick = previous + (missed + 1) * interval
    return tick
