"""Owns every ScanWorker, their threads and the merged error stream."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Mapping

from rv_scanner.models import ScanSpec, WorkerSelection, WorkerSnapshot
from rv_scanner.store import StoreClient
from rv_scanner.worker import Clock, ScanWorker

logger = logging.getLogger(__name__)

FAN_IN_POLL_SECONDS = 0.1


class WorkerEngine:
    """Runs one ScanWorker per spec plus one fan-in thread per worker.

    The lexicographic order of spec names is fixed at construction and is the
    only mapping from a row index to a worker. Neither the order nor the
    worker set changes afterwards, so reading them needs no lock.
    """

    def __init__(
        self,
        specs: Mapping[str, ScanSpec],
        store: StoreClient,
        *,
        clock: Clock | None = None,
        autostart: bool = True,
    ) -> None:
        self._stop_event = threading.Event()
        self._order: tuple[str, ...] = tuple(sorted(specs))
        self._workers: dict[str, ScanWorker] = {
            name: ScanWorker(specs[name], store, self._stop_event, clock=clock)
            for name in self._order
        }
        self.messages: queue.Queue[str] = queue.Queue(maxsize=max(1, len(self._order)))
        self._threads: list[threading.Thread] = []
        self._started = False
        self._closed = False
        self._lifecycle_lock = threading.Lock()
        if autostart:
            self.start()

    @property
    def order(self) -> tuple[str, ...]:
        return self._order

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._order)

    def worker(self, name: str) -> ScanWorker:
        return self._workers[name]

    def start(self) -> None:
        """Spawn the worker and fan-in threads."""
        with self._lifecycle_lock:
            if self._started or self._closed:
                return
            self._started = True
            for name in self._order:
                worker = self._workers[name]
                self._spawn(worker.run, f"rv-worker-{name}")
                self._spawn(lambda w=worker: self._fan_in(w), f"rv-fan-in-{name}")
        logger.info("Started %d scan worker(s)", len(self._order))

    def _spawn(self, target, name: str) -> None:
        thread = threading.Thread(target=target, name=name, daemon=True)
        self._threads.append(thread)
        thread.start()

    def _fan_in(self, worker: ScanWorker) -> None:
        while not self._stop_event.is_set():
            try:
                message = worker.errors.get(timeout=FAN_IN_POLL_SECONDS)
            except queue.Empty:
                continue
            try:
                self.messages.put_nowait(message)
            except queue.Full:
                logger.debug("Message stream full, dropping: %s", message)

    def snapshots(self) -> list[WorkerSnapshot]:
        """Current state of every worker, in row order."""
        return [self._workers[name].snapshot() for name in self._order]

    def snapshot(self, index: int) -> WorkerSnapshot | None:
        worker = self._worker_at(index)
        return worker.snapshot() if worker else None

    def select_by_index(self, index: int) -> WorkerSelection | None:
        """Return the index-th worker's pattern, matches and shape, or None when no such row exists.

        A worker that matched nothing yields a selection with empty ``matches``,
        which callers must not confuse with None.
        """
        worker = self._worker_at(index)
        if worker is None:
            return None
        snap = worker.snapshot()
        return WorkerSelection(
            name=snap.name, pattern=snap.pattern, shape=snap.shape, matches=snap.matches
        )

    def enable(self, index: int) -> str | None:
        worker = self._worker_at(index)
        if worker is None:
            return None
        worker.enable()
        logger.info("Enabled worker %s", worker.name)
        return worker.name

    def disable(self, index: int) -> str | None:
        worker = self._worker_at(index)
        if worker is None:
            return None
        worker.disable()
        logger.info("Disabled worker %s", worker.name)
        return worker.name

    def drain_messages(self) -> list[str]:
        drained: list[str] = []
        while True:
            try:
                drained.append(self.messages.get_nowait())
            except queue.Empty:
                return drained

    def close(self) -> None:
        """Cancel every worker and block until all threads have exited."""
        with self._lifecycle_lock:
            self._closed = True
            self._stop_event.set()
            threads, self._threads = self._threads, []
        for thread in threads:
            thread.join()
        if threads:
            logger.info("Stopped %d engine thread(s)", len(threads))

    def __enter__(self) -> "WorkerEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _worker_at(self, index: int) -> ScanWorker | None:
        if 0 <= index < len(self._order):
            return self._workers[self._order[index]]
        return None
