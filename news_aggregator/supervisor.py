"""Supervisor wiring the shared queue, the writer and one poller per feed."""

from __future__ import annotations

import queue
from threading import Event, Lock, Thread
from typing import Callable, Sequence

from .config import ParsingRule
from .engine import FeedFetcher, FeedItem, IngestionWriter, Poller
from .errors import StorageIntegrityError
from .infra import Store
from .logging_conf import component_logger
from .scheduler import FeedScheduler

QUEUE_CAPACITY = 200


class Supervisor:
    """Own the lifecycle of the ingestion pipeline.

    ``start`` launches the writer thread first and then schedules every
    poller. ``stop`` raises the shared cancel event and shuts the scheduler
    down without draining the queue.
    """

    def __init__(
        self,
        store: Store,
        rules: Sequence[ParsingRule],
        fetcher: FeedFetcher | None = None,
        scheduler: FeedScheduler | None = None,
        on_fatal: Callable[[StorageIntegrityError], None] | None = None,
        queue_capacity: int = QUEUE_CAPACITY,
    ) -> None:
        self.store = store
        self.rules = list(rules)
        self.fetcher = fetcher or FeedFetcher()
        self.scheduler = scheduler or FeedScheduler(max_workers=len(self.rules))
        self.on_fatal = on_fatal
        self.cancel = Event()
        self.queue: "queue.Queue[FeedItem]" = queue.Queue(maxsize=queue_capacity)
        self.writer = IngestionWriter(store, self.queue, self.cancel)
        self.pollers = [Poller(rule, self.fetcher, self.queue, self.cancel) for rule in self.rules]
        self.logger = component_logger("supervisor")
        self._writer_thread: Thread | None = None
        self._fatal_error: StorageIntegrityError | None = None
        self._lock = Lock()

    @property
    def fatal_error(self) -> StorageIntegrityError | None:
        return self._fatal_error

    def start(self) -> None:
        if self._writer_thread is not None:
            return
        self._writer_thread = Thread(target=self._run_writer, name="ingestion-writer", daemon=True)
        self._writer_thread.start()
        for index, poller in enumerate(self.pollers):
            self.scheduler.schedule_rule(poller.rule, poller.poll_once, index=index)
        self.scheduler.start()
        self.logger.info("supervisor_started", feeds=len(self.pollers), capacity=self.queue.maxsize)

    def stop(self) -> None:
        self.cancel.set()
        self.scheduler.shutdown()
        self.logger.info("supervisor_stopped", pending=self.queue.qsize())

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the writer thread exits; return ``True`` if it did."""

        if self._writer_thread is None:
            return True
        self._writer_thread.join(timeout)
        return not self._writer_thread.is_alive()

    def raise_if_failed(self) -> None:
        if self._fatal_error is not None:
            raise self._fatal_error

    def _run_writer(self) -> None:
        try:
            self.writer.run()
        except StorageIntegrityError as exc:
            with self._lock:
                self._fatal_error = exc
            self.logger.critical("storage_integrity_fault", error=str(exc))
            self.stop()
            if self.on_fatal is not None:
                self.on_fatal(exc)


__all__ = ["QUEUE_CAPACITY", "Supervisor"]
