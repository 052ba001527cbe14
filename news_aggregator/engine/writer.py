"""Single consumer persisting queued feed items."""

from __future__ import annotations

import queue
from threading import Event
from typing import TYPE_CHECKING

from ..errors import StorageError, StorageIntegrityError
from ..logging_conf import component_logger
from .items import FeedItem

if TYPE_CHECKING:
    from ..infra.storage import Store

DEFAULT_GET_TIMEOUT = 0.5


class IngestionWriter:
    """Drain the shared queue and persist items one transaction at a time.

    Only one writer runs per process, which serialises every write to the
    store. A failed item is logged and dropped; a failed rollback is not
    handled here and leaves :meth:`run`.
    """

    def __init__(
        self,
        store: "Store",
        source: "queue.Queue[FeedItem]",
        cancel: Event,
        get_timeout: float = DEFAULT_GET_TIMEOUT,
    ) -> None:
        self.store = store
        self.source = source
        self.cancel = cancel
        self.get_timeout = get_timeout
        self.logger = component_logger("writer")
        self.persisted = 0
        self.dropped = 0

    def run(self) -> None:
        self.logger.info("writer_started")
        while not self.cancel.is_set():
            try:
                item = self.source.get(timeout=self.get_timeout)
            except queue.Empty:
                continue
            if self.cancel.is_set():
                break
            self.handle(item)
        self.logger.info("writer_stopped", persisted=self.persisted, dropped=self.dropped)

    def handle(self, item: FeedItem) -> bool:
        try:
            result = self.store.persist(item)
        except StorageIntegrityError:
            raise
        except StorageError as exc:
            self.dropped += 1
            self.logger.error("persist_failed", link=item.link, error=str(exc))
            return False
        self.persisted += 1
        self.logger.debug(
            "record_persisted",
            link=item.link,
            record_id=result.record_id,
            created=result.created,
            categories_linked=result.categories_linked,
        )
        return True


__all__ = ["DEFAULT_GET_TIMEOUT", "IngestionWriter"]
