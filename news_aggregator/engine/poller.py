"""Per-feed polling: fetch, apply the parsing rule, emit to the shared queue."""

from __future__ import annotations

import queue
from threading import Event

from ..config import ParsingRule
from ..errors import FeedFetchError
from ..logging_conf import component_logger
from .fetcher import FeedEntry, FeedFetcher
from .items import FeedItem

DEFAULT_PUT_TIMEOUT = 0.5


class Poller:
    """Run fetch-and-parse cycles for one parsing rule.

    The scheduler calls :meth:`poll_once` on start and then every
    ``rule.timeout`` seconds. A full queue blocks the cycle until the writer
    frees a slot or the cancel event is set.
    """

    def __init__(
        self,
        rule: ParsingRule,
        fetcher: FeedFetcher,
        sink: "queue.Queue[FeedItem]",
        cancel: Event,
        put_timeout: float = DEFAULT_PUT_TIMEOUT,
    ) -> None:
        self.rule = rule
        self.fetcher = fetcher
        self.sink = sink
        self.cancel = cancel
        self.put_timeout = put_timeout
        self.logger = component_logger("poller", feed=rule.url)

    def apply_rule(self, entry: FeedEntry) -> FeedItem:
        rule = self.rule
        item = FeedItem(title=entry.title, link=entry.link)
        if rule.categories:
            item.categories = list(entry.categories)
        if rule.description:
            item.description = entry.description
        if rule.guid:
            item.guid = entry.guid
        if rule.pub_date:
            item.published = entry.published
        return item

    def poll_once(self) -> int:
        """Run one cycle and return the number of items emitted."""

        if self.cancel.is_set():
            return 0
        try:
            entries = self.fetcher.fetch(self.rule.url)
        except FeedFetchError as exc:
            self.logger.warning("feed_fetch_failed", reason=exc.reason)
            return 0

        emitted = 0
        for entry in entries:
            if not self._emit(self.apply_rule(entry)):
                self.logger.info("poll_cycle_cancelled", emitted=emitted, total=len(entries))
                break
            emitted += 1
        self.logger.debug("poll_cycle_done", emitted=emitted)
        return emitted

    def _emit(self, item: FeedItem) -> bool:
        while not self.cancel.is_set():
            try:
                self.sink.put(item, timeout=self.put_timeout)
            except queue.Full:
                continue
            return True
        return False


__all__ = ["DEFAULT_PUT_TIMEOUT", "Poller"]
