"""HTTP fetching and RSS/Atom parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import feedparser
import httpx
import structlog

from .. import __version__
from ..errors import FeedFetchError

DEFAULT_TIMEOUT = 15.0
USER_AGENT = f"news-aggregator/{__version__}"


@dataclass(slots=True)
class FeedEntry:
    """Parser-normalised entry, before any parsing rule is applied."""

    title: str
    link: str
    guid: str = ""
    description: str = ""
    published: str = ""
    categories: list[str] = field(default_factory=list)


def _entry_categories(entry: Any) -> list[str]:
    categories: list[str] = []
    for tag in entry.get("tags") or []:
        term = tag.get("term")
        if term:
            categories.append(term)
    return categories


def entry_from_parsed(entry: Any) -> FeedEntry:
    """Build a :class:`FeedEntry` from a ``feedparser`` entry dict."""

    return FeedEntry(
        title=entry.get("title", ""),
        link=entry.get("link", ""),
        guid=entry.get("id", ""),
        description=entry.get("summary", ""),
        published=entry.get("published", ""),
        categories=_entry_categories(entry),
    )


def parse_feed(content: str | bytes, url: str) -> list[FeedEntry]:
    """Parse a feed document, raising :class:`FeedFetchError` when unusable."""

    try:
        parsed = feedparser.parse(content)
    except Exception as exc:  # feedparser can raise on malformed character data
        raise FeedFetchError(url, f"feed parse error: {exc}") from exc
    if parsed.bozo and not parsed.entries:
        raise FeedFetchError(url, f"feed parse error: {parsed.get('bozo_exception')}")
    return [entry_from_parsed(entry) for entry in parsed.entries]


class FeedFetcher:
    """Download feeds over one shared HTTP client."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.logger = logger or structlog.get_logger("news_aggregator.fetcher")
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )

    def fetch(self, url: str) -> list[FeedEntry]:
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.InvalidURL as exc:
            raise FeedFetchError(url, f"invalid URL: {exc}") from exc
        except httpx.HTTPError as exc:
            raise FeedFetchError(url, f"HTTP error: {exc}") from exc
        entries = parse_feed(response.content, url)
        self.logger.debug("feed_fetched", url=url, entries=len(entries), status=response.status_code)
        return entries

    def close(self) -> None:
        self._client.close()


__all__ = ["FeedEntry", "FeedFetcher", "entry_from_parsed", "parse_feed"]
