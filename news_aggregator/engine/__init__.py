"""Engine components: fetch → apply rule → queue → persist."""

from .fetcher import FeedEntry, FeedFetcher
from .items import FeedItem, SearchResult
from .poller import Poller
from .writer import IngestionWriter

__all__ = [
    "FeedEntry",
    "FeedFetcher",
    "FeedItem",
    "IngestionWriter",
    "Poller",
    "SearchResult",
]
