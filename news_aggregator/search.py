"""Keyword search over stored record titles."""

from __future__ import annotations

from .engine import SearchResult
from .infra import Store


class SearchService:
    """Expose title search to the web and CLI layers."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def search(self, query: str) -> list[SearchResult]:
        # An empty query is a substring of every title and returns everything.
        return self.store.search(query)


__all__ = ["SearchService"]
