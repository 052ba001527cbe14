"""Value objects travelling through the ingestion and search paths."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class FeedItem:
    """One feed entry after the parsing rule has been applied."""

    title: str
    link: str
    guid: str = ""
    description: str = ""
    published: str = ""
    categories: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SearchResult:
    """A stored record together with every category attached to it."""

    guid: str
    title: str
    link: str
    description: str
    published: str
    categories: list[str] = field(default_factory=list)


__all__ = ["FeedItem", "SearchResult"]
