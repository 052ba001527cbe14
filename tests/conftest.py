"""Shared fixtures for the aggregator test-suite."""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from news_aggregator.config import ParsingRule
from news_aggregator.engine import FeedEntry, FeedItem
from news_aggregator.errors import FeedFetchError
from news_aggregator.infra import Store

SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example News</title>
    <link>https://news.example.com/</link>
    <description>Example feed</description>
    <item>
      <title>Foo</title>
      <link>https://news.example.com/l1</link>
      <guid>guid-1</guid>
      <description>First story</description>
      <pubDate>Mon, 06 Sep 2021 16:45:00 GMT</pubDate>
      <category>tech</category>
    </item>
    <item>
      <title>Bar Foo</title>
      <link>https://news.example.com/l2</link>
      <guid>guid-2</guid>
      <description>Second story</description>
      <pubDate>Tue, 07 Sep 2021 08:00:00 GMT</pubDate>
      <category>tech</category>
      <category>world</category>
    </item>
  </channel>
</rss>
"""


@pytest.fixture(scope="session", autouse=True)
def _isolated_log_dir(tmp_path_factory: pytest.TempPathFactory) -> Iterable[None]:
    home = tmp_path_factory.mktemp("aggregator-home")
    previous = os.environ.get("NEWS_AGGREGATOR_HOME")
    os.environ["NEWS_AGGREGATOR_HOME"] = str(home)
    yield
    if previous is None:
        os.environ.pop("NEWS_AGGREGATOR_HOME", None)
    else:
        os.environ["NEWS_AGGREGATOR_HOME"] = previous


@pytest.fixture
def sample_rss() -> str:
    return SAMPLE_RSS


@pytest.fixture
def store(tmp_path: Path) -> Iterable[Store]:
    instance = Store(tmp_path / "aggregator.sqlite")
    yield instance
    instance.close()


@pytest.fixture
def make_rule() -> Callable[..., ParsingRule]:
    def _builder(**overrides: Any) -> ParsingRule:
        base: dict[str, Any] = {
            "timeout": 60,
            "url": "https://news.example.com/rss",
            "categories": True,
            "description": True,
            "guid": True,
            "pub_date": True,
        }
        base.update(overrides)
        return ParsingRule(**base)

    return _builder


@pytest.fixture
def make_item() -> Callable[..., FeedItem]:
    def _builder(link: str, title: str = "Title", categories: list[str] | None = None, **extra: Any) -> FeedItem:
        return FeedItem(title=title, link=link, categories=list(categories or []), **extra)

    return _builder


class StubFetcher:
    """Fetcher double returning canned entries per URL."""

    def __init__(self, entries: dict[str, list[FeedEntry]] | None = None, failing: Iterable[str] = ()) -> None:
        self.entries = entries or {}
        self.failing = set(failing)
        self.calls: list[str] = []
        self.closed = False

    def fetch(self, url: str) -> list[FeedEntry]:
        self.calls.append(url)
        if url in self.failing:
            raise FeedFetchError(url, "HTTP error: 503")
        return list(self.entries.get(url, []))

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def stub_fetcher_factory() -> Callable[..., StubFetcher]:
    return StubFetcher


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture(name="wait_until")
def wait_until_fixture() -> Callable[..., bool]:
    return wait_until
