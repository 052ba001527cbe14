"""Exception hierarchy shared by the aggregator components."""

from __future__ import annotations


class AggregatorError(Exception):
    """Base class for every error raised by the aggregator."""


class ConfigError(AggregatorError):
    """Configuration document is missing or does not validate."""


class FeedFetchError(AggregatorError):
    """A feed could not be downloaded or parsed; the poll cycle is skipped."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class StorageError(AggregatorError):
    """A storage operation failed and its transaction was rolled back."""


class StorageIntegrityError(StorageError):
    """Rollback itself failed; the database may be inconsistent.

    Nothing inside the process can repair this, so it must reach the entry
    point and terminate the run.
    """


__all__ = [
    "AggregatorError",
    "ConfigError",
    "FeedFetchError",
    "StorageError",
    "StorageIntegrityError",
]
