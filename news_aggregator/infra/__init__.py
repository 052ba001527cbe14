"""Infra layer: SQLite persistence."""

from .storage import PersistResult, Store

__all__ = ["PersistResult", "Store"]
