"""Configuration package exports."""

from .loader import ConfigRepository
from .models import ITEM_TAGS, AggregatorConfig, AppSettings, ParsingRule

__all__ = [
    "AggregatorConfig",
    "AppSettings",
    "ConfigRepository",
    "ITEM_TAGS",
    "ParsingRule",
]
