"""Pydantic models describing feed rules and process settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Tags are case sensitive because they mirror XML element names.
ITEM_TAGS = ("categories", "description", "guid", "pubDate")


class ParsingRule(BaseModel):
    """Rule for collecting items from one RSS feed.

    Title and link are always captured; every other item field is copied
    only when its flag is set.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timeout: int = Field(gt=0, description="Seconds between two polls of the feed.")
    url: str
    categories: bool = False
    description: bool = False
    guid: bool = False
    pub_date: bool = False
    ignored_tags: tuple[str, ...] = Field(default=(), exclude=True)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url cannot be empty")
        return value

    @model_validator(mode="before")
    @classmethod
    def _expand_item_tags(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "itemTags" not in data:
            return data
        payload = dict(data)
        tags = payload.pop("itemTags") or []
        if not isinstance(tags, (list, tuple)):
            raise ValueError("itemTags expects a list of tag names")
        present = set(tags)
        payload.setdefault("categories", "categories" in present)
        payload.setdefault("description", "description" in present)
        payload.setdefault("guid", "guid" in present)
        payload.setdefault("pub_date", "pubDate" in present)
        payload["ignored_tags"] = tuple(tag for tag in tags if tag not in ITEM_TAGS)
        return payload

    @property
    def item_tags(self) -> list[str]:
        flags = (self.categories, self.description, self.guid, self.pub_date)
        return [tag for tag, enabled in zip(ITEM_TAGS, flags) if enabled]

    def to_document(self) -> dict[str, Any]:
        return {"timeout": self.timeout, "url": self.url, "itemTags": self.item_tags}


class AggregatorConfig(BaseModel):
    """Top-level configuration document: a list of parsing rules."""

    model_config = ConfigDict(populate_by_name=True)

    rules: list[ParsingRule] = Field(default_factory=list, alias="rss")

    def to_document(self) -> dict[str, Any]:
        return {"rss": [rule.to_document() for rule in self.rules]}


class AppSettings(BaseModel):
    """Process level settings handed to the core by the CLI."""

    db_path: Path = Path("db.sqlite")
    config_path: Path = Path("config.json")
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8080

    @field_validator("db_path", "config_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)


__all__ = ["AggregatorConfig", "AppSettings", "ITEM_TAGS", "ParsingRule"]
