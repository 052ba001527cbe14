"""Configuration loading helpers."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from ..logging_conf import component_logger
from .models import AggregatorConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


class ConfigRepository:
    """Read and write the feed rule document."""

    def __init__(self) -> None:
        self.logger = component_logger("config")

    def load(self, path: Path) -> AggregatorConfig:
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        if path.suffix not in CONFIG_EXTENSIONS:
            raise ConfigError(f"Unsupported configuration format: {path.suffix}")
        try:
            payload = _read_file(path)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigError(f"Configuration file is malformed: {path}: {exc}") from exc
        try:
            config = AggregatorConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(f"Configuration file is invalid: {path}: {exc}") from exc
        for rule in config.rules:
            if rule.ignored_tags:
                self.logger.warning("unknown_item_tags", url=rule.url, tags=list(rule.ignored_tags))
        self.logger.info("config_loaded", path=str(path), rules=len(config.rules))
        return config

    def save(self, config: AggregatorConfig, path: Path) -> Path:
        _write_file(path, config.to_document())
        return path


__all__ = ["CONFIG_EXTENSIONS", "ConfigRepository"]
