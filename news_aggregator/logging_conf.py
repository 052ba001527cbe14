"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging.config
import os
from pathlib import Path

import structlog

LOGGER_NAME = "news_aggregator"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Console shows whatever the CLI asked for; the files keep a fixed floor.
LOG_FILES = {
    "aggregator_file": ("aggregator.log", "INFO"),
    "error_file": ("error.log", "ERROR"),
}

_configured = False


def log_dir() -> Path:
    """Directory holding the JSON log files (``$NEWS_AGGREGATOR_HOME/logs``)."""

    home = os.environ.get("NEWS_AGGREGATOR_HOME")
    base = Path(home).expanduser().resolve() if home else Path.cwd()
    return base / "logs"


def _handlers(directory: Path, console_level: str) -> dict[str, dict]:
    handlers: dict[str, dict] = {
        "console": {"class": "logging.StreamHandler", "level": console_level, "formatter": "json"}
    }
    for name, (filename, level) in LOG_FILES.items():
        handlers[name] = {
            "class": "logging.FileHandler",
            "filename": str(directory / filename),
            "level": level,
            "formatter": "json",
            "encoding": "utf-8",
        }
    return handlers


def _stdlib_config(directory: Path, level: str) -> dict:
    handlers = _handlers(directory, level)
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": "pythonjsonlogger.jsonlogger.JsonFormatter", "fmt": JSON_FORMAT}
        },
        "handlers": handlers,
        "loggers": {LOGGER_NAME: {"handlers": list(handlers), "level": level, "propagate": False}},
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Install the JSON handlers and structlog once; return the app logger.

    Later calls reuse the first configuration, so ``verbose`` only matters
    on the first call (the CLI callback makes it).
    """

    global _configured

    if not _configured:
        directory = log_dir()
        directory.mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(_stdlib_config(directory, "DEBUG" if verbose else "INFO"))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _configured = True
    return structlog.get_logger(LOGGER_NAME)


def component_logger(component: str, **context: object) -> structlog.BoundLogger:
    """Return the application logger bound to one component."""

    return configure_logging().bind(component=component, **context)


__all__ = ["LOGGER_NAME", "component_logger", "configure_logging", "log_dir"]
