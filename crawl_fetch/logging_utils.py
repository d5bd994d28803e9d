"""
Logging for crawl_fetch.

Fetch calls report what happened as events: a short message plus fields
(url, status_code, error_kind, ...) passed through log_event(). The console
and plain-text formats append the fields as key=value pairs; the JSONL format
writes them as top-level keys, so a run log can be filtered by URL or error
kind without parsing messages.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

PACKAGE_LOGGER = "crawl_fetch"

# Listed first, in this order, when an event is formatted
EVENT_FIELDS = ("url", "status_code", "error_kind", "error", "readable", "cookies", "path", "bytes")

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def setup_logging(cfg: LoggingConfig, log_dir: Path | None) -> logging.Logger:
    """Route crawl_fetch records to the console (stderr) and optionally a file."""
    level = _level_from_string(cfg.level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    handlers: list[logging.Handler] = []
    if cfg.console:
        # stdout carries command output
        console_handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
        console_handler.setFormatter(EventFormatter("%(message)s"))
        handlers.append(console_handler)
    if cfg.file and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / cfg.filename, encoding="utf-8")
        file_handler.setFormatter(_build_file_formatter(cfg.format))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)
    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    """Log message with fields attached to the record; None fields are left out."""
    if logger is None:
        return
    logger.log(level, message, extra={key: value for key, value in fields.items() if value is not None})


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    extras = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
    ordered = {key: extras.pop(key) for key in EVENT_FIELDS if key in extras}
    ordered.update(extras)
    return ordered


class EventFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = event_fields(record)
        if not fields:
            return text
        return text + " " + " ".join(f"{key}={value}" for key, value in fields.items())


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(event_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _build_file_formatter(fmt: str) -> logging.Formatter:
    if fmt == "jsonl":
        return JsonlFormatter()
    return EventFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")


def _level_from_string(level: str) -> int:
    return getattr(logging, str(level).upper(), logging.INFO)
