"""Console and rotating JSON-file logging for harvest runs."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Any

from .config import AppConfig

NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")
CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
# optional attributes copied from ``extra=`` into the JSON line
RECORD_FIELDS: tuple[str, ...] = ("video_id", "endpoint", "page", "collected", "attempt", "output_dir")


class JsonFormatter(logging.Formatter):
    """One JSON object per line for the rotating run log."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, "event", record.funcName),
            "environment": getattr(record, "environment", "unknown"),
            "message": record.getMessage(),
        }
        for name in RECORD_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


class RunContextFilter(logging.Filter):
    """Stamps environment and video id onto every record."""

    def __init__(self, environment: str, video_id: str | None = None) -> None:
        super().__init__()
        self.environment = environment
        self.video_id = video_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.environment = self.environment
        if not hasattr(record, "event"):
            record.event = record.funcName
        if self.video_id and not getattr(record, "video_id", None):
            record.video_id = self.video_id
        return True


def _console_handler(verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _file_handler(config: AppConfig) -> logging.Handler:
    config.log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(
        filename=str(config.log_path),
        when="midnight",
        backupCount=14,
        utc=True,
        encoding="utf-8",
    )
    handler.setFormatter(JsonFormatter())
    return handler


def configure_logging(config: AppConfig, *, verbose: bool = False) -> None:
    """Replace root handlers with a console stream and a daily-rotated JSON log."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose or config.environment == "development" else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    context = RunContextFilter(config.environment, config.video_id)
    for handler in (_console_handler(verbose), _file_handler(config)):
        handler.addFilter(context)
        root.addHandler(handler)

    # request URLs carry the API key
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
