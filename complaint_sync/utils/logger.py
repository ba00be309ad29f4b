"""Structured JSON Logging with Correlation ID Support"""
import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from ..config.settings import Settings, settings as default_settings


correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Extra record attributes promoted into the JSON payload
EXTRA_FIELDS = (
    "complaint_id", "status", "role", "state", "attempt", "delay_seconds",
    "change", "version", "count", "error_code", "url",
)

# Third-party loggers and the level they are held at
QUIET_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "websockets": logging.WARNING,
    "apscheduler": logging.WARNING,
}

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


class JsonFormatter(logging.Formatter):
    """One JSON object per record; sync events carry their extras as keys"""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id

        payload.update(
            (field, getattr(record, field)) for field in EXTRA_FIELDS if hasattr(record, field)
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _rotating_handler(path: str, formatter: logging.Formatter, level: int = logging.NOTSET) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Optional[Settings] = None) -> None:
    """
    Configure the root logger.

    Console output always; ``app.log`` and ``error.log`` (errors only)
    under LOGS_PATH when LOG_TO_FILE is enabled.
    """
    config = config or default_settings
    formatter = JsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if config.log_to_file:
        os.makedirs(config.logs_path, exist_ok=True)
        root_logger.addHandler(_rotating_handler(os.path.join(config.logs_path, "app.log"), formatter))
        root_logger.addHandler(
            _rotating_handler(os.path.join(config.logs_path, "error.log"), formatter, logging.ERROR)
        )

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID in context"""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get correlation ID from context"""
    return correlation_id_var.get()
