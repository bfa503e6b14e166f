"""Structured JSON logging with correlation ID support."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

DEFAULT_LOG_LEVEL = "INFO"
ROOT_LOGGER = "orderbot"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, tagged with the message's correlation ID."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        # Callers pass safe_log_context(...) here, never raw message text
        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str)


def _resolve_level(name: str | None = None) -> int:
    name = (name or os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL)).upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured for JSON output."""
    logger = logging.getLogger(name)

    # Only configure if no handlers (avoid duplicate handlers)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(_resolve_level())
        logger.propagate = False

    return logger


def configure_logging(level: str | None = None) -> logging.Logger:
    """JSON output for the whole package (domain modules use logging.getLogger).

    Args:
        level: Logging level name from settings. Falls back to LOG_LEVEL.
    """
    logger = get_logger(ROOT_LOGGER)
    logger.setLevel(_resolve_level(level))
    return logger
