"""
multicache - Logging Setup

Structured logging for the package. Every module logs through
``logging.getLogger(__name__)``; this module only decides where those
records go and how they are rendered.
"""

import json
import logging
from datetime import UTC, datetime

from ..config import MultiCacheConfig, get_config

# Standard LogRecord attributes that are not "extra" fields
_RESERVED_ATTRS = frozenset(
    (
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "name",
        "message",
        "taskName",
    )
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }

        # Add any extra fields from record.__dict__
        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | int = logging.INFO,
    json_logs: bool = False,
    logger_name: str = "multicache",
) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Args:
        level: Log level name or number
        json_logs: Render records with JSONFormatter instead of plain text
        logger_name: Logger to configure (the package root by default)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers so repeated calls don't duplicate output
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def configure_logging_from_config(config: MultiCacheConfig | None = None) -> logging.Logger:
    """Apply the ``log_level`` and ``json_logs`` settings (global config if not provided)."""
    if config is None:
        config = get_config()
    return configure_logging(config.log_level, json_logs=config.json_logs)
