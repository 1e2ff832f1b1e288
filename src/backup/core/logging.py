"""
Logging utilities for the backup tooling.

Provides console logging with an optional JSON-lines format, and carries
the ``collection`` a record refers to so per-collection outcomes can be
filtered out of a long restore log.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional


CONTEXT_FIELDS = ("collection", "snapshot", "operation")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes:
    - Standard log fields (timestamp, level, message, logger)
    - Context fields if present (collection, snapshot, operation)
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with context.

    Format: TIMESTAMP [LEVEL] LOGGER - MESSAGE [collection=X]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
        else:
            fmt = "[%(levelname)s] %(name)s - %(message)s"
        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with context suffix."""
        base = super().format(record)

        context_parts = []
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                context_parts.append(f"{field}={value}")

        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
    stream=None,
) -> logging.Logger:
    """
    Configure logging for the backup package.

    Installs a single handler on the ``backup`` logger; calling it again
    replaces the handler instead of stacking a second one.

    Args:
        level: Logging level (default: INFO)
        structured: If True, output JSON lines; otherwise human-readable
        include_timestamp: Whether to include timestamps
        stream: Output stream (default: stdout)

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger("backup")
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)

    if structured:
        formatter = StructuredFormatter(include_timestamp=include_timestamp)
    else:
        formatter = HumanReadableFormatter(include_timestamp=include_timestamp)

    handler.setFormatter(formatter)
    package_logger.addHandler(handler)
    return package_logger


def collection_extra(name: str, operation: Optional[str] = None) -> dict:
    """Build the ``extra`` mapping for a per-collection log call."""
    extra = {"collection": name}
    if operation:
        extra["operation"] = operation
    return extra
