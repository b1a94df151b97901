"""
Logging setup for the espresso journal server.

One named application logger with three handlers:
- console: human-readable, INFO and above
- ``espresso-journal.log``: every record as one JSON object per line
- ``espresso-journal-errors.log``: ERROR and above, same JSON format

Context passed through ``extra={...}`` (request_id, shot_id, query, ...)
is copied into the JSON object as top-level keys.
"""

import logging
import logging.handlers
import json
import sys
from pathlib import Path
from datetime import datetime, timezone
import traceback

LOGGER_NAME = "espresso-journal"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

# Attributes every LogRecord has; anything else came from extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        entry.update(
            (key, value) for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
        )
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Console format: time, logger, level, message."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def _json_file_handler(path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(
    log_dir: str = "/app/logs",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    log_level: str = "INFO"
) -> logging.Logger:
    """
    (Re)configure the application logger.

    Calling it again replaces the previous handlers, so tests and the
    temp-dir fallback in ``main`` can point logging somewhere else.

    Args:
        log_dir: Directory for the rotating JSON log files (created if missing)
        max_bytes: Size at which a log file is rotated
        backup_count: Rotated files to keep per log
        log_level: Logger level name, case-insensitive

    Returns:
        The configured logger
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    for handler in logger.handlers:
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(HumanReadableFormatter())

    logger.handlers = [
        console,
        _json_file_handler(log_path / f"{LOGGER_NAME}.log", logging.DEBUG, max_bytes, backup_count),
        _json_file_handler(log_path / f"{LOGGER_NAME}-errors.log", logging.ERROR, max_bytes, backup_count),
    ]

    logger.info(
        "Logging system initialized",
        extra={
            "log_dir": str(log_dir),
            "max_bytes": max_bytes,
            "backup_count": backup_count,
            "log_level": log_level
        }
    )
    return logger


def get_logger() -> logging.Logger:
    """Get the application logger (configured or not)."""
    return logging.getLogger(LOGGER_NAME)
