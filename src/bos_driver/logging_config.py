"""Structured logging configuration for the BOS storage driver.

Driver operations log with ``extra`` fields (path, bucket, operation,
upload_id) so a registry operator can follow a blob through the driver
when logs are shipped to an aggregator.

Key Features:
- JSON-formatted logs for structured data
- Per-thread context via the log_context() manager
- Plain-text fallback for interactive CLI use
"""

import json
import logging
import sys
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Union

ROOT_LOGGER_NAME = "bos_driver"

# Thread-local storage for log context
_log_context = threading.local()


def _get_context() -> Dict[str, Any]:
    """Return the log context dictionary for the current thread."""
    if not hasattr(_log_context, "data"):
        _log_context.data = {}
    data: Dict[str, Any] = _log_context.data
    return data


class JSONFormatter(logging.Formatter):
    """Formatter that renders each log record as a single JSON object.

    Example output:
        {
            "timestamp": "2026-10-17T09:12:00.123456",
            "level": "INFO",
            "logger": "bos_driver.driver",
            "message": "Completed multipart upload",
            "filename": "driver.py",
            "lineno": 210,
            "path": "/docker/registry/v2/blobs/sha256/ab/abcd/data",
            "parts": 3
        }
    """

    # Attributes every LogRecord carries; anything else came from extra=
    RESERVED_FIELDS = {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
        "getMessage",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "filename": record.filename,
            "lineno": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in self.RESERVED_FIELDS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data)


class ContextFilter(logging.Filter):
    """Logging filter that copies context fields onto every record.

    Args:
        context: Static fields applied to every record (e.g. {"driver": "bos"})
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__()
        self.context = context or {}

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            setattr(record, key, value)

        for key, value in _get_context().items():
            setattr(record, key, value)

        return True


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Add fields to every log record emitted within the block.

    Nested blocks inherit the outer fields; the previous context is
    restored on exit.

    Example:
        with log_context(bucket="registry", operation="write_stream"):
            logger.info("Uploading part")  # carries bucket and operation
    """
    context = _get_context()
    old_context = context.copy()

    try:
        context.update(kwargs)
        yield
    finally:
        context.clear()
        context.update(old_context)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Configure the ``bos_driver`` logger hierarchy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Whether to use JSON formatting (True) or plain text (False)
        log_file: Optional file path to write logs to (in addition to stderr)

    Returns:
        The configured ``bos_driver`` root logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    formatter: Union[JSONFormatter, logging.Formatter]
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # stderr keeps stdout clean for `bos-driver cat`
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ContextFilter())
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(ContextFilter())
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child of the ``bos_driver`` logger.

    Example:
        logger = get_logger("cli")  # logs as "bos_driver.cli"
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
