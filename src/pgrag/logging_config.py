"""
pgrag Structured Logging Configuration
======================================

Configures logging for the service with support for:
- JSON structured output (for production / log aggregation)
- Human-readable output (for development)
- File rotation
- Scoped silencing of chatty loggers (e.g. SQL logging during retrieval)

Usage:
    from pgrag.logging_config import setup_logging, silence_logger

    setup_logging()  # level, format and file from LOG_* settings

    with silence_logger("pgrag.rag.store"):
        ...

Silencing is tracked per execution context (thread or task), never by
changing a logger's level, so overlapping requests do not interfere.
"""

import json
import logging
import logging.handlers
import os
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Union

from .config import get_settings

# Third-party loggers kept at WARNING
NOISY_LOGGERS = ("urllib3", "httpx", "openai", "anthropic")

HUMAN_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)-24s | %(message)s"
HUMAN_DATEFMT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Retrieval calls attach ``extra={...}`` fields (k, threshold, counts);
    those listed in EXTRA_FIELDS are copied into the line when present.
    """

    EXTRA_FIELDS = ("k", "score_threshold", "result_count", "duration", "provider", "model")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in self.EXTRA_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return JSONFormatter()
    return logging.Formatter(HUMAN_FORMAT, datefmt=HUMAN_DATEFMT)


def setup_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
):
    """
    Configure the root logger.

    Arguments left as None fall back to LOG_LEVEL / LOG_JSON / LOG_FILE.

    Args:
        level: Root log level name
        json_output: Emit JSON lines instead of the human format
        log_file: Also write to this file, rotated at max_bytes
        max_bytes: Rotation size
        backup_count: Rotated files kept
    """
    log_config = get_settings().logging
    level = level or log_config.level
    json_output = log_config.json_logs if json_output is None else json_output
    log_file = log_file or log_config.log_file

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        )

    formatter = _make_formatter(json_output)
    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info("Logging configured: level=%s json=%s file=%s", level, json_output, log_file or "none")


# =============================================================================
# SCOPED SILENCING
# =============================================================================

# logger name -> minimum level emitted, for the current context only
_silenced: ContextVar[Dict[str, int]] = ContextVar("pgrag_silenced_loggers", default={})


class ContextSilenceFilter(logging.Filter):
    """Drops records below the level silenced for their logger in this context."""

    def filter(self, record: logging.LogRecord) -> bool:
        floor = _silenced.get().get(record.name)
        return floor is None or record.levelno >= floor


_silence_filter = ContextSilenceFilter()
_install_lock = threading.Lock()


def is_silenced(name: str, levelno: int) -> bool:
    """Whether a record at levelno on logger `name` is dropped in this context."""
    floor = _silenced.get().get(name)
    return floor is not None and levelno < floor


@contextmanager
def silence_logger(
    target: Union[str, logging.Logger],
    level: int = logging.ERROR,
) -> Iterator[logging.Logger]:
    """
    Drop a logger's records below ``level`` for the duration of a block.

    Only the calling thread or task is affected; the logger's own level
    is never touched. Nested blocks restore the outer setting on exit,
    including when the block raises.

    Args:
        target: Logger or logger name to silence
        level: Minimum level still emitted while silenced
    """
    logger = target if isinstance(target, logging.Logger) else logging.getLogger(target)
    with _install_lock:
        logger.addFilter(_silence_filter)

    token = _silenced.set({**_silenced.get(), logger.name: level})
    try:
        yield logger
    finally:
        _silenced.reset(token)
