"""Logging setup for the cache service.

Plain ``logging`` configured through ``dictConfig``. Three output formats
are available via ``settings.log_format``:

- ``text``: one human-readable line per record
- ``structured``: the text line plus request id and date range
- ``json``: one JSON object per line, for log shippers
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from apodcache.app.core.config import settings

# Attributes callers attach through ``extra=get_log_context(...)``
CONTEXT_FIELDS = (
    "request_id",
    "range_start",
    "range_end",
    "path",
    "method",
    "status_code",
    "duration_ms",
)

# Attributes every LogRecord carries; never reported as "extra"
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now().astimezone().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra: Dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in CONTEXT_FIELDS:
                if value is not None:
                    payload[key] = value
            elif key not in _RECORD_ATTRS:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Give every record all context attributes, None when not set.

    The structured text format interpolates them directly.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, None)
        return True


_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logging_config() -> Dict[str, Any]:
    """Build the ``dictConfig`` mapping for the current settings."""
    log_format = settings.log_format.lower()
    log_level = settings.log_level.upper()

    formatters: Dict[str, Any] = {
        "standard": {"format": _TEXT_FORMAT},
        "structured": {
            "format": _TEXT_FORMAT
            + " - request_id=%(request_id)s - range=%(range_start)s..%(range_end)s"
        },
    }
    if log_format == "json":
        formatters["json"] = {"()": "apodcache.app.core.logging.JSONFormatter"}
        formatter = "json"
    elif log_format == "structured":
        formatter = "structured"
    else:
        formatter = "standard"

    console = {
        "class": "logging.StreamHandler",
        "level": log_level,
        "formatter": formatter,
        "stream": sys.stdout,
        "filters": ["context"],
    }
    own_logger = {"level": log_level, "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {"context": {"()": "apodcache.app.core.logging.ContextFilter"}},
        "handlers": {"console": console},
        "loggers": {
            "apodcache": own_logger,
            "uvicorn": dict(own_logger),
        },
        "root": {"level": log_level, "handlers": ["console"]},
    }


def setup_logging() -> None:
    logging.config.dictConfig(get_logging_config())

    # Third-party chatter
    for name in ("uvicorn.access", "sqlalchemy.engine", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "apodcache") -> logging.Logger:
    return logging.getLogger(name)


def get_log_context(
    request_id: Optional[str] = None,
    range_start: Optional[str] = None,
    range_end: Optional[str] = None,
    **extra
) -> Dict[str, Any]:
    """Build an ``extra=`` dict, dropping fields that are None.

    Example:
        >>> logger.info(
        ...     "Fetched range",
        ...     extra=get_log_context(range_start="2020-01-01", range_end="2020-01-31")
        ... )
    """
    context = {
        "request_id": request_id,
        "range_start": range_start,
        "range_end": range_end,
        **extra,
    }
    return {k: v for k, v in context.items() if v is not None}
