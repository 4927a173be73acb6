"""
Structured JSON logging.

Log records carry request-scoped fields (request_id, subscriber_email,
subscriber_name) through a RequestLogger that is created per request and
passed explicitly to the code handling it.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from typing import Any, TextIO

# Attributes every LogRecord has; anything else came in through `extra`.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One JSON object per line: time, level, name, logger, msg, plus any
    fields passed through `extra`.
    """

    def __init__(self, name: str, datefmt: str | None = "%Y-%m-%dT%H:%M:%S") -> None:
        super().__init__(datefmt=datefmt)
        self.name = name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": self.name,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class RequestLogger(logging.LoggerAdapter):  # type: ignore[type-arg]
    """
    Logger adapter holding request-scoped fields.

    Fields given per call through `extra` are merged over the bound ones.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        merged = dict(self.extra or {})
        merged.update(kwargs.get("extra") or {})
        kwargs["extra"] = merged
        return msg, kwargs

    def bind(self, **fields: Any) -> RequestLogger:
        """Return a new adapter with extra fields bound."""
        return RequestLogger(self.logger, {**(self.extra or {}), **fields})


def get_request_logger(request_id: str, name: str = "src.api") -> RequestLogger:
    """Build the logger for one request."""
    return RequestLogger(logging.getLogger(name), {"request_id": request_id})


def init_logging(
    name: str,
    level: str = "INFO",
    json_logs: bool = True,
    stream: TextIO | None = None,
) -> logging.Handler:
    """
    Configure root logging once at process start.

    Args:
        name: Application name written into every JSON record
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Use JSON format (True) or plain text (False)
        stream: Output stream (defaults to stdout)

    Returns:
        The installed handler
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for existing in [h for h in root_logger.handlers if getattr(h, "_app_handler", False)]:
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler._app_handler = True  # type: ignore[attr-defined]
    if json_logs:
        handler.setFormatter(JSONFormatter(name))
    else:
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
    root_logger.addHandler(handler)

    # Silence noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return handler
