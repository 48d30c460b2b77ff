"""Process wide logging setup for the batch CLI and the webhook server."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

# Loggers of libraries that report every request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore")


def _render_value(value: Any) -> str:
    if isinstance(value, str) and value and not any(char.isspace() for char in value):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


class EventFormatter(logging.Formatter):
    """Append the fields of ``log_event`` records as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if not isinstance(getattr(record, "event", None), str):
            return line
        fields = [
            f"{name}={_render_value(value)}"
            for name, value in record.__dict__.items()
            if name not in _RECORD_ATTRIBUTES and name != "event" and value is not None
        ]
        if not fields:
            return line
        head, sep, tail = line.partition("\n")
        return f"{head} {' '.join(fields)}{sep}{tail}"


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Install stdout (and optionally file) handlers using :class:`EventFormatter`."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    formatter = EventFormatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True,
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
