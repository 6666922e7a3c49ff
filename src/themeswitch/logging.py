"""
Logging setup for themeswitch.

Every module logs through ``logging.getLogger(__name__)``, so all records
land under the ``themeswitch`` logger. ``setup_logging`` attaches either a
human-readable console handler or a JSON Lines handler to it; the CLI calls
it, applications embedding the library usually configure logging themselves.

Structured data passed through ``log_with_context`` travels on the record's
``context`` attribute and shows up in JSON output only.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, Any

PACKAGE_LOGGER = "themeswitch"

_RESET = "\033[0m"
_DIM = "\033[2m"
_LEVEL_STYLES = {
    logging.DEBUG: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}


def use_color(stream: IO[str]) -> bool:
    """Color only for interactive streams, and never when NO_COLOR is set."""
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class JSONLFormatter(logging.Formatter):
    """
    One JSON object per record.

    Example output:
    {"timestamp": "2026-01-15T10:30:45.123000Z", "level": "WARNING", "logger": "themeswitch.catalog", "message": "Ignoring unreadable theme manifest ..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "context", None):
            payload["context"] = record.context
        # Warnings and above point back at the emitting line
        if record.levelno >= logging.WARNING:
            payload["source"] = {"file": record.pathname, "line": record.lineno}
        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {"type": exc_type.__name__, "message": str(exc_value)}
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[12:00:00] [catalog] WARNING: message``; INFO lines omit the level."""

    def __init__(self, color: bool = False):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        module = record.name.rpartition(".")[2]

        parts = [f"{_DIM}{clock}{_RESET}" if self.color else f"[{clock}]", f"[{module}]"]
        if record.levelno != logging.INFO:
            label = f"{record.levelname}:"
            style = _LEVEL_STYLES.get(record.levelno)
            if self.color and style:
                label = f"{style}{label}{_RESET}"
            parts.append(label)
        parts.append(record.getMessage())

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: int = logging.INFO,
    json_output: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Configure the ``themeswitch`` logger.

    Replaces any handler a previous call installed.

    Args:
        level: Minimum log level
        json_output: Emit JSON Lines instead of console text
        stream: Output stream (default stderr)

    Returns:
        The configured package logger
    """
    stream = stream or sys.stderr
    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    if json_output:
        handler.setFormatter(JSONLFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(color=use_color(stream)))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    return package_logger


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **fields: Any,
) -> None:
    """
    Log ``message`` with structured fields attached for JSON output.

    ``fields`` are merged over ``context``.
    """
    merged = {**(context or {}), **fields}
    logger.log(level, message, extra={"context": merged} if merged else None)
