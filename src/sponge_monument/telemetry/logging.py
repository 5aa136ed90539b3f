"""Contract for structured observation sinks plus console logging setup."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from rich.logging import RichHandler

# Attributes present on every LogRecord; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class Telemetry(Protocol):
    """Reports structured observations such as detected sponge rooms."""

    def emit(self, event_name: str, payload: dict) -> None:
        """Publish telemetry event to the configured sink."""


class LoggerTelemetry:
    """Telemetry sink that forwards events to a standard logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("sponge_monument.telemetry")

    def emit(self, event_name: str, payload: dict) -> None:
        self._logger.info(event_name, extra=payload)


class KeyValueFormatter(logging.Formatter):
    """Appends ``extra`` fields to the message as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extras = _structured_fields(record)
        if not extras:
            return message
        rendered = " ".join(f"{key}={value}" for key, value in extras.items())
        return f"{message} {rendered}"


def _structured_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}


def configure_logging(level: str = "INFO") -> None:
    """Route ``sponge_monument`` loggers to a rich console handler."""
    handler = RichHandler(show_path=False, markup=False, rich_tracebacks=True)
    handler.setFormatter(KeyValueFormatter("%(message)s"))

    root = logging.getLogger("sponge_monument")
    root.handlers = [handler]
    root.setLevel(level.upper())
