"""Structured logging sinks."""

from .logging import KeyValueFormatter, LoggerTelemetry, Telemetry, configure_logging

__all__ = ["KeyValueFormatter", "LoggerTelemetry", "Telemetry", "configure_logging"]
