"""Utility modules for the soil telemetry ingestion pipeline."""

from .logging import setup_logging, get_logger, event_line, stored_line, failure_line
from .exceptions import PipelineError, MalformedPayload, WriteFailed, ConfigurationError

__all__ = [
    "setup_logging",
    "get_logger",
    "event_line",
    "stored_line",
    "failure_line",
    "PipelineError",
    "MalformedPayload",
    "WriteFailed",
    "ConfigurationError"
]
