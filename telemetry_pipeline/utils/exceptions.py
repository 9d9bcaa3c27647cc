"""
Custom exceptions for the soil telemetry ingestion pipeline.

Each error carries the device it relates to and the pipeline stage that
failed, so log lines and outcomes can be triaged without the original message.
"""

from typing import Optional


class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""

    def __init__(self, message: str, device_id: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.device_id = device_id
        self.stage = stage


class MalformedPayload(PipelineError):
    """Raised when an inbound event cannot be normalized into a telemetry record."""

    def __init__(self, message: str, device_id: Optional[str] = None):
        super().__init__(message, device_id=device_id, stage="normalize")


class WriteFailed(PipelineError):
    """Raised when the storage layer rejects or cannot complete an append."""

    def __init__(self, message: str, device_id: Optional[str] = None):
        super().__init__(message, device_id=device_id, stage="record")


class ConfigurationError(PipelineError):
    """Raised when configuration is invalid or missing."""
    pass
