"""Data models for the soil telemetry ingestion pipeline."""

from .data import RawEvent, TelemetryRecord, WriteResult, IngestionOutcome

__all__ = ["RawEvent", "TelemetryRecord", "WriteResult", "IngestionOutcome"]
