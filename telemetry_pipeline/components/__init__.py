"""Pipeline components for soil telemetry ingestion."""

from .base import (
    PipelineComponent,
    NormalizationComponent,
    RecordingComponent
)

from .normalization import TelemetryNormalizationComponent, decode_message
from .recording import ParquetTelemetryRecorder
from .dead_letter import JsonlDeadLetterSink

__all__ = [
    "PipelineComponent",
    "NormalizationComponent",
    "RecordingComponent",
    "TelemetryNormalizationComponent",
    "decode_message",
    "ParquetTelemetryRecorder",
    "JsonlDeadLetterSink"
]
