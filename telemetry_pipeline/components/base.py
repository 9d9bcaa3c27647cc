"""
Abstract base classes for pipeline components.

These define the interfaces that all pipeline components must implement,
ensuring consistency and enabling easy testing through dependency injection.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping
from telemetry_pipeline.config import PipelineConfig
from telemetry_pipeline.models import TelemetryRecord, WriteResult


class PipelineComponent(ABC):
    """Base class for all pipeline components."""

    def __init__(self, config: PipelineConfig):
        """Initialize component with pipeline configuration."""
        self.config = config

    @abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """Execute the component's main functionality."""
        pass


class NormalizationComponent(PipelineComponent):
    """Abstract base for event normalization components."""

    @abstractmethod
    def execute(self, payload: Mapping[str, Any], device_id: str, delivery_timestamp: str) -> TelemetryRecord:
        """
        Convert one raw event into a canonical telemetry record.

        Args:
            payload: Loosely-typed message body
            device_id: Originating device
            delivery_timestamp: ISO-8601 delivery time from the transport

        Returns:
            Canonical telemetry record
        """
        pass


class RecordingComponent(PipelineComponent):
    """Abstract base for record storage components."""

    def open(self) -> None:
        """Acquire storage resources. Called once at process startup."""

    def close(self) -> None:
        """Release storage resources. Called once at shutdown."""

    @abstractmethod
    def execute(self, device_id: str, record: TelemetryRecord) -> WriteResult:
        """
        Append a telemetry record under its device.

        Args:
            device_id: Device owning the record collection
            record: Record to append

        Returns:
            Identifier and commit time of the new entry
        """
        pass

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False
