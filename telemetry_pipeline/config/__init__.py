"""Configuration models for the soil telemetry ingestion pipeline."""

from .models import PipelineConfig, StorageSettings, DeadLetterSettings, LoggingSettings, load_config

__all__ = ["PipelineConfig", "StorageSettings", "DeadLetterSettings", "LoggingSettings", "load_config"]
