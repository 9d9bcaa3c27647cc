"""
Pydantic models for pipeline configuration.

These models provide type-safe parsing and validation of the YAML configuration file.
They ensure all required settings are present and have the correct types.
"""

from pathlib import Path
from typing import Optional, Union
import yaml
from pydantic import BaseModel, Field, field_validator, ConfigDict, ValidationError

from telemetry_pipeline.utils.exceptions import ConfigurationError
from telemetry_pipeline.utils.logging import DEFAULT_FORMAT

PROJECT_ROOT = Path(__file__).parent.parent.parent


def _resolve_path(v):
    """Resolve a relative path against the project root."""
    if isinstance(v, (str, Path)):
        path = Path(v)
        if not path.is_absolute():
            path = (PROJECT_ROOT / path).resolve()
        return str(path)
    return v


class PipelineInfo(BaseModel):
    """Basic pipeline metadata."""
    name: str = Field(..., description="Pipeline name")
    version: str = Field(..., description="Pipeline version")


class StorageSettings(BaseModel):
    """Telemetry record storage configuration."""
    root_dir: str = Field(..., description="Directory holding devices/{deviceId}/telemetry")
    compression: str = Field("zstd", description="Parquet compression codec")

    @field_validator('root_dir', mode='before')
    @classmethod
    def resolve_root(cls, v):
        """Convert relative storage root to absolute path."""
        return _resolve_path(v)


class DeadLetterSettings(BaseModel):
    """Where rejected events go when dead-lettering is enabled."""
    enabled: bool = Field(False, description="Acknowledge malformed events after recording them here")
    path: str = Field("data/dead_letter.jsonl", description="JSON-lines file for rejected events")

    @field_validator('path', mode='before')
    @classmethod
    def resolve_dead_letter_path(cls, v):
        return _resolve_path(v)


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: str = Field("INFO", description="Root logging level")
    log_file: Optional[str] = Field(None, description="Optional log file path")
    format: str = Field(DEFAULT_FORMAT, description="logging.Formatter format string")

    @field_validator('level')
    @classmethod
    def check_level(cls, v):
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown logging level: {v}")
        return v.upper()


class PipelineConfig(BaseModel):
    """Complete pipeline configuration model."""
    model_config = ConfigDict(extra='forbid')

    pipeline: PipelineInfo = Field(..., description="Pipeline metadata")
    storage: StorageSettings = Field(..., description="Record storage settings")
    dead_letter: DeadLetterSettings = Field(default_factory=DeadLetterSettings, description="Dead-letter settings")
    logging: LoggingSettings = Field(default_factory=LoggingSettings, description="Logging settings")

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "PipelineConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)

        return cls(**(config_data or {}))


def load_config(config_path: Union[str, Path]) -> PipelineConfig:
    """
    Load configuration, reporting any problem as a ConfigurationError.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Parsed pipeline configuration

    Raises:
        ConfigurationError: If the file is missing or its content is invalid
    """
    try:
        return PipelineConfig.from_yaml(config_path)
    except (FileNotFoundError, ValidationError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration {config_path}: {e}") from e
