"""
Pytest configuration and shared fixtures for testing.

Provides common test fixtures and setup for all test modules.
"""

import json
import tempfile
import pytest
from pathlib import Path
from typing import Any, Dict, Optional

from telemetry_pipeline.config import PipelineConfig


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def sample_config(temp_dir):
    """Create a test configuration with temporary paths."""
    config_data = {
        "pipeline": {
            "name": "test_soil_telemetry_pipeline",
            "version": "1.0.0"
        },
        "storage": {
            "root_dir": str(temp_dir / "telemetry"),
            "compression": "zstd"
        },
        "dead_letter": {
            "enabled": False,
            "path": str(temp_dir / "dead_letter.jsonl")
        },
        "logging": {
            "level": "DEBUG"
        }
    }

    return PipelineConfig(**config_data)


@pytest.fixture
def full_payload():
    """A payload carrying every field a device may send."""
    return {
        "soil_humidity": 41.26,
        "temp": 21.6,
        "humidity": 44.5,
        "watered_flag": True,
        "error": "pump timeout",
        "success": False,
        "attempt": 3
    }


class FakeMessage:
    """Transport message double recording acknowledgements."""

    def __init__(
        self,
        data: Any,
        attributes: Optional[Dict[str, str]] = None,
        publish_time: Any = "2024-03-01T10:00:00Z"
    ):
        if isinstance(data, dict):
            data = json.dumps(data).encode("utf-8")
        self.data = data
        self.attributes = attributes if attributes is not None else {"deviceId": "sensor-1"}
        self.publish_time = publish_time
        self.acks = 0
        self.nacks = 0

    def ack(self) -> None:
        self.acks += 1

    def nack(self) -> None:
        self.nacks += 1


@pytest.fixture
def make_message():
    """Factory for transport message doubles."""
    return FakeMessage
