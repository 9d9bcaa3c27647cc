"""
Logging for the soil telemetry ingestion pipeline.

setup_logging() configures the root logger once at process startup from the
logging section of the configuration. The per-event and per-write lines the
pipeline emits are built here so every transport sees the same format.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    fmt: str = DEFAULT_FORMAT
) -> None:
    """
    Configure the root logger, replacing any handlers already installed.

    Args:
        level: Logging level name
        log_file: Optional file that receives the same lines as stdout
        fmt: logging.Formatter format string
    """
    formatter = logging.Formatter(fmt, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Logger for a pipeline module (pass __name__)."""
    return logging.getLogger(name)


def event_line(device_id: str, soil_humidity: float, timestamp: datetime) -> str:
    """Line logged for every normalized event."""
    return f"Device={device_id}, Soil Humidity={soil_humidity}%, Timestamp={timestamp.isoformat()}"


def stored_line(record_id: str, device_id: str, committed_at: datetime) -> str:
    """Line logged for every committed append."""
    return f"Stored record {record_id} for device {device_id}, committed at {committed_at.isoformat()}"


def failure_line(stage: str, device_id: Optional[str], error: Exception) -> str:
    """Line logged when a stage fails, for manual triage."""
    return f"Stage {stage} failed for device {device_id}: {error}"
