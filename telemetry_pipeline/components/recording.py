"""
Recording component for soil telemetry records.

Appends each canonical record as its own Parquet file under
devices/{deviceId}/telemetry, so an append never rewrites existing entries.
"""

import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from telemetry_pipeline.components.base import RecordingComponent
from telemetry_pipeline.config import PipelineConfig
from telemetry_pipeline.models import TelemetryRecord, WriteResult
from telemetry_pipeline.utils import get_logger, WriteFailed


class ParquetTelemetryRecorder(RecordingComponent):
    """Append-only, device-scoped Parquet storage for telemetry records."""

    def __init__(self, config: PipelineConfig):
        """
        Initialize recording component.

        Args:
            config: Pipeline configuration
        """
        super().__init__(config)
        self.logger = get_logger(__name__)

        self.root_path = Path(self.config.storage.root_dir)
        self.compression = self.config.storage.compression
        self.is_open = False

        # Approximate under concurrent invocations; counters are not locked
        self.stats = {
            "records_written": 0,
            "write_failures": 0
        }

    def open(self) -> None:
        """Create the storage root and accept appends."""
        try:
            self.root_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteFailed(f"Cannot open storage at {self.root_path}: {e}") from e
        self.is_open = True
        self.logger.info(f"Telemetry storage opened at {self.root_path}")

    def close(self) -> None:
        """Stop accepting appends."""
        if self.is_open:
            self.is_open = False
            self.logger.info(f"Telemetry storage closed: {self.stats['records_written']} records written")

    def device_collection(self, device_id: str) -> Path:
        """
        Directory holding the records of one device.

        Raises:
            WriteFailed: If the device id cannot be used as a single path segment
        """
        if (
            not device_id
            or device_id in (".", "..")
            or "/" in device_id
            or "\\" in device_id
            or "\x00" in device_id
        ):
            raise WriteFailed(f"Storage rejects device id {device_id!r}", device_id=device_id)
        return self.root_path / "devices" / device_id / "telemetry"

    def execute(self, device_id: str, record: TelemetryRecord) -> WriteResult:
        """
        Append a record to the device's collection.

        Args:
            device_id: Device owning the collection
            record: Canonical record to store

        Returns:
            Record id, commit time and location of the new entry

        Raises:
            WriteFailed: If the storage is closed or the write does not complete
        """
        if not self.is_open:
            self.stats["write_failures"] += 1
            raise WriteFailed("Telemetry storage is not open", device_id=device_id)

        try:
            collection = self.device_collection(device_id)
            collection.mkdir(parents=True, exist_ok=True)
            table = self._to_table(record)
        except WriteFailed:
            self.stats["write_failures"] += 1
            raise
        except (OSError, pa.ArrowException, ValueError, TypeError, OverflowError) as e:
            self.stats["write_failures"] += 1
            raise WriteFailed(f"Cannot prepare append for device {device_id}: {e}", device_id=device_id) from e

        record_id = self._new_record_id()
        path = collection / f"{record_id}.parquet"

        # Exclusive create: an existing entry is never replaced
        try:
            handle = open(path, "xb")
        except OSError as e:
            self.stats["write_failures"] += 1
            raise WriteFailed(f"Cannot create record {record_id} for device {device_id}: {e}", device_id=device_id) from e

        try:
            with handle:
                pq.write_table(table, handle, compression=self.compression)
        except (OSError, pa.ArrowException, ValueError, TypeError, OverflowError) as e:
            self.stats["write_failures"] += 1
            path.unlink(missing_ok=True)
            raise WriteFailed(f"Write of record {record_id} for device {device_id} failed: {e}", device_id=device_id) from e

        committed_at = datetime.now(timezone.utc)
        self.stats["records_written"] += 1

        return WriteResult(
            record_id=record_id,
            device_id=device_id,
            committed_at=committed_at,
            path=str(path)
        )

    def _to_table(self, record: TelemetryRecord) -> pa.Table:
        """One-row table holding only the fields present in the record."""
        document: Dict[str, Any] = record.to_document()
        frame = pd.DataFrame([document])
        frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
        return pa.Table.from_pandas(frame, preserve_index=False)

    @staticmethod
    def _new_record_id() -> str:
        """Time-ordered unique id: commit nanoseconds followed by a random suffix."""
        return f"{time.time_ns():016x}-{uuid.uuid4().hex[:12]}"
