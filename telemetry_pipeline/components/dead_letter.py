"""
Dead-letter sink for events that cannot be normalized.

Only used when dead_letter.enabled is set; otherwise malformed events are
negatively acknowledged and left to the transport's redelivery policy.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from telemetry_pipeline.components.base import PipelineComponent
from telemetry_pipeline.config import PipelineConfig
from telemetry_pipeline.utils import get_logger, PipelineError


class JsonlDeadLetterSink(PipelineComponent):
    """Appends rejected events to a JSON-lines file."""

    def __init__(self, config: PipelineConfig):
        super().__init__(config)
        self.logger = get_logger(__name__)
        self.path = Path(self.config.dead_letter.path)
        # Approximate under concurrent invocations
        self.stats = {"events_dead_lettered": 0}

    def open(self) -> None:
        """Create the directory holding the dead-letter file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def close(self) -> None:
        """Nothing to release: the file is opened per write."""

    def execute(
        self,
        device_id: Optional[str],
        payload: Any,
        delivery_timestamp: Optional[str],
        error: PipelineError
    ) -> None:
        """
        Record one rejected event.

        Raises:
            OSError: If the dead-letter file cannot be written
        """
        if isinstance(payload, (bytes, bytearray)):
            payload = payload.decode("utf-8", errors="replace")

        entry = {
            "dead_lettered_at": datetime.now(timezone.utc).isoformat(),
            "device_id": device_id,
            "stage": error.stage,
            "error": str(error),
            "delivery_timestamp": delivery_timestamp,
            "payload": payload
        }

        with open(self.path, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")

        self.stats["events_dead_lettered"] += 1
        self.logger.warning(f"Dead-lettered event from device {device_id}: {error}")
