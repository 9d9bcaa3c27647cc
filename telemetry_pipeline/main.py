"""
Pipeline orchestrator for soil telemetry ingestion.

Each delivered message is handled by one independent invocation:
decode -> normalize -> record -> acknowledge. Components are built once per
process by build_pipeline() and released by TelemetryIngestionPipeline.close().
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Union

from telemetry_pipeline.config import PipelineConfig, load_config
from telemetry_pipeline.models import IngestionOutcome, RawEvent, WriteResult
from telemetry_pipeline.components import (
    TelemetryNormalizationComponent,
    ParquetTelemetryRecorder,
    JsonlDeadLetterSink,
    decode_message
)
from telemetry_pipeline.components.base import NormalizationComponent, RecordingComponent
from telemetry_pipeline.utils import (
    get_logger,
    setup_logging,
    event_line,
    stored_line,
    failure_line,
    MalformedPayload,
    WriteFailed
)


class DeliveredMessage(Protocol):
    """What the pipeline needs from a transport message."""

    data: Union[bytes, str, Mapping[str, Any]]
    attributes: Mapping[str, str]
    publish_time: Union[str, datetime]

    def ack(self) -> None: ...

    def nack(self) -> None: ...


class TelemetryIngestionPipeline:
    """Main pipeline orchestrator that coordinates normalization and recording."""

    def __init__(self, config: PipelineConfig):
        """
        Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration loaded from YAML
        """
        self.config = config
        self.logger = get_logger(__name__)

        # Components will be injected (dependency injection pattern)
        self.normalizer: Optional[NormalizationComponent] = None
        self.recorder: Optional[RecordingComponent] = None
        self.dead_letter: Optional[JsonlDeadLetterSink] = None

    def set_components(
        self,
        normalizer: NormalizationComponent,
        recorder: RecordingComponent,
        dead_letter: Optional[JsonlDeadLetterSink] = None
    ):
        """
        Set pipeline components (dependency injection).

        Args:
            normalizer: Event normalization component
            recorder: Record storage component
            dead_letter: Optional sink for events that fail normalization
        """
        self.normalizer = normalizer
        self.recorder = recorder
        self.dead_letter = dead_letter

    def process_event(self, event: RawEvent) -> WriteResult:
        """
        Normalize one raw event and append the resulting record.

        Args:
            event: Decoded inbound event

        Returns:
            Storage result of the append

        Raises:
            MalformedPayload: If the event cannot be normalized; nothing is stored
            WriteFailed: If the append does not complete
        """
        if self.normalizer is None or self.recorder is None:
            raise ValueError("Normalizer and recorder must be set before processing events")

        try:
            record = self.normalizer.execute(event.payload, event.device_id, event.delivery_timestamp)
        except MalformedPayload as e:
            self.logger.error(failure_line(e.stage, event.device_id, e))
            raise

        self.logger.info(event_line(event.device_id, record.soil_humidity, record.timestamp))

        try:
            result = self.recorder.execute(event.device_id, record)
        except WriteFailed as e:
            self.logger.error(failure_line(e.stage, event.device_id, e))
            raise

        self.logger.info(stored_line(result.record_id, result.device_id, result.committed_at))
        return result

    def handle_message(self, message: DeliveredMessage) -> IngestionOutcome:
        """
        Handle one delivered message and signal the outcome to the transport.

        The message is acknowledged only once the append has succeeded (or a
        malformed event has been dead-lettered); every other outcome is a
        negative acknowledgement so the transport redelivers.

        Args:
            message: Transport message with data, attributes, publish_time, ack() and nack()

        Returns:
            Outcome of the invocation
        """
        device_id = (message.attributes or {}).get("deviceId")
        delivery_timestamp = None

        try:
            delivery_timestamp = self._delivery_timestamp(message.publish_time)
            event = decode_message(message.data, message.attributes, delivery_timestamp)
        except MalformedPayload as e:
            self.logger.error(failure_line(e.stage, device_id, e))
            return self._reject(message, e, device_id, delivery_timestamp)

        try:
            result = self.process_event(event)
        except MalformedPayload as e:
            return self._reject(message, e, device_id, delivery_timestamp)
        except WriteFailed as e:
            message.nack()
            return IngestionOutcome(
                device_id=device_id,
                acknowledged=False,
                stage=e.stage,
                error=str(e)
            )
        except Exception:
            message.nack()
            raise

        message.ack()
        return IngestionOutcome(
            device_id=device_id,
            acknowledged=True,
            stage="done",
            write_result=result
        )

    def _reject(
        self,
        message: DeliveredMessage,
        error: MalformedPayload,
        device_id: Optional[str],
        delivery_timestamp: Optional[str]
    ) -> IngestionOutcome:
        """Dead-letter and acknowledge a malformed event, or negatively acknowledge it."""
        if self.dead_letter is not None:
            try:
                self.dead_letter.execute(device_id, message.data, delivery_timestamp, error)
            except (OSError, TypeError, ValueError) as sink_error:
                self.logger.error(f"Dead-letter write failed for device {device_id}: {sink_error}")
            else:
                message.ack()
                return IngestionOutcome(
                    device_id=device_id,
                    acknowledged=True,
                    stage=error.stage,
                    dead_lettered=True,
                    error=str(error)
                )

        message.nack()
        return IngestionOutcome(
            device_id=device_id,
            acknowledged=False,
            stage=error.stage,
            error=str(error)
        )

    @staticmethod
    def _delivery_timestamp(publish_time: Union[str, datetime, None]) -> str:
        if isinstance(publish_time, datetime):
            return publish_time.isoformat()
        if isinstance(publish_time, str):
            return publish_time
        raise MalformedPayload(f"Message has no delivery timestamp: {publish_time!r}")

    def close(self) -> None:
        """Release process-scoped resources."""
        if self.recorder is not None:
            self.recorder.close()
        if self.dead_letter is not None:
            self.dead_letter.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False


def build_pipeline(config: PipelineConfig) -> TelemetryIngestionPipeline:
    """
    Construct and open every component once for the life of the process.

    Args:
        config: Pipeline configuration

    Returns:
        Ready-to-use pipeline; call close() on shutdown
    """
    pipeline = TelemetryIngestionPipeline(config)

    normalizer = TelemetryNormalizationComponent(config)
    recorder = ParquetTelemetryRecorder(config)
    recorder.open()

    dead_letter = None
    if config.dead_letter.enabled:
        dead_letter = JsonlDeadLetterSink(config)
        dead_letter.open()

    pipeline.set_components(normalizer, recorder, dead_letter)
    return pipeline


def bootstrap(config_path: Union[str, Path] = "config/default.yaml") -> TelemetryIngestionPipeline:
    """
    Process startup: load configuration, set up logging and build the pipeline.

    Raises:
        ConfigurationError: If the configuration cannot be loaded
    """
    config = load_config(config_path)
    setup_logging(config.logging.level, config.logging.log_file, config.logging.format)
    pipeline = build_pipeline(config)
    get_logger(__name__).info(f"Pipeline {config.pipeline.name} v{config.pipeline.version} ready")
    return pipeline
