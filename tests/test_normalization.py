"""
Tests for the normalization component.

Tests cover rounding rules, optional field presence, verbatim pass-through,
timestamp handling, message decoding and rejection of malformed payloads.
"""

import json
import pytest
from datetime import datetime, timezone

from telemetry_pipeline.components.normalization import (
    TelemetryNormalizationComponent,
    decode_message,
    is_numeric,
    round_half_up
)
from telemetry_pipeline.models import RawEvent, TelemetryRecord
from telemetry_pipeline.utils.exceptions import MalformedPayload

DELIVERED = "2024-03-01T10:00:00Z"


class TestTelemetryNormalizationComponent:
    """Test suite for TelemetryNormalizationComponent."""

    def test_soil_humidity_only(self, sample_config):
        """Only soil humidity supplied: one decimal place, no optional fields."""
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute({"soil_humidity": 12.34}, "sensor-1", DELIVERED)

        assert record.soil_humidity == 12.3
        assert record.to_document() == {
            "timestamp": datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
            "soilHumidity": 12.3
        }

    def test_whole_unit_rounding(self, sample_config):
        """Temperature and humidity round to whole units, halves up."""
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute({"soil_humidity": 50, "temp": 21.6, "humidity": 44.5}, "sensor-1", DELIVERED)

        assert record.soil_humidity == 50.0
        assert isinstance(record.soil_humidity, float)
        assert record.temp == 22
        assert record.humidity == 45
        assert isinstance(record.temp, int)

    def test_negative_half_rounds_up(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute({"soil_humidity": 10, "temp": -2.5}, "sensor-1", DELIVERED)

        assert record.temp == -2

    def test_soil_humidity_rounds_to_one_decimal_not_whole(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute({"soil_humidity": 33.36}, "sensor-1", DELIVERED)

        assert record.soil_humidity == 33.4

    def test_passthrough_fields_are_verbatim(self, sample_config, full_payload):
        """watered_flag, error, success and attempt are copied as-is."""
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute(full_payload, "sensor-1", DELIVERED)
        document = record.to_document()

        assert document["wateredFlag"] is True
        assert document["error"] == "pump timeout"
        assert document["success"] is False
        assert document["attempt"] == 3

    def test_passthrough_does_not_coerce(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute(
            {"soil_humidity": 20, "watered_flag": 1, "error": True, "attempt": 2.5},
            "sensor-1",
            DELIVERED
        )

        assert record.watered_flag == 1 and record.watered_flag is not True
        assert record.error is True
        assert record.attempt == 2.5

    def test_falsy_values_are_kept(self, sample_config):
        """Present-but-falsy fields are still present in the record."""
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute(
            {"soil_humidity": 0, "temp": 0, "watered_flag": False, "attempt": 0},
            "sensor-1",
            DELIVERED
        )
        document = record.to_document()

        assert document["soilHumidity"] == 0.0
        assert document["temp"] == 0
        assert document["wateredFlag"] is False
        assert document["attempt"] == 0

    def test_absent_fields_are_not_invented(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        document = component.execute({"soil_humidity": 5, "humidity": 70}, "sensor-1", DELIVERED).to_document()

        assert set(document) == {"timestamp", "soilHumidity", "humidity"}

    def test_null_fields_are_treated_as_absent(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        document = component.execute({"soil_humidity": 5, "temp": None, "error": None}, "sensor-1", DELIVERED).to_document()

        assert "temp" not in document
        assert "error" not in document

    def test_unknown_keys_and_payload_timestamp_ignored(self, sample_config):
        """The delivery timestamp wins over anything in the payload."""
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute(
            {"soil_humidity": 5, "timestamp": "1999-01-01T00:00:00Z", "battery": 80},
            "sensor-1",
            DELIVERED
        )

        assert record.timestamp == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert "battery" not in record.to_document()

    def test_timestamp_is_datetime(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        record = component.execute({"soil_humidity": 5}, "sensor-1", DELIVERED)

        assert isinstance(record.timestamp, datetime)
        assert record.timestamp.utcoffset().total_seconds() == 0

    def test_timestamp_with_offset_and_naive(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        with_offset = component.execute({"soil_humidity": 5}, "sensor-1", "2024-03-01T12:00:00+02:00")
        naive = component.execute({"soil_humidity": 5}, "sensor-1", "2024-03-01T10:00:00")

        assert with_offset.timestamp == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert naive.timestamp == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("payload", [
        {},
        {"temp": 20},
        {"soil_humidity": "12.5"},
        {"soil_humidity": None},
        {"soil_humidity": True},
        {"soil_humidity": float("nan")},
        {"soil_humidity": [1]},
    ])
    def test_missing_or_non_numeric_soil_humidity(self, sample_config, payload):
        component = TelemetryNormalizationComponent(sample_config)

        with pytest.raises(MalformedPayload) as exc_info:
            component.execute(payload, "sensor-1", DELIVERED)

        assert exc_info.value.device_id == "sensor-1"
        assert exc_info.value.stage == "normalize"

    def test_non_numeric_temp_rejected(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        with pytest.raises(MalformedPayload, match="temp"):
            component.execute({"soil_humidity": 5, "temp": "warm"}, "sensor-1", DELIVERED)

    def test_empty_device_id_rejected(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)

        with pytest.raises(MalformedPayload):
            component.execute({"soil_humidity": 5}, "", DELIVERED)

    @pytest.mark.parametrize("payload", [
        {"soil_humidity": 1.7e308},
        {"soil_humidity": 10 ** 400},
        {"soil_humidity": 10 ** 308},
        {"soil_humidity": 5, "temp": 10 ** 400},
    ])
    def test_out_of_range_numbers_rejected(self, sample_config, payload):
        """Values too large to round are malformed, not a crash."""
        component = TelemetryNormalizationComponent(sample_config)

        with pytest.raises(MalformedPayload) as exc_info:
            component.execute(payload, "sensor-1", DELIVERED)

        assert exc_info.value.device_id == "sensor-1"

    @pytest.mark.parametrize("timestamp", [
        "", "not a date", None, "2024-13-45T99:00:00Z",
        "now", "today", "March 1 2024", "01/03/2024", "2024-03-01T10:00:00Z\n",
    ])
    def test_invalid_delivery_timestamp_rejected(self, sample_config, timestamp):
        component = TelemetryNormalizationComponent(sample_config)

        with pytest.raises(MalformedPayload):
            component.execute({"soil_humidity": 5}, "sensor-1", timestamp)

    def test_is_pure(self, sample_config, full_payload):
        """Same inputs give equal records and the payload is left untouched."""
        component = TelemetryNormalizationComponent(sample_config)
        before = dict(full_payload)

        first = component.execute(full_payload, "sensor-1", DELIVERED)
        second = component.execute(full_payload, "sensor-1", DELIVERED)

        assert first == second
        assert full_payload == before

    def test_record_is_immutable(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)
        record = component.execute({"soil_humidity": 5}, "sensor-1", DELIVERED)

        with pytest.raises(Exception):
            record.soil_humidity = 99.0

    def test_normalize_event(self, sample_config):
        component = TelemetryNormalizationComponent(sample_config)
        event = RawEvent(device_id="sensor-9", payload={"soil_humidity": 7.77}, delivery_timestamp=DELIVERED)

        record = component.normalize_event(event)

        assert isinstance(record, TelemetryRecord)
        assert record.soil_humidity == 7.8


class TestHelpers:
    """Tests for numeric helpers."""

    def test_round_half_up(self):
        assert round_half_up(44.5) == 45
        assert round_half_up(45.5) == 46
        assert round_half_up(12.34, 1) == 12.3
        assert round_half_up(12.25, 1) == 12.3

    def test_is_numeric(self):
        assert is_numeric(1)
        assert is_numeric(1.5)
        assert not is_numeric(True)
        assert not is_numeric("1")
        assert not is_numeric(float("inf"))
        assert not is_numeric(None)
        assert not is_numeric(10 ** 400)

    def test_round_half_up_out_of_range(self):
        with pytest.raises(ValueError):
            round_half_up(1.7e308, 1)


class TestDecodeMessage:
    """Tests for decoding transport messages into raw events."""

    def test_decode_json_bytes(self):
        event = decode_message(json.dumps({"soil_humidity": 3}).encode(), {"deviceId": "sensor-1"}, DELIVERED)

        assert event.device_id == "sensor-1"
        assert event.payload == {"soil_humidity": 3}
        assert event.delivery_timestamp == DELIVERED

    def test_decode_mapping(self):
        event = decode_message({"soil_humidity": 3}, {"deviceId": "sensor-1"}, DELIVERED)

        assert event.payload == {"soil_humidity": 3}

    def test_missing_device_id(self):
        with pytest.raises(MalformedPayload, match="deviceId"):
            decode_message(b'{"soil_humidity": 3}', {}, DELIVERED)

    def test_invalid_json(self):
        with pytest.raises(MalformedPayload) as exc_info:
            decode_message(b"{not json", {"deviceId": "sensor-1"}, DELIVERED)

        assert exc_info.value.device_id == "sensor-1"

    def test_non_object_body(self):
        with pytest.raises(MalformedPayload, match="JSON object"):
            decode_message(b"[1, 2, 3]", {"deviceId": "sensor-1"}, DELIVERED)
