"""
Normalization component for soil telemetry events.

Turns a loosely-typed payload plus delivery metadata into a canonical
TelemetryRecord. This is a pure transformation: it does not log, write or
touch shared state, and it either returns a complete record or raises.
"""

import json
import math
import numbers
import re
from typing import Any, Dict, Mapping, Optional, Union
from datetime import datetime
import pandas as pd

from telemetry_pipeline.components.base import NormalizationComponent
from telemetry_pipeline.models import RawEvent, TelemetryRecord
from telemetry_pipeline.utils import MalformedPayload

# copied without transformation
PASSTHROUGH_FIELDS = ("watered_flag", "error", "success", "attempt")

# rounded to whole units
WHOLE_UNIT_FIELDS = ("temp", "humidity")

# date, optional time with fraction, optional Z or offset
ISO_8601 = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?"
    r"(?:Z|[+-]\d{2}(?::?\d{2})?)?\Z"
)


def is_numeric(value: Any) -> bool:
    """True for finite real numbers. Booleans and numeric strings do not count."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints beyond float range
        return False


def round_half_up(value: float, decimals: int = 0) -> float:
    """
    Round to the given number of decimals, halves rounding towards +inf.

    Raises:
        ValueError: If the scaled value leaves the float range
    """
    factor = 10 ** decimals
    try:
        scaled = value * factor + 0.5
        if not math.isfinite(scaled):
            raise OverflowError("scaled value is not finite")
        return math.floor(scaled) / factor
    except OverflowError as e:
        raise ValueError(f"{value!r} cannot be rounded to {decimals} decimals: {e}") from e


def parse_delivery_timestamp(value: Any, device_id: Optional[str] = None) -> datetime:
    """
    Parse an ISO-8601 delivery timestamp into a timezone-aware datetime.

    Naive timestamps are taken as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedPayload(f"Delivery timestamp missing or not a string: {value!r}", device_id=device_id)

    # pandas also takes "now", "today" and free-form dates
    if not ISO_8601.match(value):
        raise MalformedPayload(f"Delivery timestamp is not ISO-8601: {value!r}", device_id=device_id)

    try:
        parsed = pd.to_datetime(value, format="ISO8601", utc=True)
    except (ValueError, TypeError, OverflowError) as e:
        raise MalformedPayload(f"Unparseable delivery timestamp {value!r}: {e}", device_id=device_id) from e

    if pd.isna(parsed):
        raise MalformedPayload(f"Unparseable delivery timestamp {value!r}", device_id=device_id)

    return parsed.to_pydatetime()


def decode_message(
    data: Union[bytes, str, Mapping[str, Any]],
    attributes: Optional[Mapping[str, str]],
    delivery_timestamp: str
) -> RawEvent:
    """
    Build a RawEvent from a delivered message.

    Args:
        data: Message body, JSON-encoded bytes/str or an already decoded mapping
        attributes: Transport attribute map, must carry deviceId
        delivery_timestamp: Delivery time from the transport context

    Returns:
        RawEvent ready for normalization

    Raises:
        MalformedPayload: If the body is not a JSON object or deviceId is missing
    """
    device_id = (attributes or {}).get("deviceId")
    if not device_id:
        raise MalformedPayload("Message attributes carry no deviceId")

    if isinstance(data, Mapping):
        body = dict(data)
    else:
        try:
            if isinstance(data, (bytes, bytearray)):
                data = data.decode("utf-8")
            body = json.loads(data)
        except (UnicodeDecodeError, ValueError, TypeError) as e:
            raise MalformedPayload(f"Message body is not valid JSON: {e}", device_id=device_id) from e

    if not isinstance(body, dict):
        raise MalformedPayload(
            f"Message body must be a JSON object, got {type(body).__name__}", device_id=device_id
        )

    return RawEvent(device_id=device_id, payload=body, delivery_timestamp=delivery_timestamp)


class TelemetryNormalizationComponent(NormalizationComponent):
    """Concrete normalizer for soil/irrigation sensor payloads."""

    def execute(self, payload: Mapping[str, Any], device_id: str, delivery_timestamp: str) -> TelemetryRecord:
        """
        Normalize one raw event.

        Args:
            payload: Message body
            device_id: Originating device
            delivery_timestamp: ISO-8601 delivery time, authoritative over any payload timestamp

        Returns:
            Canonical telemetry record

        Raises:
            MalformedPayload: If soil_humidity is absent or not numeric, an optional
                numeric field cannot be rounded, device_id is empty or the
                timestamp does not parse
        """
        if not isinstance(device_id, str) or not device_id:
            raise MalformedPayload("Device id must be a non-empty string")

        if not isinstance(payload, Mapping):
            raise MalformedPayload(f"Payload must be a mapping, got {type(payload).__name__}", device_id=device_id)

        soil_humidity = payload.get("soil_humidity")
        if not is_numeric(soil_humidity):
            raise MalformedPayload(
                f"soil_humidity missing or not numeric: {soil_humidity!r}", device_id=device_id
            )

        fields: Dict[str, Any] = {
            "timestamp": parse_delivery_timestamp(delivery_timestamp, device_id),
            "soil_humidity": self._round(soil_humidity, 1, "soil_humidity", device_id),
        }

        for key in WHOLE_UNIT_FIELDS:
            value = payload.get(key)
            if value is None:
                continue
            if not is_numeric(value):
                raise MalformedPayload(f"{key} is not numeric: {value!r}", device_id=device_id)
            fields[key] = int(self._round(value, 0, key, device_id))

        for key in PASSTHROUGH_FIELDS:
            if payload.get(key) is not None:
                fields[key] = payload[key]

        return TelemetryRecord(**fields)

    @staticmethod
    def _round(value: float, decimals: int, key: str, device_id: str) -> float:
        try:
            return round_half_up(value, decimals)
        except ValueError as e:
            raise MalformedPayload(f"{key} out of range: {e}", device_id=device_id) from e

    def normalize_event(self, event: RawEvent) -> TelemetryRecord:
        """Normalize a decoded RawEvent."""
        return self.execute(event.payload, event.device_id, event.delivery_timestamp)
