"""
Pydantic models for data structures used throughout the pipeline.

These models ensure type safety and validation for data flowing between components.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


class RawEvent(BaseModel):
    """An inbound event as delivered by the transport, before normalization."""
    device_id: str = Field(..., description="Originating device, taken from transport attributes")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Loosely-typed message body")
    delivery_timestamp: str = Field(..., description="ISO-8601 delivery time supplied by the transport")


class TelemetryRecord(BaseModel):
    """
    Canonical, persisted representation of one sensor reading.

    Optional fields are left as None when the payload did not supply them and
    are dropped on serialization, so an absent field is never written.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    timestamp: datetime = Field(..., description="Delivery time of the event")
    soil_humidity: float = Field(..., alias="soilHumidity", description="Soil humidity, one decimal place")
    temp: Optional[int] = Field(None, description="Temperature, whole units")
    humidity: Optional[int] = Field(None, description="Air humidity, whole units")
    watered_flag: Optional[Any] = Field(None, alias="wateredFlag", description="Copied verbatim")
    error: Optional[Any] = Field(None, description="Copied verbatim")
    success: Optional[Any] = Field(None, description="Copied verbatim")
    attempt: Optional[Any] = Field(None, description="Copied verbatim")

    def to_document(self) -> Dict[str, Any]:
        """Return the record under its canonical field names, without absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class WriteResult(BaseModel):
    """Outcome of a successful append, as reported by the storage layer."""
    record_id: str = Field(..., description="Opaque identifier generated by storage")
    device_id: str = Field(..., description="Device the record was appended under")
    committed_at: datetime = Field(..., description="Time the write was committed")
    path: str = Field(..., description="Location of the stored record")


class IngestionOutcome(BaseModel):
    """Result of handling one delivered message."""
    device_id: Optional[str] = Field(None, description="Device id, when it could be determined")
    acknowledged: bool = Field(..., description="Whether the message was acknowledged to the transport")
    stage: str = Field(..., description="Last stage reached: normalize, record or done")
    write_result: Optional[WriteResult] = Field(None, description="Storage result on success")
    dead_lettered: bool = Field(False, description="Whether the event was routed to the dead-letter sink")
    error: Optional[str] = Field(None, description="Error detail on failure")
