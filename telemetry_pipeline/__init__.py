"""
Soil Telemetry Ingestion Pipeline

Ingests telemetry events published by soil/irrigation sensor devices, normalizes
each reading and appends it to a per-device history of timestamped records.
"""

__version__ = "1.0.0"
