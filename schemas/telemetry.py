"""Telemetry and registry schemas.

These are the records the two storage gateways hand to the triage core.
The core only ever reads them: log entries come from the evidence store,
device records come from the registry.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class GeoPoint(BaseModel):
    """A longitude/latitude pair in degrees."""

    model_config = ConfigDict(frozen=True)

    longitude: float
    latitude: float


class MonitoringLogEntry(BaseModel):
    """A single telemetry observation reported by an implant.

    Metric readings must be finite. A NaN would compare false against every
    threshold and make the device peak depend on reading order.

    Attributes:
        serial_number: Serial of the implant that produced the reading.
            Evidence is grouped on this key.
        owner_ref: Reference to the person carrying the implant, as stored
            alongside the reading.
        timestamp: When the reading was taken.
        power_usage_uw: Power draw in microwatts.
        cpu_usage_pct: CPU utilisation, 0-100.
        neural_latency_ms: Neural interface round-trip latency.
        location: Where the reading was taken.
    """

    model_config = ConfigDict(frozen=True)

    serial_number: str
    owner_ref: str | None = None
    timestamp: datetime
    power_usage_uw: float = Field(allow_inf_nan=False)
    cpu_usage_pct: float = Field(allow_inf_nan=False)
    neural_latency_ms: float = Field(allow_inf_nan=False)
    location: GeoPoint


class DeviceRecord(BaseModel):
    """Registry metadata for one implant.

    Attributes:
        serial_number: The implant serial this record describes.
        lot_number: Manufacturing lot, kept as a string so registries that
            use alphanumeric lots fit without conversion.
        model: Model identifier (e.g. "Model-Dvb688").
        owner_ref: National ID (or equivalent) of the owner.
        manufacturer: Optional vendor name. Used only as prompt context.
        device_type: Optional implant category ("limb", "ocular", ...).
    """

    model_config = ConfigDict(frozen=True)

    serial_number: str
    lot_number: str | None = None
    model: str | None = None
    owner_ref: str | None = None
    manufacturer: str | None = None
    device_type: str | None = None


class MonitoringStats(BaseModel):
    """Average telemetry for one implant over the investigation window."""

    model_config = ConfigDict(frozen=True)

    serial_number: str
    sample_count: int
    avg_power_usage_uw: float
    avg_cpu_usage_pct: float
    avg_neural_latency_ms: float
