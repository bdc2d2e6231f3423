"""Incident signal schema.

The IncidentSignal is the query that defines one investigation: where to
look, when to look, which telemetry metric to inspect and what value counts
as anomalous. It is validated once at construction and never mutated, so
every downstream stage can trust its ranges without re-checking them.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Metric(str, Enum):
    """The telemetry fields a signal can inspect.

    Values match the names the telemetry store and the LLM prompts use, so a
    parsed signal serializes back to the same strings it was read from.
    Anything outside this set is rejected when the signal is built.
    """

    NEURAL_LATENCY_MS = "neuralLatencyMs"
    CPU_USAGE_PCT = "cpuUsagePct"
    POWER_USAGE_UW = "powerUsageUw"


class IncidentSignal(BaseModel):
    """A validated geo/time/metric query for one incident investigation.

    Attributes:
        longitude: Center longitude in degrees, [-180, 180].
        latitude: Center latitude in degrees, [-90, 90].
        radius_meters: Search radius around the center. Strictly positive.
        from_time: Start of the window, inclusive. Naive local timestamp as
            reported by the devices; no timezone conversion is applied.
        to_time: End of the window, inclusive. Must be after from_time.
        metric: Which telemetry field the threshold applies to.
        threshold: Value at or above which a reading counts as exceeding.
            Strictly positive and finite.
    """

    model_config = ConfigDict(frozen=True)

    longitude: float = Field(ge=-180.0, le=180.0)
    latitude: float = Field(ge=-90.0, le=90.0)
    radius_meters: float = Field(gt=0.0, allow_inf_nan=False)
    from_time: datetime
    to_time: datetime
    metric: Metric
    threshold: float = Field(gt=0.0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _check_window(self) -> "IncidentSignal":
        # Devices report naive local time; an offset here could not be compared.
        if self.from_time.tzinfo is not None or self.to_time.tzinfo is not None:
            raise ValueError("from_time and to_time must not carry a timezone offset")
        if self.to_time <= self.from_time:
            raise ValueError(
                f"to_time ({self.to_time.isoformat()}) must be after "
                f"from_time ({self.from_time.isoformat()})"
            )
        return self
