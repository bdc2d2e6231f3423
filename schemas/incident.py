"""Triage output schemas.

Everything the deterministic part of the pipeline produces: the risk level,
the assessment, the ranked affected devices, registry gap diagnostics and
the blast-radius summary. None of these involve an LLM, so identical
evidence always produces identical values.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from schemas.signal import IncidentSignal


class RiskLevel(str, Enum):
    """Incident severity, ordered LOW < MEDIUM < HIGH < CRITICAL.

    Extends str so values serialize to plain strings. Comparisons between
    levels go through rank, since str ordering would be alphabetical.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class IncidentAssessment(BaseModel):
    """Risk classification for one signal.

    Attributes:
        signal: The signal that was assessed.
        evidence_group_count: Number of distinct devices with readings in
            the window.
        exceed_count: Number of readings, across all devices, at or above
            the signal threshold.
        risk_level: The resulting classification.
    """

    model_config = ConfigDict(frozen=True)

    signal: IncidentSignal
    evidence_group_count: int = Field(ge=0)
    exceed_count: int = Field(ge=0)
    risk_level: RiskLevel


class AffectedDevice(BaseModel):
    """One implant in the ranked affected list.

    lot_number, model and owner_ref are None when the device had no evidence
    or when the registry could not resolve it. The device still appears in
    the list; a separate RegistryResolutionGap explains the second case.
    """

    model_config = ConfigDict(frozen=True)

    serial_number: str
    lot_number: str | None = None
    model: str | None = None
    owner_ref: str | None = None
    anomaly_score: float = Field(ge=0.0, le=1.0)


class RegistryResolutionGap(BaseModel):
    """A device with telemetry evidence but no usable registry record.

    Attributes:
        serial_number: The unresolved device.
        reason: "not_found" when the registry answered without a record,
            "timeout" when the lookup did not return in time, "error" when
            the lookup raised.
        detail: Human-readable explanation for logs and API output.
    """

    model_config = ConfigDict(frozen=True)

    serial_number: str
    reason: Literal["not_found", "timeout", "error"]
    detail: str


class EstimatedBlastRadius(BaseModel):
    """Aggregate scope of an incident.

    Attributes:
        affected_count: Number of devices in the affected list.
        affected_lots: Up to five distinct lot numbers, first seen first.
        affected_models: Up to five distinct models, first seen first.
        geo_summary: e.g. "Within 2000m of (40.72820, -73.79490)".
        time_summary: e.g. "From 2026-02-02T02:00:00 to 2026-02-02T04:00:00".
    """

    model_config = ConfigDict(frozen=True)

    affected_count: int = Field(ge=0)
    affected_lots: list[str]
    affected_models: list[str]
    geo_summary: str
    time_summary: str
