"""Result schemas.

TriageReport is what the deterministic pipeline hands to the generators.
RootCauseHypothesis and ContainmentPlan are what the generators hand back.
IncidentCase bundles all of it and is the only object that crosses the
runtime boundary on a successful investigation.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from schemas.incident import (
    AffectedDevice,
    EstimatedBlastRadius,
    IncidentAssessment,
    RegistryResolutionGap,
)
from schemas.signal import IncidentSignal
from schemas.telemetry import MonitoringStats


class TriageReport(BaseModel):
    """Output of the deterministic triage stages for one signal.

    Survives a downstream generation failure: DownstreamGenerationError
    carries the report so callers keep the evidence-based part of the
    investigation even when the LLM step fails.

    Attributes:
        signal: The validated signal.
        assessment: Risk classification.
        affected: Devices sorted by anomaly_score descending, ties kept in
            evidence order.
        blast_radius: Summary derived from affected.
        registry_gaps: Devices whose registry lookup failed. Empty when
            every device with evidence resolved.
        device_stats: Metric averages for the top-ranked devices, in
            ranking order.
    """

    model_config = ConfigDict(frozen=True)

    signal: IncidentSignal
    assessment: IncidentAssessment
    affected: list[AffectedDevice]
    blast_radius: EstimatedBlastRadius
    registry_gaps: list[RegistryResolutionGap] = []
    device_stats: list[MonitoringStats] = []


class HypothesisType(str, Enum):
    """Root-cause families the hypothesis generator chooses between."""

    FIRMWARE_REGRESSION = "FIRMWARE_REGRESSION"
    BAD_LOT = "BAD_LOT"
    ATTACK_PATTERN = "ATTACK_PATTERN"
    ENVIRONMENTAL = "ENVIRONMENTAL"


class RootCauseHypothesis(BaseModel):
    """The generator's best guess at what caused the incident.

    Attributes:
        type: Root-cause family.
        confidence: 0.0-1.0.
        evidence: Short bullets citing concrete facts from the report
            (lots, models, scores, risk level).
    """

    type: HypothesisType
    confidence: float = Field(ge=0.0, le=1.0)
    evidence: list[str]


class ContainmentStep(BaseModel):
    text: str = Field(min_length=1)


class ContainmentPlan(BaseModel):
    """Ordered containment actions for the incident.

    Attributes:
        steps: Short imperative actions, at most eight.
        requires_approval: Whether a human must sign off before the plan
            runs. Set by the runtime from the risk level and hypothesis type,
            never taken from the generator as-is.
        estimated_blast_radius: The scope the plan was written against.
    """

    steps: list[ContainmentStep] = Field(min_length=1, max_length=8)
    requires_approval: bool
    estimated_blast_radius: EstimatedBlastRadius


class IncidentCase(BaseModel):
    """A fully assembled investigation.

    Attributes:
        id: Auto-generated UUID for this case.
        created_at: UTC time the case was assembled.
        signal: The investigated signal.
        assessment: Risk classification.
        affected: Ranked affected devices.
        blast_radius: Scope summary.
        registry_gaps: Unresolved devices, carried over from the report.
        hypothesis: Generated root-cause hypothesis.
        plan: Generated containment plan.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    signal: IncidentSignal
    assessment: IncidentAssessment
    affected: list[AffectedDevice]
    blast_radius: EstimatedBlastRadius
    registry_gaps: list[RegistryResolutionGap] = []
    hypothesis: RootCauseHypothesis
    plan: ContainmentPlan
