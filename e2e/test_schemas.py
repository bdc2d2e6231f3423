"""Schema validation tests.

These tests verify that the Pydantic models accept valid data, reject invalid
data, and enforce field constraints. No API key or external services required.
"""

import math
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from schemas.events import StageEvent, StageStatus, TriageStage
from schemas.incident import (
    AffectedDevice,
    EstimatedBlastRadius,
    IncidentAssessment,
    RegistryResolutionGap,
    RiskLevel,
)
from schemas.result import (
    ContainmentPlan,
    ContainmentStep,
    HypothesisType,
    IncidentCase,
    RootCauseHypothesis,
)
from schemas.signal import IncidentSignal, Metric
from schemas.telemetry import GeoPoint, MonitoringLogEntry

T0 = datetime(2026, 2, 2, 2, 0, 0)


# ── Helpers ──────────────────────────────────────────────────────────────────

def make_signal(**overrides) -> IncidentSignal:
    defaults = dict(
        longitude=-73.7949,
        latitude=40.7282,
        radius_meters=2000.0,
        from_time=T0,
        to_time=T0 + timedelta(hours=2),
        metric="cpuUsagePct",
        threshold=48.0,
    )
    return IncidentSignal(**{**defaults, **overrides})


def make_blast_radius() -> EstimatedBlastRadius:
    return EstimatedBlastRadius(
        affected_count=1,
        affected_lots=["536"],
        affected_models=["Model-Dvb688"],
        geo_summary="Within 2000m of (40.72820, -73.79490)",
        time_summary="From 2026-02-02T02:00:00 to 2026-02-02T04:00:00",
    )


# ── IncidentSignal ───────────────────────────────────────────────────────────

class TestIncidentSignal:
    def test_valid_signal(self):
        s = make_signal()
        assert s.metric is Metric.CPU_USAGE_PCT
        assert s.threshold == 48.0

    def test_metric_accepts_wire_names(self):
        for name in ("neuralLatencyMs", "cpuUsagePct", "powerUsageUw"):
            assert make_signal(metric=name).metric.value == name

    def test_unknown_metric_rejected(self):
        with pytest.raises(ValidationError):
            make_signal(metric="heartRate")

    @pytest.mark.parametrize("lon", [-180.0001, 180.5])
    def test_longitude_out_of_range(self, lon):
        with pytest.raises(ValidationError):
            make_signal(longitude=lon)

    @pytest.mark.parametrize("lat", [-90.1, 91.0])
    def test_latitude_out_of_range(self, lat):
        with pytest.raises(ValidationError):
            make_signal(latitude=lat)

    def test_longitude_and_latitude_bounds_inclusive(self):
        s = make_signal(longitude=180.0, latitude=-90.0)
        assert s.longitude == 180.0 and s.latitude == -90.0

    @pytest.mark.parametrize("radius", [0.0, -5.0, math.inf, math.nan])
    def test_radius_must_be_positive_and_finite(self, radius):
        with pytest.raises(ValidationError):
            make_signal(radius_meters=radius)

    @pytest.mark.parametrize("threshold", [0.0, -1.0, math.inf, math.nan])
    def test_threshold_must_be_positive_and_finite(self, threshold):
        with pytest.raises(ValidationError):
            make_signal(threshold=threshold)

    def test_to_must_be_after_from(self):
        with pytest.raises(ValidationError, match="to_time"):
            make_signal(to_time=T0)
        with pytest.raises(ValidationError):
            make_signal(to_time=T0 - timedelta(minutes=1))

    def test_timezone_aware_window_rejected(self):
        with pytest.raises(ValidationError, match="timezone"):
            make_signal(from_time=T0.replace(tzinfo=timezone.utc), to_time=(T0 + timedelta(hours=1)).replace(tzinfo=timezone.utc))

    def test_window_may_end_after_now(self):
        start = datetime.now() - timedelta(hours=1)
        s = make_signal(from_time=start, to_time=start + timedelta(days=1))
        assert s.to_time > datetime.now()

    def test_signal_is_frozen(self):
        s = make_signal()
        with pytest.raises(ValidationError):
            s.threshold = 10.0


# ── MonitoringLogEntry ─────────────────────────────────────────────────────

class TestMonitoringLogEntry:
    def make_entry(self, **overrides) -> MonitoringLogEntry:
        defaults = dict(
            serial_number="MM-536-DVB-000001",
            timestamp=T0,
            power_usage_uw=500.0,
            cpu_usage_pct=20.0,
            neural_latency_ms=40.0,
            location=GeoPoint(longitude=-73.7949, latitude=40.7282),
        )
        return MonitoringLogEntry(**{**defaults, **overrides})

    def test_valid_entry(self):
        assert self.make_entry().owner_ref is None

    @pytest.mark.parametrize("field", ["power_usage_uw", "cpu_usage_pct", "neural_latency_ms"])
    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_readings_rejected(self, field, value):
        with pytest.raises(ValidationError):
            self.make_entry(**{field: value})


# ── RiskLevel ────────────────────────────────────────────────────────────────

class TestRiskLevel:
    def test_rank_order(self):
        ranks = [level.rank for level in (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4

    def test_serializes_as_string(self):
        assert RiskLevel.HIGH == "HIGH"


# ── Triage output models ─────────────────────────────────────────────────────

class TestTriageModels:
    def test_anomaly_score_bounds(self):
        AffectedDevice(serial_number="X1", anomaly_score=0.0)
        AffectedDevice(serial_number="X1", anomaly_score=1.0)
        with pytest.raises(ValidationError):
            AffectedDevice(serial_number="X1", anomaly_score=1.01)
        with pytest.raises(ValidationError):
            AffectedDevice(serial_number="X1", anomaly_score=-0.1)

    def test_affected_device_metadata_optional(self):
        d = AffectedDevice(serial_number="X2", anomaly_score=0.0)
        assert d.lot_number is None and d.model is None and d.owner_ref is None

    def test_gap_reason_is_constrained(self):
        RegistryResolutionGap(serial_number="X3", reason="not_found", detail="missing")
        with pytest.raises(ValidationError):
            RegistryResolutionGap(serial_number="X3", reason="gone", detail="missing")

    def test_assessment_counts_non_negative(self):
        with pytest.raises(ValidationError):
            IncidentAssessment(
                signal=make_signal(),
                evidence_group_count=-1,
                exceed_count=0,
                risk_level=RiskLevel.LOW,
            )


# ── Hypothesis / plan / case ─────────────────────────────────────────────────

class TestCaseModels:
    def test_hypothesis_confidence_bounds(self):
        with pytest.raises(ValidationError):
            RootCauseHypothesis(type=HypothesisType.BAD_LOT, confidence=1.5, evidence=[])

    def test_hypothesis_type_from_string(self):
        h = RootCauseHypothesis(type="ATTACK_PATTERN", confidence=0.7, evidence=["x"])
        assert h.type is HypothesisType.ATTACK_PATTERN

    def test_plan_step_count_limits(self):
        radius = make_blast_radius()
        with pytest.raises(ValidationError):
            ContainmentPlan(steps=[], requires_approval=False, estimated_blast_radius=radius)
        with pytest.raises(ValidationError):
            ContainmentPlan(
                steps=[ContainmentStep(text=f"step {i}") for i in range(9)],
                requires_approval=False,
                estimated_blast_radius=radius,
            )

    def test_empty_step_text_rejected(self):
        with pytest.raises(ValidationError):
            ContainmentStep(text="")

    def test_case_gets_uuid_and_timestamp(self):
        signal = make_signal()
        radius = make_blast_radius()
        case = IncidentCase(
            signal=signal,
            assessment=IncidentAssessment(
                signal=signal, evidence_group_count=0, exceed_count=0, risk_level=RiskLevel.LOW,
            ),
            affected=[],
            blast_radius=radius,
            hypothesis=RootCauseHypothesis(type="ENVIRONMENTAL", confidence=0.3, evidence=[]),
            plan=ContainmentPlan(
                steps=[ContainmentStep(text="Keep monitoring")],
                requires_approval=False,
                estimated_blast_radius=radius,
            ),
        )
        uuid.UUID(case.id)
        assert case.created_at.tzinfo is not None
        assert case.registry_gaps == []


# ── StageEvent ───────────────────────────────────────────────────────────────

def test_stage_event_round_trips_through_json():
    event = StageEvent(
        stage=TriageStage.RISK_CLASSIFIED,
        status=StageStatus.COMPLETE,
        message="HIGH",
        timestamp_ms=12.5,
    )
    assert StageEvent.model_validate_json(event.model_dump_json()) == event
