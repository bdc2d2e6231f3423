from datetime import datetime, timedelta

from core.runtime import TriageRuntime
from gateways.memory import InMemoryDeviceRegistry, InMemoryEvidenceStore
from gateways.seed import NYC_BROOKLYN, build_demo_dataset
from schemas.incident import RiskLevel
from schemas.result import HypothesisType
from schemas.signal import IncidentSignal
from stubs import StubContainmentPlanner, StubHypothesisGenerator


def test_signal_schema_smoke() -> None:
    signal = IncidentSignal(
        longitude=-73.978,
        latitude=40.6782,
        radius_meters=1500,
        from_time=datetime(2026, 2, 2, 2, 0),
        to_time=datetime(2026, 2, 2, 4, 0),
        metric="neuralLatencyMs",
        threshold=90,
    )
    assert signal.radius_meters == 1500.0
    assert signal.metric.value == "neuralLatencyMs"


async def test_brooklyn_demo_points_at_lot_536() -> None:
    dataset = build_demo_dataset(datetime(2026, 3, 1, 12, 0))
    runtime = TriageRuntime(
        InMemoryEvidenceStore(dataset.entries),
        InMemoryDeviceRegistry(dataset.records),
        hypothesis_generator=StubHypothesisGenerator(delay=0.0),
        containment_planner=StubContainmentPlanner(delay=0.0),
    )
    case = await runtime.investigate({
        "longitude": NYC_BROOKLYN.longitude,
        "latitude": NYC_BROOKLYN.latitude,
        "radius_meters": 3000,
        "from_time": dataset.incident_base,
        "to_time": dataset.incident_base + timedelta(hours=2),
        "metric": "neuralLatencyMs",
        "threshold": 90,
    })

    assert case.assessment.risk_level == RiskLevel.CRITICAL
    assert case.blast_radius.affected_lots == ["536"]
    assert case.hypothesis.type == HypothesisType.BAD_LOT
    assert case.plan.requires_approval is True
