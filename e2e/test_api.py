"""API endpoint tests for the FastAPI app.

The module-level runtime is swapped for one built on the seeded demo dataset
and stub generators, so no store URLs or API keys are needed.
"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

import main
from core.runtime import TriageRuntime
from gateways.base import EvidenceStore
from gateways.memory import InMemoryDeviceRegistry, InMemoryEvidenceStore
from gateways.seed import NYC_QUEENS, UNREGISTERED_SERIAL, build_demo_dataset
from stubs import StubContainmentPlanner, StubHypothesisGenerator

client = TestClient(main.app)

DATASET = build_demo_dataset(datetime(2026, 3, 1, 12, 0, 0))


def queens_signal(**overrides) -> dict:
    base = DATASET.incident_base
    signal = {
        "longitude": NYC_QUEENS.longitude,
        "latitude": NYC_QUEENS.latitude,
        "radius_meters": 3000,
        "from_time": base.isoformat(),
        "to_time": (base + timedelta(hours=2)).isoformat(),
        "metric": "cpuUsagePct",
        "threshold": 48,
    }
    return {**signal, **overrides}


class DownStore(EvidenceStore):
    async def find_logs_by_area_and_time(self, center, radius_meters, from_time, to_time):
        raise ConnectionError("telemetry service unreachable")


class BrokenPlanner:
    async def plan_containment(self, report, hypothesis):
        raise RuntimeError("planner crashed")


@pytest.fixture
def demo_runtime(monkeypatch):
    runtime = TriageRuntime(
        InMemoryEvidenceStore(DATASET.entries),
        InMemoryDeviceRegistry(DATASET.records),
        hypothesis_generator=StubHypothesisGenerator(delay=0.0),
        containment_planner=StubContainmentPlanner(delay=0.0),
    )
    monkeypatch.setattr(main, "runtime", runtime)
    return runtime


def test_health():
    res = client.get("/health")
    assert res.json()["status"] == "ok"


# ── /api/triage ───────────────────────────────────────────────────────────────

class TestTriageEndpoint:
    def test_demo_queens_cluster(self, demo_runtime):
        res = client.post("/api/triage", json=queens_signal())
        assert res.status_code == 200

        body = res.json()
        assert body["assessment"]["risk_level"] == "CRITICAL"
        assert [g["serial_number"] for g in body["registry_gaps"]] == [UNREGISTERED_SERIAL]
        scores = [d["anomaly_score"] for d in body["affected"]]
        assert scores == sorted(scores, reverse=True)

    def test_bad_signal_is_400(self, demo_runtime):
        res = client.post("/api/triage", json=queens_signal(threshold=-1))
        assert res.status_code == 400
        assert "threshold" in res.json()["detail"]

    def test_unknown_metric_is_400(self, demo_runtime):
        res = client.post("/api/triage", json=queens_signal(metric="heartRate"))
        assert res.status_code == 400

    def test_store_failure_is_502(self, monkeypatch):
        monkeypatch.setattr(main, "runtime", TriageRuntime(DownStore(), InMemoryDeviceRegistry()))
        res = client.post("/api/triage", json=queens_signal())
        assert res.status_code == 502
        assert "unreachable" in res.json()["detail"]


# ── /api/investigate + /cases ─────────────────────────────────────────────────

class TestInvestigateEndpoint:
    def test_case_is_stored_and_retrievable(self, demo_runtime):
        res = client.post("/api/investigate", json=queens_signal())
        assert res.status_code == 200

        record = res.json()
        assert record["status"] == "complete"
        assert record["case"]["plan"]["requires_approval"] is True

        fetched = client.get(f"/cases/{record['case_id']}")
        assert fetched.status_code == 200
        assert fetched.json()["case"]["id"] == record["case_id"]

        latest = client.get("/cases/latest")
        assert latest.json()["case_id"] == record["case_id"]

    def test_generation_failure_keeps_report(self, monkeypatch):
        monkeypatch.setattr(main, "runtime", TriageRuntime(
            InMemoryEvidenceStore(DATASET.entries),
            InMemoryDeviceRegistry(DATASET.records),
            hypothesis_generator=StubHypothesisGenerator(delay=0.0),
            containment_planner=BrokenPlanner(),
        ))
        res = client.post("/api/investigate", json=queens_signal())
        assert res.status_code == 502

        detail = res.json()["detail"]
        assert detail["stage"] == "plan_generated"

        record = client.get(f"/cases/{detail['case_id']}").json()
        assert record["status"] == "failed"
        assert record["case"] is None
        assert record["report"]["assessment"]["risk_level"] == "CRITICAL"

    def test_message_without_parser_is_400(self, demo_runtime):
        res = client.post("/api/investigate", json={"message": "CPU spike in Queens"})
        assert res.status_code == 400

    def test_bad_signal_is_400(self, demo_runtime):
        res = client.post("/api/investigate", json=queens_signal(radius_meters=0))
        assert res.status_code == 400

    def test_unknown_case_is_404(self):
        assert client.get("/cases/does-not-exist").status_code == 404

    def test_latest_before_any_case_is_404(self, monkeypatch):
        monkeypatch.setattr(main, "_latest_id", None)
        assert client.get("/cases/latest").status_code == 404
