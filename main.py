"""Implant triage — HTTP entry point and case API.

This file handles two concerns:

1. Intake — accepts incident signals (structured JSON or a free-text
   report), runs the triage pipeline and returns the result.

2. Cases API — exposes read endpoints for previously assembled cases.

Flow for an investigation:
    POST /api/investigate
        → parse message into a signal (free text only)
        → run TriageRuntime.investigate()
        → store a CaseRecord (status="complete", or "failed" with the report)
        → return the record

    GET /cases/latest  or  GET /cases/{case_id}
        → returns the stored CaseRecord

Gateways come from the environment. With EVIDENCE_STORE_URL and
DEVICE_REGISTRY_URL set, the HTTP gateways are used; otherwise the service
runs on the seeded demo dataset. Without OPENROUTER_API_KEY the stub
generators are used and free-text reports are rejected.

Run locally:
    uv run uvicorn main:app --reload
"""

import logging
import logging.handlers
import os
import pathlib
import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

load_dotenv()

from core.errors import DownstreamGenerationError, EvidenceRetrievalError, InvalidSignalError
from core.runtime import DEFAULT_GATEWAY_TIMEOUT_SECONDS, TriageRuntime
from gateways.base import DeviceRegistry, EvidenceStore
from gateways.http import HttpDeviceRegistry, HttpEvidenceStore
from gateways.memory import InMemoryDeviceRegistry, InMemoryEvidenceStore
from gateways.seed import build_demo_dataset
from schemas.result import IncidentCase, TriageReport
from stubs import StubContainmentPlanner, StubHypothesisGenerator

DEFAULT_MODEL = "anthropic/claude-sonnet-4-6"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FILE = pathlib.Path(__file__).parent / "implant_triage.log"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_file_handler = logging.handlers.RotatingFileHandler(
    LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
)
_file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

_root_logger = logging.getLogger()
_root_logger.setLevel(logging.INFO)
_root_logger.addHandler(_file_handler)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App + CORS
# ---------------------------------------------------------------------------

app = FastAPI(title="Implant Triage")

# ALLOWED_ORIGINS env var overrides the default for production deployments.
_origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Runtime setup
# ---------------------------------------------------------------------------

def _build_gateways() -> tuple[EvidenceStore, DeviceRegistry]:
    """HTTP gateways when both URLs are configured, else the demo dataset."""
    store_url = os.environ.get("EVIDENCE_STORE_URL")
    registry_url = os.environ.get("DEVICE_REGISTRY_URL")
    if store_url and registry_url:
        logger.info("Using evidence store %s and registry %s.", store_url, registry_url)
        return HttpEvidenceStore(store_url), HttpDeviceRegistry(registry_url)

    logger.warning("EVIDENCE_STORE_URL or DEVICE_REGISTRY_URL not set, serving the demo dataset.")
    dataset = build_demo_dataset(datetime.now())
    return InMemoryEvidenceStore(dataset.entries), InMemoryDeviceRegistry(dataset.records)


def _build_generators() -> dict[str, Any]:
    """OpenRouter agents when an API key is present, else the stubs."""
    if not os.environ.get("OPENROUTER_API_KEY"):
        logger.warning("OPENROUTER_API_KEY not set, using stub generators. Free-text intake disabled.")
        return {
            "hypothesis_generator": StubHypothesisGenerator(delay=0.0),
            "containment_planner": StubContainmentPlanner(delay=0.0),
        }

    from agents.containment_agent import ContainmentAgent
    from agents.hypothesis_agent import HypothesisAgent
    from agents.signal_parser import SignalParserAgent
    from llm.openrouter import OpenRouterClient

    llm = OpenRouterClient(os.environ.get("TRIAGE_MODEL", DEFAULT_MODEL))
    return {
        "signal_parser": SignalParserAgent(llm),
        "hypothesis_generator": HypothesisAgent(llm),
        "containment_planner": ContainmentAgent(llm),
    }


_store_gateway, _registry_gateway = _build_gateways()

runtime = TriageRuntime(
    _store_gateway,
    _registry_gateway,
    gateway_timeout_seconds=float(
        os.environ.get("GATEWAY_TIMEOUT_SECONDS", DEFAULT_GATEWAY_TIMEOUT_SECONDS)
    ),
    **_build_generators(),
)

# ---------------------------------------------------------------------------
# Case store
# ---------------------------------------------------------------------------

class CaseRecord(BaseModel):
    """One investigation run — what GET /cases returns.

    status lifecycle:
        "complete" → case assembled, case is set
        "failed"   → generation failed after triage; report and error are set
    """
    case_id: str
    status: Literal["complete", "failed"]
    case: IncidentCase | None = None
    report: TriageReport | None = None
    failed_stage: str | None = None
    error: str | None = None
    created_at: str = ""


# In-memory store: case_id → CaseRecord.
# Lost on server restart.
_store: dict[str, CaseRecord] = {}
_latest_id: str | None = None


def _save(record: CaseRecord) -> None:
    """Write a record to the store and update the latest pointer."""
    global _latest_id
    _store[record.case_id] = record
    _latest_id = record.case_id


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------

@app.post("/api/triage", response_model=TriageReport)
async def triage(request: Request):
    """Run the deterministic stages only and return the triage report."""
    body = await request.json()
    try:
        return await runtime.assess(body)
    except InvalidSignalError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except EvidenceRetrievalError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@app.post("/api/investigate", response_model=CaseRecord)
async def investigate(request: Request):
    """Run the full pipeline and store the resulting case.

    The body is either a signal object or {"message": "..."} with a
    free-text incident report. A generator failure still stores a record,
    with the triage report, so the deterministic part is not lost.
    """
    body = await request.json()
    try:
        if isinstance(body, dict) and "message" in body:
            case = await runtime.investigate_text(str(body["message"]))
        else:
            case = await runtime.investigate(body)
    except InvalidSignalError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except EvidenceRetrievalError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except DownstreamGenerationError as exc:
        record = CaseRecord(
            case_id=str(uuid.uuid4()),
            status="failed",
            report=exc.report,
            failed_stage=exc.stage.value,
            error=str(exc),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        _save(record)
        logger.error("Investigation %s failed at %s: %s", record.case_id, exc.stage.value, exc)
        raise HTTPException(
            status_code=502,
            detail={"case_id": record.case_id, "stage": exc.stage.value, "error": str(exc)},
        )
    except ValueError as exc:
        # runtime built without a signal parser
        raise HTTPException(status_code=400, detail=str(exc))

    record = CaseRecord(
        case_id=str(case.id),
        status="complete",
        case=case,
        created_at=case.created_at.isoformat(),
    )
    _save(record)
    logger.info(
        "Case %s: %s risk, %s, approval=%s.",
        record.case_id,
        case.assessment.risk_level.value,
        case.hypothesis.type.value,
        case.plan.requires_approval,
    )
    return record


# ---------------------------------------------------------------------------
# Cases API
# ---------------------------------------------------------------------------

@app.get("/cases/latest", response_model=CaseRecord)
def get_latest_case():
    """Return the most recent case record.

    Returns 404 if no investigations have run yet.
    """
    if _latest_id is None or _latest_id not in _store:
        raise HTTPException(status_code=404, detail="No cases yet.")
    return _store[_latest_id]


@app.get("/cases/{case_id}", response_model=CaseRecord)
def get_case(case_id: str):
    """Return a specific case record by ID, or 404."""
    if case_id not in _store:
        raise HTTPException(status_code=404, detail=f"Case '{case_id}' not found.")
    return _store[case_id]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
