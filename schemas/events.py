"""Stage event schema.

Events are emitted by the runtime as the pipeline moves between stages so
the display layer can update its live panel in real time. The runtime and
display layer are decoupled: the runtime behaves the same whether or not
anything is listening.
"""

from enum import Enum

from pydantic import BaseModel


class TriageStage(str, Enum):
    """Pipeline stages, in the order the runtime moves through them.

    Each value names the state reached when the stage completes.
    """

    SIGNAL_READY = "signal_ready"
    EVIDENCE_RETRIEVED = "evidence_retrieved"
    RISK_CLASSIFIED = "risk_classified"
    DEVICES_RESOLVED = "devices_resolved"
    BLAST_RADIUS_ESTIMATED = "blast_radius_estimated"
    HYPOTHESIS_GENERATED = "hypothesis_generated"
    PLAN_GENERATED = "plan_generated"
    CASE_ASSEMBLED = "case_assembled"


class StageStatus(str, Enum):
    STARTED = "started"
    COMPLETE = "complete"
    ERROR = "error"


class StageEvent(BaseModel):
    """A single runtime event emitted during a triage run.

    Attributes:
        stage: Stage the event belongs to.
        status: Whether the stage started, completed or failed.
        message: Short human-readable detail (e.g. "14 devices, 212 readings").
        timestamp_ms: Milliseconds since the run started.
    """

    stage: TriageStage
    status: StageStatus
    message: str
    timestamp_ms: float
