"""Triage error hierarchy.

Every failure that stops a triage run is a TriageError tagged with the stage
that failed, so callers can tell "the signal was bad" apart from "the store
was down" apart from "the LLM returned garbage" without parsing messages.

Per-device registry failures are not exceptions. They are collected as
RegistryResolutionGap records on the report (see schemas/incident.py).
"""

from schemas.events import TriageStage
from schemas.result import TriageReport


class TriageError(Exception):
    """Base class for errors that abort a triage run.

    Attributes:
        stage: The pipeline stage that failed.
    """

    def __init__(self, message: str, stage: TriageStage):
        super().__init__(message)
        self.stage = stage


class InvalidSignalError(TriageError):
    """The signal failed validation, or a message could not be parsed into one.

    Raised before any gateway call is made.
    """

    def __init__(self, message: str):
        super().__init__(message, TriageStage.SIGNAL_READY)


class EvidenceRetrievalError(TriageError):
    """The evidence store raised or did not answer in time."""

    def __init__(self, message: str):
        super().__init__(message, TriageStage.EVIDENCE_RETRIEVED)


class DownstreamGenerationError(TriageError):
    """Hypothesis or plan generation failed after triage completed.

    Attributes:
        report: The triage report computed before the failure. Still valid
            and safe to return to the caller.
    """

    def __init__(self, message: str, stage: TriageStage, report: TriageReport):
        super().__init__(message, stage)
        self.report = report
