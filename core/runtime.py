"""Triage runtime — the top-level pipeline orchestrator.

TriageRuntime is the single entry point for the whole system. Callers build
it once with their gateways and generators, then call assess() or
investigate() as many times as needed. Each call is fully independent: the
runtime holds collaborators and settings, never per-run state.

Stages, in order (each consumes only the previous stage's output):
    1. SIGNAL_READY            validate the signal (or parse it from text)
    2. EVIDENCE_RETRIEVED      one evidence store query
    3. RISK_CLASSIFIED         RiskClassifier
    4. DEVICES_RESOLVED        AffectedDeviceResolver (concurrent fan-out)
    5. BLAST_RADIUS_ESTIMATED  BlastRadiusEstimator
    6. HYPOTHESIS_GENERATED    external hypothesis generator
    7. PLAN_GENERATED          external containment planner
    8. CASE_ASSEMBLED          IncidentCase

assess() stops after stage 5 and returns the TriageReport. investigate()
runs everything. There is no retry loop anywhere in here; retries belong to
the gateways and the LLM client.

Failure handling:
- A bad signal raises InvalidSignalError before any gateway call.
- A store failure or timeout raises EvidenceRetrievalError. Nothing
  downstream runs.
- Registry problems never raise. They become gaps on the report.
- A generator failure raises DownstreamGenerationError carrying the report.
"""

import asyncio
import logging
import time
from collections.abc import Coroutine, Mapping
from typing import Any, Protocol, TypeVar

from pydantic import ValidationError

from core.errors import (
    DownstreamGenerationError,
    EvidenceRetrievalError,
    InvalidSignalError,
)
from gateways.base import DeviceRegistry, EvidenceSet, EvidenceStore
from schemas.events import StageEvent, StageStatus, TriageStage
from schemas.result import (
    ContainmentPlan,
    IncidentCase,
    RootCauseHypothesis,
    TriageReport,
)
from schemas.signal import IncidentSignal
from schemas.telemetry import GeoPoint
from triage.approval import requires_approval
from triage.blast_radius import BlastRadiusEstimator
from triage.resolver import (
    DEFAULT_LOOKUP_TIMEOUT_SECONDS,
    DEFAULT_MAX_CONCURRENCY,
    AffectedDeviceResolver,
)
from triage.risk import RiskClassifier
from triage.stats import summarize_evidence

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_TIMEOUT_SECONDS = 30.0
DEFAULT_GENERATION_TIMEOUT_SECONDS = 90.0
STATS_TOP_DEVICES = 10

T = TypeVar("T")


class SignalParser(Protocol):
    """Protocol for free-text to signal extraction."""

    async def parse(self, message: str) -> IncidentSignal:
        """Extract a validated signal from an incident description."""


class HypothesisGenerator(Protocol):
    """Protocol for root-cause hypothesis generation."""

    async def generate_hypothesis(self, report: TriageReport) -> RootCauseHypothesis:
        """Return the most likely root cause for a triaged incident."""


class ContainmentPlanner(Protocol):
    """Protocol for containment plan generation."""

    async def plan_containment(
        self,
        report: TriageReport,
        hypothesis: RootCauseHypothesis,
    ) -> ContainmentPlan:
        """Return a containment plan for a triaged incident."""


class TriageRuntime:
    """Orchestrates the triage pipeline for one signal at a time.

    Attributes:
        gateway_timeout_seconds: Maximum wait for the evidence store query.
        generation_timeout_seconds: Maximum wait for each generator call.
        _store: Evidence gateway.
        _classifier: Risk classification.
        _resolver: Per-device scoring and registry enrichment.
        _estimator: Blast-radius summary.
        _signal_parser: Optional, needed only by investigate_text().
        _hypothesis_generator: Optional, needed by investigate().
        _containment_planner: Optional, needed by investigate().
    """

    def __init__(
        self,
        evidence_store: EvidenceStore,
        registry: DeviceRegistry,
        *,
        hypothesis_generator: HypothesisGenerator | None = None,
        containment_planner: ContainmentPlanner | None = None,
        signal_parser: SignalParser | None = None,
        gateway_timeout_seconds: float = DEFAULT_GATEWAY_TIMEOUT_SECONDS,
        generation_timeout_seconds: float = DEFAULT_GENERATION_TIMEOUT_SECONDS,
        lookup_timeout_seconds: float = DEFAULT_LOOKUP_TIMEOUT_SECONDS,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self._store = evidence_store
        self._classifier = RiskClassifier()
        self._resolver = AffectedDeviceResolver(
            registry,
            lookup_timeout_seconds=lookup_timeout_seconds,
            max_concurrency=max_concurrency,
        )
        self._estimator = BlastRadiusEstimator()
        self._signal_parser = signal_parser
        self._hypothesis_generator = hypothesis_generator
        self._containment_planner = containment_planner
        self.gateway_timeout_seconds = gateway_timeout_seconds
        self.generation_timeout_seconds = generation_timeout_seconds

    async def assess(
        self,
        signal: IncidentSignal | Mapping[str, Any],
        event_queue: asyncio.Queue | None = None,
    ) -> TriageReport:
        """Run the deterministic stages and return the triage report.

        Args:
            signal: An IncidentSignal or a raw mapping with the same fields.
                Validated either way before the store is touched.
            event_queue: Optional queue that receives StageEvents. The
                runtime never waits on anyone reading it.

        Returns:
            TriageReport with assessment, ranked devices, blast radius,
            registry gaps and device stats.

        Raises:
            InvalidSignalError: If the signal fails validation.
            EvidenceRetrievalError: If the store raises or times out.
        """
        return await self._assess(signal, _StageEmitter(event_queue))

    async def investigate(
        self,
        signal: IncidentSignal | Mapping[str, Any],
        event_queue: asyncio.Queue | None = None,
    ) -> IncidentCase:
        """Run the full pipeline and assemble an IncidentCase.

        Raises:
            ValueError: If the runtime was built without a hypothesis
                generator or containment planner.
            InvalidSignalError: If the signal fails validation.
            EvidenceRetrievalError: If the store raises or times out.
            DownstreamGenerationError: If a generator fails. The exception's
                report attribute holds the completed triage report.
        """
        self._require_generators()
        emitter = _StageEmitter(event_queue)
        report = await self._assess(signal, emitter)
        return await self._complete_case(report, emitter)

    async def investigate_text(
        self,
        message: str,
        event_queue: asyncio.Queue | None = None,
    ) -> IncidentCase:
        """Parse a free-text report into a signal, then investigate it.

        Raises:
            ValueError: If no signal parser or generators are configured.
            InvalidSignalError: If the message cannot be turned into a valid
                signal. Nothing downstream runs.
            EvidenceRetrievalError, DownstreamGenerationError: As investigate().
        """
        if self._signal_parser is None:
            raise ValueError("TriageRuntime was built without a signal parser.")
        self._require_generators()

        emitter = _StageEmitter(event_queue)
        await emitter.emit(TriageStage.SIGNAL_READY, StageStatus.STARTED, "parsing incident report...")
        try:
            signal = await asyncio.wait_for(
                self._signal_parser.parse(message),
                timeout=self.generation_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            await emitter.emit(TriageStage.SIGNAL_READY, StageStatus.ERROR, "parser timed out")
            raise InvalidSignalError(
                f"Signal parser did not return within {self.generation_timeout_seconds:.0f}s."
            ) from exc
        except Exception as exc:
            await emitter.emit(TriageStage.SIGNAL_READY, StageStatus.ERROR, str(exc))
            logger.error("Could not parse incident report into a signal: %s", exc)
            raise InvalidSignalError(f"Could not parse incident report into a signal: {exc}") from exc

        report = await self._assess(signal, emitter)
        return await self._complete_case(report, emitter)

    # ── Private helpers ───────────────────────────────────────────────────────

    async def _assess(
        self,
        signal: IncidentSignal | Mapping[str, Any],
        emitter: "_StageEmitter",
    ) -> TriageReport:
        # Stage 1: signal validation. Nothing has touched a gateway yet.
        signal = await self._validate_signal(signal, emitter)

        # Stage 2: evidence retrieval. The only store call in the run.
        evidence = await self._retrieve_evidence(signal, emitter)

        # Stage 3: risk classification. Pure, never suspends.
        assessment = self._classifier.assess(evidence, signal)
        await emitter.emit(
            TriageStage.RISK_CLASSIFIED,
            StageStatus.COMPLETE,
            f"{assessment.risk_level.value} ({assessment.exceed_count} readings over threshold)",
        )
        logger.info(
            "Risk %s: %d devices, %d readings >= %s %s.",
            assessment.risk_level.value,
            assessment.evidence_group_count,
            assessment.exceed_count,
            signal.threshold,
            signal.metric.value,
        )

        # Stage 4: per-device scoring and registry enrichment.
        await emitter.emit(TriageStage.DEVICES_RESOLVED, StageStatus.STARTED, "resolving devices...")
        resolution = await self._resolver.resolve(evidence, signal)
        await emitter.emit(
            TriageStage.DEVICES_RESOLVED,
            StageStatus.COMPLETE,
            f"{len(resolution.affected)} devices, {len(resolution.gaps)} registry gaps",
        )

        # Stage 5: blast radius. Pure, never suspends.
        blast_radius = self._estimator.estimate(resolution.affected, signal)
        await emitter.emit(
            TriageStage.BLAST_RADIUS_ESTIMATED,
            StageStatus.COMPLETE,
            f"{blast_radius.affected_count} devices, {len(blast_radius.affected_lots)} lots",
        )

        top_serials = [d.serial_number for d in resolution.affected[:STATS_TOP_DEVICES]]
        return TriageReport(
            signal=signal,
            assessment=assessment,
            affected=resolution.affected,
            blast_radius=blast_radius,
            registry_gaps=resolution.gaps,
            device_stats=summarize_evidence(evidence, top_serials),
        )

    async def _validate_signal(
        self,
        signal: IncidentSignal | Mapping[str, Any],
        emitter: "_StageEmitter",
    ) -> IncidentSignal:
        """Validate (or re-validate) a signal.

        IncidentSignal instances are re-checked too, since model_construct()
        can build one that skipped its validators.
        """
        data = signal.model_dump() if isinstance(signal, IncidentSignal) else signal
        try:
            validated = IncidentSignal.model_validate(data)
        except ValidationError as exc:
            reason = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'signal'}: {err['msg']}"
                for err in exc.errors()
            )
            await emitter.emit(TriageStage.SIGNAL_READY, StageStatus.ERROR, reason)
            logger.error("Rejected incident signal: %s", reason)
            raise InvalidSignalError(f"Invalid incident signal: {reason}") from exc

        await emitter.emit(
            TriageStage.SIGNAL_READY,
            StageStatus.COMPLETE,
            f"{validated.metric.value} >= {validated.threshold:g} within {validated.radius_meters:.0f}m",
        )
        return validated

    async def _retrieve_evidence(self, signal: IncidentSignal, emitter: "_StageEmitter") -> EvidenceSet:
        await emitter.emit(TriageStage.EVIDENCE_RETRIEVED, StageStatus.STARTED, "querying evidence store...")
        try:
            evidence = await asyncio.wait_for(
                self._store.find_logs_by_area_and_time(
                    GeoPoint(longitude=signal.longitude, latitude=signal.latitude),
                    signal.radius_meters,
                    signal.from_time,
                    signal.to_time,
                ),
                timeout=self.gateway_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            await emitter.emit(TriageStage.EVIDENCE_RETRIEVED, StageStatus.ERROR, "store timed out")
            logger.error("Evidence store timed out after %.1fs.", self.gateway_timeout_seconds)
            raise EvidenceRetrievalError(
                f"Evidence store did not return within {self.gateway_timeout_seconds:.1f}s."
            ) from exc
        except Exception as exc:
            await emitter.emit(TriageStage.EVIDENCE_RETRIEVED, StageStatus.ERROR, str(exc))
            logger.error("Evidence store query failed: %s", exc)
            raise EvidenceRetrievalError(f"Evidence store query failed: {exc}") from exc

        readings = sum(len(entries) for entries in evidence.values())
        await emitter.emit(
            TriageStage.EVIDENCE_RETRIEVED,
            StageStatus.COMPLETE,
            f"{len(evidence)} devices, {readings} readings",
        )
        logger.debug("Evidence: %d devices, %d readings.", len(evidence), readings)
        return evidence

    async def _complete_case(self, report: TriageReport, emitter: "_StageEmitter") -> IncidentCase:
        # Stage 6: hypothesis hand-off.
        hypothesis = await self._generate(
            TriageStage.HYPOTHESIS_GENERATED,
            self._hypothesis_generator.generate_hypothesis(report),
            RootCauseHypothesis,
            report,
            emitter,
        )

        # Stage 7: plan hand-off. Approval and blast radius always come
        # from the report, whatever the planner returned.
        plan = await self._generate(
            TriageStage.PLAN_GENERATED,
            self._containment_planner.plan_containment(report, hypothesis),
            ContainmentPlan,
            report,
            emitter,
        )
        plan = plan.model_copy(update={
            "requires_approval": requires_approval(report.assessment.risk_level, hypothesis.type),
            "estimated_blast_radius": report.blast_radius,
        })

        # Stage 8: assemble. Terminal.
        case = IncidentCase(
            signal=report.signal,
            assessment=report.assessment,
            affected=report.affected,
            blast_radius=report.blast_radius,
            registry_gaps=report.registry_gaps,
            hypothesis=hypothesis,
            plan=plan,
        )
        await emitter.emit(TriageStage.CASE_ASSEMBLED, StageStatus.COMPLETE, f"case {case.id}")
        logger.info(
            "Assembled case %s: %s risk, %s, %d affected, approval=%s.",
            case.id,
            case.assessment.risk_level.value,
            hypothesis.type.value,
            len(case.affected),
            plan.requires_approval,
        )
        return case

    async def _generate(
        self,
        stage: TriageStage,
        call: Coroutine[Any, Any, T],
        expected: type[T],
        report: TriageReport,
        emitter: "_StageEmitter",
    ) -> T:
        """Await one generator call, converting every failure to DownstreamGenerationError."""
        await emitter.emit(stage, StageStatus.STARTED, "generating...")
        try:
            result = await asyncio.wait_for(call, timeout=self.generation_timeout_seconds)
        except asyncio.TimeoutError as exc:
            await emitter.emit(stage, StageStatus.ERROR, "generator timed out")
            logger.error("%s timed out after %.0fs.", stage.value, self.generation_timeout_seconds)
            raise DownstreamGenerationError(
                f"{stage.value}: generator did not return within {self.generation_timeout_seconds:.0f}s.",
                stage,
                report,
            ) from exc
        except Exception as exc:
            await emitter.emit(stage, StageStatus.ERROR, str(exc))
            logger.error("%s failed: %s", stage.value, exc)
            raise DownstreamGenerationError(f"{stage.value}: {exc}", stage, report) from exc

        if not isinstance(result, expected):
            await emitter.emit(stage, StageStatus.ERROR, "invalid generator output")
            raise DownstreamGenerationError(
                f"{stage.value}: expected {expected.__name__}, got {type(result).__name__}.",
                stage,
                report,
            )

        await emitter.emit(stage, StageStatus.COMPLETE, "done")
        return result

    def _require_generators(self) -> None:
        if self._hypothesis_generator is None or self._containment_planner is None:
            raise ValueError(
                "TriageRuntime needs a hypothesis generator and a containment planner "
                "to assemble a case. Use assess() for triage only."
            )


class _StageEmitter:
    """Puts StageEvents on an optional queue, timed from construction."""

    def __init__(self, queue: asyncio.Queue | None) -> None:
        self._queue = queue
        self._start = time.perf_counter()

    async def emit(self, stage: TriageStage, status: StageStatus, message: str) -> None:
        if self._queue is None:
            return
        await self._queue.put(StageEvent(
            stage=stage,
            status=status,
            message=message,
            timestamp_ms=(time.perf_counter() - self._start) * 1000,
        ))
