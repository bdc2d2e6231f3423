"""Stub generators for the offline demo. Used when OPENROUTER_API_KEY is not set."""

import asyncio

from schemas.incident import RiskLevel
from schemas.result import (
    ContainmentPlan,
    ContainmentStep,
    HypothesisType,
    RootCauseHypothesis,
    TriageReport,
)

_STEPS = {
    HypothesisType.BAD_LOT: [
        "Flag every implant in the affected lots for priority telemetry review",
        "Throttle non-essential implant features for the affected lots",
        "Notify the manufacturer quality team with the lot list",
        "Prepare a voluntary recall notice for owner outreach",
    ],
    HypothesisType.ATTACK_PATTERN: [
        "Request sign-off from the on-call medical safety officer",
        "Isolate affected implants from remote update channels",
        "Capture network traffic in the affected area for forensics",
        "Push rate limits on inbound implant commands in the area",
        "Alert local responders to check on affected owners",
    ],
    HypothesisType.FIRMWARE_REGRESSION: [
        "Pause the staged firmware rollout for the affected models",
        "Pin affected implants to the last known good firmware",
        "Collect crash and latency traces from the top-scoring implants",
        "Schedule a rollback once the vendor confirms the regression",
    ],
    HypothesisType.ENVIRONMENTAL: [
        "Keep monitoring the area at a higher sampling rate",
        "Correlate the window with weather and network outage feeds",
        "Contact owners of the top-scoring implants for a wellness check",
        "Close the incident if readings return to baseline within a day",
    ],
}


class StubHypothesisGenerator:
    """Picks a hypothesis type from the blast radius shape."""

    def __init__(self, delay: float = 0.4):
        self._delay = delay

    async def generate_hypothesis(self, report: TriageReport) -> RootCauseHypothesis:
        await asyncio.sleep(self._delay)
        radius = report.blast_radius
        if radius.affected_count == 0 or report.assessment.risk_level == RiskLevel.LOW:
            kind, conf = HypothesisType.ENVIRONMENTAL, 0.35
        elif len(radius.affected_lots) == 1:
            kind, conf = HypothesisType.BAD_LOT, 0.8
        elif len(radius.affected_models) >= 3:
            kind, conf = HypothesisType.ATTACK_PATTERN, 0.7
        else:
            kind, conf = HypothesisType.FIRMWARE_REGRESSION, 0.55
        return RootCauseHypothesis(
            type=kind,
            confidence=conf,
            evidence=[
                f"{radius.affected_count} implants affected {radius.geo_summary.lower()}",
                f"Lots: {', '.join(radius.affected_lots) or 'none resolved'}",
                f"Models: {', '.join(radius.affected_models) or 'none resolved'}",
            ],
        )


class StubContainmentPlanner:
    """Returns a canned plan per hypothesis type."""

    def __init__(self, delay: float = 0.3):
        self._delay = delay

    async def plan_containment(
        self,
        report: TriageReport,
        hypothesis: RootCauseHypothesis,
    ) -> ContainmentPlan:
        await asyncio.sleep(self._delay)
        return ContainmentPlan(
            steps=[ContainmentStep(text=t) for t in _STEPS[hypothesis.type]],
            requires_approval=False,  # the runtime sets the real value
            estimated_blast_radius=report.blast_radius,
        )
