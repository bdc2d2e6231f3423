"""Containment agent — turns a hypothesis and blast radius into an action plan."""

import logging

from pydantic import BaseModel, Field

from agents.base import BaseAgent
from agents.hypothesis_agent import build_report_context
from schemas.result import ContainmentPlan, ContainmentStep, RootCauseHypothesis, TriageReport
from triage.approval import requires_approval

logger = logging.getLogger(__name__)


class _StepsSchema(BaseModel):
    steps: list[ContainmentStep] = Field(min_length=1, max_length=8)


class ContainmentAgent(BaseAgent):
    """Generates a ContainmentPlan.

    The model writes only the steps. requires_approval and the blast radius
    are filled in from the report, so the model cannot talk its way out of
    a human sign-off.
    """

    name = "containment_agent"
    prompt_file = "containment_agent.txt"

    async def plan_containment(
        self,
        report: TriageReport,
        hypothesis: RootCauseHypothesis,
    ) -> ContainmentPlan:
        """Return a containment plan for report under hypothesis.

        Raises:
            LLMParseError: If the response has no valid steps list.
        """
        approval = requires_approval(report.assessment.risk_level, hypothesis.type)
        user_message = (
            f"{build_report_context(report)}\n\n"
            f"Root-cause hypothesis:\n{hypothesis.model_dump_json(indent=2)}\n\n"
            f"Human approval required before execution: {'yes' if approval else 'no'}"
        )

        parsed = await self.completer.complete(
            system=self._system_prompt,
            prompt=user_message,
            schema=_StepsSchema,
        )
        logger.info("%s: %d steps (approval=%s).", self.name, len(parsed.steps), approval)

        return ContainmentPlan(
            steps=parsed.steps,
            requires_approval=approval,
            estimated_blast_radius=report.blast_radius,
        )
