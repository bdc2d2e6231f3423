"""Hypothesis agent — picks the most likely root-cause family for an incident."""

import json
import logging

from agents.base import BaseAgent
from schemas.result import RootCauseHypothesis, TriageReport

logger = logging.getLogger(__name__)

TOP_DEVICES_IN_PROMPT = 10


class HypothesisAgent(BaseAgent):
    """Generates a RootCauseHypothesis from a finished TriageReport.

    The prompt carries the signal, the assessment, the blast radius, the
    top-ranked devices with their metric averages, and any registry gaps.
    Raw readings never reach the model.
    """

    name = "hypothesis_agent"
    prompt_file = "hypothesis_agent.txt"

    async def generate_hypothesis(self, report: TriageReport) -> RootCauseHypothesis:
        """Return the model's root-cause hypothesis for report.

        Raises:
            LLMParseError: If the response does not match RootCauseHypothesis.
        """
        hypothesis = await self.completer.complete(
            system=self._system_prompt,
            prompt=build_report_context(report),
            schema=RootCauseHypothesis,
        )
        logger.info(
            "%s: %s (confidence %.2f, %d evidence items).",
            self.name,
            hypothesis.type.value,
            hypothesis.confidence,
            len(hypothesis.evidence),
        )
        return hypothesis


def build_report_context(report: TriageReport) -> str:
    """Render the parts of a report the generators reason over."""
    top = report.affected[:TOP_DEVICES_IN_PROMPT]
    sections = [
        f"Incident signal:\n{report.signal.model_dump_json(indent=2)}",
        (
            f"Triage: risk={report.assessment.risk_level.value}, "
            f"devices={report.assessment.evidence_group_count}, "
            f"readings over threshold={report.assessment.exceed_count}"
        ),
        f"Blast radius:\n{report.blast_radius.model_dump_json(indent=2)}",
        f"Top affected implants:\n{json.dumps([d.model_dump() for d in top], indent=2)}",
    ]
    if report.device_stats:
        sections.append(
            "Average telemetry of top implants in the window:\n"
            f"{json.dumps([s.model_dump() for s in report.device_stats], indent=2)}"
        )
    if report.registry_gaps:
        sections.append(
            "Implants with readings but no registry record:\n"
            + "\n".join(f"- {g.serial_number} ({g.reason})" for g in report.registry_gaps)
        )
    return "\n\n".join(sections)
