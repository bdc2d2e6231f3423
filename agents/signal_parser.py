"""Signal parser agent — free-text incident report to IncidentSignal."""

import logging

from agents.base import BaseAgent
from schemas.signal import IncidentSignal

logger = logging.getLogger(__name__)


class SignalParserAgent(BaseAgent):
    """Extracts an IncidentSignal from a user's incident description.

    The model only fills in fields. Range, window and metric checks are
    IncidentSignal's validators, applied when the response is parsed.
    """

    name = "signal_parser"
    prompt_file = "signal_parser.txt"

    async def parse(self, message: str) -> IncidentSignal:
        """Parse a message into a validated signal.

        Raises:
            LLMParseError: If the response is not JSON or fails signal
                validation (out-of-range coordinates, to <= from, unknown
                metric, ...).
        """
        signal = await self.completer.complete(
            system=self._system_prompt,
            prompt=f"User message:\n{message.strip()}",
            schema=IncidentSignal,
        )
        logger.info(
            "%s: parsed signal %s >= %s around (%.5f, %.5f).",
            self.name,
            signal.metric.value,
            signal.threshold,
            signal.latitude,
            signal.longitude,
        )
        return signal
