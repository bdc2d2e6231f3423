"""Structured completion.

StructuredCompleter is the one place that turns "prompt in, text out" into
"prompt in, validated object out". Agents describe the output schema in
their prompt and hand the target Pydantic model to complete(); the raw text
goes through the tolerant JSON parser and schema validation.

No retries and no caching: a failed completion raises, and the runtime
decides what that means for the investigation.
"""

import logging
from typing import TypeVar

from pydantic import BaseModel

from llm.base import LLMClient
from utils.parse import parse_llm_json

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class StructuredCompleter:
    """Wrap an LLMClient so completions come back as Pydantic models."""

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    async def complete(self, system: str, prompt: str, schema: type[T]) -> T:
        """Run one completion and parse it into schema.

        Args:
            system: Instructions, including the JSON shape expected.
            prompt: The user-turn content.
            schema: Pydantic model the response must validate against.

        Returns:
            A validated instance of schema.

        Raises:
            LLMParseError: If the response is not valid JSON for schema.
            Exception: Whatever the LLM client raises on transport errors.
        """
        raw = await self.llm.complete(system=system, user=prompt)
        logger.debug("Completion for %s: %d chars.", schema.__name__, len(raw))
        return parse_llm_json(raw, schema)
