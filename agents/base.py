"""Base agent definition.

Agents are the LLM-backed collaborators at the edges of the triage pipeline:
one turns a free-text report into an IncidentSignal, the others turn a
finished TriageReport into a root-cause hypothesis and a containment plan.

Agents are deliberately "dumb" workers:
- They do not query gateways or compute scores
- They do not retry, cache or fall back
- They do not decide requires_approval or any other policy value

Everything they produce passes through StructuredCompleter, so a response
that is not valid JSON for the target schema raises LLMParseError and the
runtime decides what that means for the run.
"""

import pathlib
from abc import ABC, abstractmethod

from llm.base import LLMClient
from llm.structured import StructuredCompleter

PROMPTS_DIR = pathlib.Path(__file__).parent / "prompts"


class BaseAgent(ABC):
    """Abstract base class for generator agents.

    Subclasses set prompt_file to the name of their system prompt under
    agents/prompts/ and expose one async method the runtime calls.

    The LLM client is injected at construction time so that:
    - Different agents can use different models
    - Tests can inject a stub client without touching agent logic

    Attributes:
        llm: The client used for completions.
        completer: Structured wrapper around llm.
    """

    prompt_file: str

    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm
        self.completer = StructuredCompleter(llm)
        self._system_prompt = (PROMPTS_DIR / self.prompt_file).read_text(encoding="utf-8")

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs.

        Implement by declaring a class-level attribute on the subclass:

            class HypothesisAgent(BaseAgent):
                name = "hypothesis_agent"
        """
        ...
