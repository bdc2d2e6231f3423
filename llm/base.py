"""LLMClient abstract base class.

Defines the interface every LLM provider must implement. The generator
agents depend only on this interface, never on a concrete provider, so the
triage runtime stays provider-agnostic and tests can pass a stub client.
"""

from abc import ABC, abstractmethod


class LLMClient(ABC):
    """Abstract base class for all LLM provider clients.

    Agents receive an LLMClient at construction time and call complete()
    (usually through StructuredCompleter) to get a text response.

    To add a new provider, subclass LLMClient and implement complete().
    """

    @abstractmethod
    async def complete(self, system: str, user: str) -> str:
        """Send a prompt to the LLM and return the response as plain text.

        Args:
            system: Instructions that set the task and output format.
            user: The incident context the model should reason over.

        Returns:
            The model's response as a plain string.

        Raises:
            NotImplementedError: If a subclass does not implement this method.
        """
        ...
