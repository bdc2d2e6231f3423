"""LLM provider clients."""

from llm.base import LLMClient
from llm.openrouter import OpenRouterClient
from llm.structured import StructuredCompleter

__all__ = ["LLMClient", "OpenRouterClient", "StructuredCompleter"]
