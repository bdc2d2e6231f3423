"""OpenRouter LLM client.

OpenRouter exposes models from several vendors behind one OpenAI-compatible
API, so the client is the openai SDK pointed at a different base URL.
Switching models is a string change.

Required environment variable:
    OPENROUTER_API_KEY: Your OpenRouter API key. Add to .env and never commit.

Optional:
    OPENROUTER_BASE_URL: Override the API root (e.g. a local proxy).
"""

import os

import openai
from dotenv import load_dotenv

from llm.base import LLMClient

load_dotenv()

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterClient(LLMClient):
    """LLMClient implementation backed by OpenRouter.

    Example usage:
        llm = OpenRouterClient("anthropic/claude-sonnet-4-6")
        hypotheses = HypothesisAgent(llm=llm)

    Attributes:
        model: The OpenRouter model identifier.
        temperature: Sampling temperature. Defaults to 0 because every
            caller asks for a JSON object, not prose.
        client: The underlying async OpenAI client.
    """

    def __init__(self, model: str, temperature: float = 0.0):
        """Initialize the client for a specific model.

        Args:
            model: OpenRouter model ID string.
            temperature: Sampling temperature passed on every request.

        Raises:
            KeyError: If OPENROUTER_API_KEY is not set. Fails at construction
                rather than at the first API call.
        """
        self.model = model
        self.temperature = temperature
        self.client = openai.AsyncOpenAI(
            base_url=os.environ.get("OPENROUTER_BASE_URL", DEFAULT_BASE_URL),
            api_key=os.environ["OPENROUTER_API_KEY"],
        )

    async def complete(self, system: str, user: str) -> str:
        """Send a prompt to the configured model via OpenRouter.

        Raises:
            openai.APIError: If the API returns an error response.
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        )
        return response.choices[0].message.content or ""
