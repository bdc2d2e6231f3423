"""LLM client tests.

Tests for the LLMClient abstraction and OpenRouterClient implementation.

TestLLMClientAbstract  — no API key needed, runs in CI
TestOpenRouterClient   — the real API call tests are skipped if OPENROUTER_API_KEY
                         is not set in the environment or .env file
"""

import os
from datetime import datetime, timedelta

import pytest

from agents.hypothesis_agent import HypothesisAgent
from core.runtime import TriageRuntime
from gateways.memory import InMemoryDeviceRegistry, InMemoryEvidenceStore
from gateways.seed import NYC_BROOKLYN, build_demo_dataset
from llm.base import LLMClient
from llm.openrouter import DEFAULT_BASE_URL, OpenRouterClient
from schemas.result import HypothesisType


# ── LLMClient (abstract) ──────────────────────────────────────────────────────

class TestLLMClientAbstract:
    def test_cannot_instantiate_directly(self):
        """LLMClient is abstract — instantiating it directly must raise."""
        with pytest.raises(TypeError, match="abstract"):
            LLMClient()

    def test_subclass_without_complete_raises(self):
        """A subclass that skips implementing complete() must also raise."""
        class IncompleteClient(LLMClient):
            pass

        with pytest.raises(TypeError, match="abstract"):
            IncompleteClient()

    def test_subclass_with_complete_is_instantiable(self):
        """A subclass that implements complete() should instantiate fine."""
        class ConcreteClient(LLMClient):
            async def complete(self, system: str, user: str) -> str:
                return "ok"

        client = ConcreteClient()
        assert isinstance(client, LLMClient)


# ── OpenRouterClient ──────────────────────────────────────────────────────────

class TestOpenRouterClient:
    def test_raises_immediately_if_api_key_missing(self, monkeypatch):
        """Missing key must raise KeyError at construction, not at first call."""
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        with pytest.raises(KeyError):
            OpenRouterClient(model="anthropic/claude-sonnet-4-6")

    def test_is_subclass_of_llm_client(self):
        """OpenRouterClient must satisfy the LLMClient interface."""
        assert issubclass(OpenRouterClient, LLMClient)

    def test_base_url_override(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
        monkeypatch.setenv("OPENROUTER_BASE_URL", "http://localhost:9999/v1")
        client = OpenRouterClient(model="anthropic/claude-sonnet-4-6")
        assert str(client.client.base_url).startswith("http://localhost:9999/v1")
        assert client.temperature == 0.0

    def test_default_base_url(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
        monkeypatch.delenv("OPENROUTER_BASE_URL", raising=False)
        client = OpenRouterClient(model="anthropic/claude-sonnet-4-6")
        assert str(client.client.base_url).startswith(DEFAULT_BASE_URL)

    @pytest.mark.skipif(
        not os.getenv("OPENROUTER_API_KEY"),
        reason="OPENROUTER_API_KEY not set — skipping live API call",
    )
    @pytest.mark.live
    async def test_real_api_call_returns_string(self):
        """Make a real call to OpenRouter and verify we get a non-empty string back."""
        client = OpenRouterClient(model="google/gemini-2.0-flash-001")
        response = await client.complete(
            system="You are a test assistant. Reply with one word only, no punctuation.",
            user="Say the word pong.",
        )
        assert isinstance(response, str)
        assert len(response.strip()) > 0

    @pytest.mark.skipif(
        not os.getenv("OPENROUTER_API_KEY"),
        reason="OPENROUTER_API_KEY not set — skipping live API call",
    )
    @pytest.mark.live
    async def test_real_hypothesis_is_schema_valid(self):
        """A real model must return a hypothesis that passes schema validation."""
        dataset = build_demo_dataset(datetime.now())
        runtime = TriageRuntime(
            InMemoryEvidenceStore(dataset.entries), InMemoryDeviceRegistry(dataset.records),
        )
        report = await runtime.assess({
            "longitude": NYC_BROOKLYN.longitude,
            "latitude": NYC_BROOKLYN.latitude,
            "radius_meters": 3000.0,
            "from_time": dataset.incident_base,
            "to_time": dataset.incident_base + timedelta(hours=2),
            "metric": "neuralLatencyMs",
            "threshold": 90.0,
        })

        agent = HypothesisAgent(OpenRouterClient(model=os.getenv("TRIAGE_MODEL", "anthropic/claude-sonnet-4-6")))
        hypothesis = await agent.generate_hypothesis(report)
        assert isinstance(hypothesis.type, HypothesisType)
        assert 0.0 <= hypothesis.confidence <= 1.0
