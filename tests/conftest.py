"""Pytest configuration and shared fixtures."""

import asyncio
from pathlib import Path
from typing import AsyncGenerator, AsyncIterator, Optional

import pytest

from recast.config import Settings
from recast.errors import ProviderError
from recast.billing import CreditLedger
from recast.llm import StreamingLLMClient, RelayCallLogger, ModelRouter
from recast.pipeline import ProviderKind, StreamRelay
from recast.pipeline.orchestrator import RewritePipeline


class FakeStreamingClient(StreamingLLMClient):
    """Streaming client that replays canned chunks."""

    provider_name = "fake"

    def __init__(
        self,
        chunks=(),
        fail_before_first: bool = False,
        fail_after: Optional[int] = None,
    ):
        self.chunks = list(chunks)
        self.fail_before_first = fail_before_first
        self.fail_after = fail_after
        self.calls: list[tuple[str, str]] = []
        self.yielded = 0
        self.streams_closed = 0
        self.client_closed = False

    async def stream_text(self, prompt: str, model: str) -> AsyncIterator[str]:
        self.calls.append((prompt, model))
        try:
            if self.fail_before_first:
                raise ProviderError("Fake API error: 503", 503)
            for index, chunk in enumerate(self.chunks):
                if self.fail_after is not None and index == self.fail_after:
                    raise ProviderError("Fake streaming connection reset")
                await asyncio.sleep(0)
                self.yielded += 1
                yield chunk
        finally:
            self.streams_closed += 1

    async def aclose(self):
        self.client_closed = True


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create settings with test values."""
    return Settings(
        host="127.0.0.1",
        port=8000,
        debug=False,
        cors_allow_origins=["*"],
        database_path=tmp_path / "ledger.db",
        api_keys={"test-key": "acct-1", "poor-key": "acct-poor", "ghost-key": "acct-ghost"},
        anthropic_api_key=None,
        cloudflare_api_token=None,
        cloudflare_account_id=None,
        low_cost_model="fake-low",
        high_reasoning_model="fake-high",
        max_text_length=15000,
        min_credits_to_start=1,
        enable_call_logging=False,
        call_log_path=tmp_path / "calls.jsonl",
    )


@pytest.fixture
async def ledger(tmp_path: Path) -> AsyncGenerator[CreditLedger, None]:
    """Create an initialized ledger backed by a temporary database."""
    store = CreditLedger(tmp_path / "test_ledger.db")
    await store.initialize()
    yield store


@pytest.fixture
def low_cost_client() -> FakeStreamingClient:
    return FakeStreamingClient(chunks=["Fixed ", "grammar ", "here."])


@pytest.fixture
def high_reasoning_client() -> FakeStreamingClient:
    return FakeStreamingClient(chunks=["A ", "more ", "human ", "rewrite."])


@pytest.fixture
def call_logger(tmp_path: Path) -> RelayCallLogger:
    return RelayCallLogger(log_path=tmp_path / "calls.jsonl", enabled=False)


def build_pipeline(
    settings: Settings,
    low_cost: StreamingLLMClient,
    high_reasoning: StreamingLLMClient,
    call_logger: Optional[RelayCallLogger] = None,
) -> RewritePipeline:
    """Assemble a pipeline around fake provider clients."""
    return RewritePipeline(
        router=ModelRouter(settings.low_cost_model, settings.high_reasoning_model),
        relay=StreamRelay(
            {
                ProviderKind.LOW_COST: low_cost,
                ProviderKind.HIGH_REASONING: high_reasoning,
            },
            call_logger=call_logger,
        ),
        ledger=CreditLedger(settings.database_path),
        max_text_length=settings.max_text_length,
    )


@pytest.fixture
def pipeline(test_settings, low_cost_client, high_reasoning_client, call_logger) -> RewritePipeline:
    """Pipeline with fake providers and a temporary ledger (not yet initialized)."""
    return build_pipeline(test_settings, low_cost_client, high_reasoning_client, call_logger)


@pytest.fixture
def fake_client():
    """Factory for fake streaming clients."""
    return FakeStreamingClient
