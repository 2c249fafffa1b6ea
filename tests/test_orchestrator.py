"""Tests for the rewrite pipeline."""

from unittest.mock import patch

import pytest

from recast.billing import BillingStatus
from recast.errors import InvalidRequestError, ProviderError
from recast.pipeline import RewriteRequest
from recast.pipeline.orchestrator import RewritePipeline


@pytest.fixture
async def ready_pipeline(pipeline):
    await pipeline.initialize()
    await pipeline.ledger.create_account("acct-1", 40)
    yield pipeline
    await pipeline.shutdown()


async def consume(stream) -> str:
    return "".join([chunk async for chunk in stream])


class TestRewritePipeline:
    """Test RewritePipeline end to end with fake providers."""

    @pytest.mark.asyncio
    async def test_clean_stream_is_billed(self, ready_pipeline, high_reasoning_client):
        request = RewriteRequest(text="The report was written by the team. It was submitted.")

        stream = await ready_pipeline.start("acct-1", request)
        text = await consume(stream)
        await ready_pipeline.finalizer.drain()

        assert text == "A more human rewrite."
        assert len(high_reasoning_client.calls) == 1
        assert await ready_pipeline.ledger.get_balance("acct-1") == 36

        logs = await ready_pipeline.ledger.get_usage_logs("acct-1")
        assert len(logs) == 1
        assert logs[0].word_count == 4
        assert logs[0].title == "Humanize - neutral tone"
        assert logs[0].model_identifier == "fake-high"
        assert logs[0].input_text == request.text
        assert logs[0].output_text == "A more human rewrite."

    @pytest.mark.asyncio
    async def test_grammar_routes_to_low_cost(
        self, ready_pipeline, low_cost_client, high_reasoning_client
    ):
        request = RewriteRequest(text="teh report are late", intent="grammar-fix")

        stream = await ready_pipeline.start("acct-1", request)
        assert stream.model_identifier == "fake-low"
        await consume(stream)

        assert len(low_cost_client.calls) == 1
        assert high_reasoning_client.calls == []

    @pytest.mark.asyncio
    async def test_prompt_carries_diagnostics_and_samples(
        self, ready_pipeline, high_reasoning_client
    ):
        request = RewriteRequest(
            text="The report was written by the team. It was submitted.",
            styleSamples=["Short words. Plain talk."],
        )

        stream = await ready_pipeline.start("acct-1", request)
        await consume(stream)

        prompt, model = high_reasoning_client.calls[0]
        assert model == "fake-high"
        assert "Drastically reduce passive voice" in prompt
        assert 'Example 1: "Short words. Plain talk."' in prompt

    @pytest.mark.asyncio
    async def test_underfunded_completion_is_logged(self, ready_pipeline):
        await ready_pipeline.ledger.create_account("acct-poor", 2)
        request = RewriteRequest(text="Please rewrite me.")

        stream = await ready_pipeline.start("acct-poor", request)
        await consume(stream)
        await ready_pipeline.finalizer.drain()

        assert await ready_pipeline.ledger.get_balance("acct-poor") == 2
        logs = await ready_pipeline.ledger.get_usage_logs("acct-poor")
        assert logs[0].underfunded

    @pytest.mark.asyncio
    async def test_failure_before_first_chunk_writes_nothing(
        self, ready_pipeline, high_reasoning_client
    ):
        high_reasoning_client.fail_before_first = True

        with pytest.raises(ProviderError):
            await ready_pipeline.start("acct-1", RewriteRequest(text="Some text."))
        await ready_pipeline.finalizer.drain()

        assert await ready_pipeline.ledger.get_balance("acct-1") == 40
        assert await ready_pipeline.ledger.get_usage_logs("acct-1") == []

    @pytest.mark.asyncio
    async def test_mid_stream_failure_writes_nothing(self, ready_pipeline, high_reasoning_client):
        high_reasoning_client.fail_after = 2

        stream = await ready_pipeline.start("acct-1", RewriteRequest(text="Some text."))
        text = await consume(stream)
        await ready_pipeline.finalizer.drain()

        assert text == "A more "
        assert await ready_pipeline.ledger.get_balance("acct-1") == 40
        assert await ready_pipeline.ledger.get_usage_logs("acct-1") == []

    @pytest.mark.asyncio
    async def test_disconnect_writes_nothing(self, ready_pipeline):
        stream = await ready_pipeline.start("acct-1", RewriteRequest(text="Some text."))
        iterator = stream.__aiter__()
        await iterator.__anext__()
        await iterator.aclose()
        await ready_pipeline.finalizer.drain()

        assert ready_pipeline.finalizer.pending_count == 0
        assert await ready_pipeline.ledger.get_balance("acct-1") == 40
        assert await ready_pipeline.ledger.get_usage_logs("acct-1") == []

    @pytest.mark.asyncio
    async def test_unknown_account_is_not_billed(self, ready_pipeline):
        stream = await ready_pipeline.start("ghost", RewriteRequest(text="Some text."))
        await consume(stream)
        await ready_pipeline.finalizer.drain()

        assert await ready_pipeline.ledger.get_usage_logs("ghost") == []
        assert await ready_pipeline.ledger.get_balance("acct-1") == 40

    @pytest.mark.asyncio
    async def test_finalize_result_for_unknown_account(self, ready_pipeline):
        stream = await ready_pipeline.start("ghost", RewriteRequest(text="Some text."))
        await consume(stream)

        result = await ready_pipeline.finalizer.finalize("ghost", stream.outcome)
        assert result.status == BillingStatus.ACCOUNT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_billing_handed_off_once_per_clean_stream(self, ready_pipeline):
        with patch.object(ready_pipeline.finalizer, "spawn") as spawn:
            stream = await ready_pipeline.start("acct-1", RewriteRequest(text="Some text."))
            await consume(stream)

        spawn.assert_called_once_with("acct-1", stream.outcome, "Some text.")

    @pytest.mark.asyncio
    async def test_billing_not_handed_off_after_mid_stream_failure(
        self, ready_pipeline, high_reasoning_client
    ):
        high_reasoning_client.fail_after = 1
        with patch.object(ready_pipeline.finalizer, "spawn") as spawn:
            stream = await ready_pipeline.start("acct-1", RewriteRequest(text="Some text."))
            await consume(stream)

        spawn.assert_not_called()


class TestValidation:
    """Test request validation."""

    def test_text_over_limit_rejected(self, pipeline):
        pipeline.max_text_length = 10
        with pytest.raises(InvalidRequestError, match="maximum length"):
            pipeline.validate(RewriteRequest(text="x" * 11))

    def test_text_at_limit_accepted(self, pipeline):
        pipeline.max_text_length = 10
        pipeline.validate(RewriteRequest(text="x" * 10))

    @pytest.mark.asyncio
    async def test_start_rejects_before_provider_call(self, pipeline, high_reasoning_client):
        pipeline.max_text_length = 5
        with pytest.raises(InvalidRequestError):
            await pipeline.start("acct-1", RewriteRequest(text="far too long"))
        assert high_reasoning_client.calls == []


class TestLifecycle:
    """Test construction and shutdown."""

    def test_from_settings_with_injected_clients(
        self, test_settings, low_cost_client, high_reasoning_client
    ):
        from recast.pipeline import ProviderKind

        built = RewritePipeline.from_settings(
            test_settings,
            clients={
                ProviderKind.LOW_COST: low_cost_client,
                ProviderKind.HIGH_REASONING: high_reasoning_client,
            },
        )

        assert built.relay.clients[ProviderKind.LOW_COST] is low_cost_client
        assert built.ledger.db_path == test_settings.database_path
        assert built.max_text_length == test_settings.max_text_length

    @pytest.mark.asyncio
    async def test_shutdown_closes_clients(self, pipeline, low_cost_client, high_reasoning_client):
        await pipeline.shutdown()
        assert low_cost_client.client_closed
        assert high_reasoning_client.client_closed
