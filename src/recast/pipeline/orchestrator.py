"""Pipeline orchestrator wiring diagnostics, prompts, routing, relay and billing."""

import logging
from typing import Mapping, Optional

from ..billing.finalizer import BillingFinalizer
from ..billing.ledger import CreditLedger
from ..config import Settings, settings as default_settings
from ..errors import InvalidRequestError
from ..llm.anthropic_client import AnthropicStreamingClient
from ..llm.base import StreamingLLMClient
from ..llm.call_log import RelayCallLogger
from ..llm.router import ModelRouter
from ..llm.workers_ai_client import WorkersAIClient
from .diagnostics import analyze
from .models import ProviderKind, RewriteRequest
from .prompts import build_title, compose
from .relay import RelayStream, StreamRelay

logger = logging.getLogger(__name__)


class RewritePipeline:
    """Runs one rewrite per call to ``start``.

    Constructed once at process start. Provider clients are injected so the
    relay never reaches for global state.
    """

    def __init__(
        self,
        router: ModelRouter,
        relay: StreamRelay,
        ledger: CreditLedger,
        finalizer: Optional[BillingFinalizer] = None,
        max_text_length: int = 15000,
    ):
        self.router = router
        self.relay = relay
        self.ledger = ledger
        self.finalizer = finalizer or BillingFinalizer(ledger)
        self.max_text_length = max_text_length

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        clients: Optional[Mapping[ProviderKind, StreamingLLMClient]] = None,
    ) -> "RewritePipeline":
        """Build the pipeline and its provider clients from configuration."""
        settings = settings or default_settings

        if clients is None:
            clients = {
                ProviderKind.LOW_COST: WorkersAIClient(
                    api_token=settings.cloudflare_api_token,
                    account_id=settings.cloudflare_account_id,
                    max_tokens=settings.max_output_tokens,
                    temperature=settings.temperature,
                    timeout=settings.provider_timeout_seconds,
                ),
                ProviderKind.HIGH_REASONING: AnthropicStreamingClient(
                    api_key=settings.anthropic_api_key,
                    max_tokens=settings.max_output_tokens,
                    temperature=settings.temperature,
                    timeout=settings.provider_timeout_seconds,
                ),
            }

        call_logger = RelayCallLogger(
            log_path=settings.call_log_path,
            enabled=settings.enable_call_logging,
            max_recent=settings.call_log_max_recent,
        )

        return cls(
            router=ModelRouter(
                low_cost_model=settings.low_cost_model,
                high_reasoning_model=settings.high_reasoning_model,
            ),
            relay=StreamRelay(clients, call_logger=call_logger),
            ledger=CreditLedger(
                settings.database_path, busy_timeout=settings.ledger_busy_timeout_seconds
            ),
            max_text_length=settings.max_text_length,
        )

    async def initialize(self):
        """Prepare the ledger."""
        await self.ledger.initialize()

    async def shutdown(self):
        """Wait for pending billing and release provider connections."""
        await self.finalizer.drain()
        for client in self.relay.clients.values():
            try:
                await client.aclose()
            except Exception as e:
                logger.warning(f"Error closing provider client {client.provider_name}: {e}")

    def validate(self, request: RewriteRequest):
        """Reject requests that must not reach a provider.

        Raises:
            InvalidRequestError: For blank or over-long text
        """
        if not request.text.strip():
            raise InvalidRequestError("Text is required")
        if len(request.text) > self.max_text_length:
            raise InvalidRequestError(
                f"Text exceeds maximum length of {self.max_text_length} characters"
            )

    async def start(self, account_id: str, request: RewriteRequest) -> RelayStream:
        """
        Run diagnostics, compose the prompt, route, and open the relay.

        Billing for ``account_id`` is scheduled automatically after a clean
        end-of-stream.

        Args:
            account_id: Ledger account of the caller
            request: Rewrite request

        Returns:
            RelayStream to forward to the caller

        Raises:
            InvalidRequestError: If the request is rejected
            ProviderError: If the provider fails before the first chunk
        """
        self.validate(request)

        diagnostics = analyze(request.text)
        prompt = compose(request, diagnostics)
        selection = self.router.select(request.intent)

        logger.info(
            f"Rewrite started: account={account_id} intent={request.intent.value} "
            f"model={selection.model_identifier} diagnostics={diagnostics.to_dict()}"
        )

        return await self.relay.open(
            prompt,
            selection,
            title=build_title(request),
            on_complete=lambda outcome: self.finalizer.spawn(account_id, outcome, request.text),
        )
