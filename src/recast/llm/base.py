"""Base streaming LLM client interface."""

from abc import ABC, abstractmethod
from typing import AsyncIterator

SYSTEM_INSTRUCTION = "You are a professional writer. Output only the rewritten text."


class StreamingLLMClient(ABC):
    """Abstract base class for streaming LLM providers.

    One instance per provider kind is constructed at process start and
    injected into the relay.
    """

    provider_name: str = "unknown"

    @abstractmethod
    def stream_text(self, prompt: str, model: str) -> AsyncIterator[str]:
        """Stream text deltas for a single-turn prompt.

        Implementations are async generators. The connection is opened on the
        first iteration; closing the generator must close the connection.

        Raises:
            ProviderError: On connection failure, non-success status or a
                protocol violation
        """

    async def aclose(self):
        """Release any pooled connections."""
