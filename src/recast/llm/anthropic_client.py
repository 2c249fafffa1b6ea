"""Anthropic streaming client (high-reasoning provider)."""

from typing import AsyncIterator, Optional

import anthropic
import httpx
from anthropic import AsyncAnthropic

from ..errors import ProviderError
from .base import SYSTEM_INSTRUCTION, StreamingLLMClient


class AnthropicStreamingClient(StreamingLLMClient):
    """Anthropic Claude streaming client."""

    provider_name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str],
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 60.0,
        client: Optional[AsyncAnthropic] = None,
    ):
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = client
        if self.client is None and api_key:
            self.client = AsyncAnthropic(api_key=api_key, timeout=timeout)

    async def stream_text(self, prompt: str, model: str) -> AsyncIterator[str]:
        """Stream text deltas from the Messages API."""
        if self.client is None:
            raise ProviderError("Anthropic API credentials not configured")

        try:
            async with self.client.messages.stream(
                model=model,
                max_tokens=self.max_tokens,
                system=SYSTEM_INSTRUCTION,
                messages=[{"role": "user", "content": prompt}],
                # Not a named stream() argument in every SDK release
                extra_body={"temperature": self.temperature},
            ) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield text
        except anthropic.APIStatusError as e:
            raise ProviderError(f"Anthropic API error: {e.status_code}", e.status_code) from e
        except anthropic.APIError as e:
            raise ProviderError(f"Anthropic API error: {e}") from e
        except httpx.HTTPError as e:
            # Transport failures while reading the event stream are not wrapped by the SDK
            raise ProviderError(f"Anthropic streaming connection error: {e}") from e

    async def aclose(self):
        if self.client is not None:
            await self.client.close()
