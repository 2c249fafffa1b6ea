"""Cloudflare Workers AI streaming client (low-cost provider)."""

import json
from typing import AsyncIterator, Optional

import httpx

from ..errors import ProviderError
from .base import SYSTEM_INSTRUCTION, StreamingLLMClient

DONE_SENTINEL = "[DONE]"


class WorkersAIClient(StreamingLLMClient):
    """Workers AI HTTP API client speaking server-sent events."""

    provider_name = "cloudflare"

    def __init__(
        self,
        api_token: Optional[str],
        account_id: Optional[str],
        base_url: str = "https://api.cloudflare.com/client/v4",
        max_tokens: int = 4096,
        temperature: float = 0.7,
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_token = api_token
        self.account_id = account_id
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    def _url(self, model: str) -> str:
        return f"{self.base_url}/accounts/{self.account_id}/ai/run/{model}"

    async def stream_text(self, prompt: str, model: str) -> AsyncIterator[str]:
        """Stream text deltas for a prompt."""
        if not self.api_token or not self.account_id:
            raise ProviderError("Cloudflare API credentials not configured")

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }
        payload = {
            "messages": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": True,
        }

        try:
            async with self._http.stream(
                "POST", self._url(model), headers=headers, json=payload
            ) as response:
                if response.status_code >= 400:
                    raise ProviderError(
                        f"Cloudflare API error: {response.status_code}", response.status_code
                    )

                finished = False
                async for line in response.aiter_lines():
                    done, text = parse_sse_line(line)
                    if done:
                        finished = True
                        break
                    if text:
                        yield text

                if not finished:
                    raise ProviderError("Cloudflare stream ended without completion marker")
        except httpx.HTTPError as e:
            raise ProviderError(f"Cloudflare streaming connection error: {e}") from e

    async def aclose(self):
        await self._http.aclose()


def parse_sse_line(line: str) -> tuple[bool, Optional[str]]:
    """Extract the text delta from one server-sent event line.

    Returns:
        Tuple of (done, text). ``done`` is True at the end-of-stream marker;
        ``text`` is None for lines that carry no data (comments, keep-alives,
        other fields)

    Raises:
        ProviderError: If a data line is not valid JSON
    """
    line = line.strip()
    if not line.startswith("data:"):
        return False, None

    data = line[len("data:"):].strip()
    if data == DONE_SENTINEL:
        return True, None

    try:
        event = json.loads(data)
    except json.JSONDecodeError as e:
        raise ProviderError(f"Malformed stream event: {data[:100]}") from e

    if not isinstance(event, dict):
        raise ProviderError(f"Malformed stream event: {data[:100]}")
    return False, event.get("response") or ""
