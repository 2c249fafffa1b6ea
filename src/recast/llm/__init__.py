"""LLM provider clients and routing."""

from .base import StreamingLLMClient, SYSTEM_INSTRUCTION
from .call_log import RelayCallLogger, RelayCallRecord
from .anthropic_client import AnthropicStreamingClient
from .workers_ai_client import WorkersAIClient, parse_sse_line
from .router import ModelRouter, LOW_COST_INTENTS

__all__ = [
    "StreamingLLMClient",
    "SYSTEM_INSTRUCTION",
    "RelayCallLogger",
    "RelayCallRecord",
    "AnthropicStreamingClient",
    "WorkersAIClient",
    "parse_sse_line",
    "ModelRouter",
    "LOW_COST_INTENTS",
]
