"""Stream relay between a model provider and the caller.

The relay reads the provider stream and forwards each chunk to the caller as
soon as it arrives, while appending the same chunk to an owned output buffer.
Chunks are pulled from the provider only when the caller has accepted the
previous one, so at most one chunk is in flight per request and a slow caller
throttles the provider read.

Billing is only triggered by a clean end-of-stream. A provider failure before
the first chunk is raised from ``open``; after that the stream is simply
ended. Caller disconnects close the upstream connection and skip billing.
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Callable, Mapping, Optional

from ..errors import ProviderError
from ..llm.base import StreamingLLMClient
from ..llm.call_log import (
    RelayCallLogger,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
)
from .models import ModelSelection, OutputBuffer, ProviderKind, RewriteOutcome, count_words

logger = logging.getLogger(__name__)

OnComplete = Callable[[RewriteOutcome], Any]


class RelayStream:
    """Caller-facing iterator over one provider stream.

    Iterate exactly once. ``outcome`` is set only after a clean end-of-stream.
    """

    def __init__(
        self,
        provider_stream: AsyncIterator[str],
        first_chunk: Optional[str],
        buffer: OutputBuffer,
        provider_name: str,
        started_at: float,
        on_complete: Optional[OnComplete] = None,
        call_logger: Optional[RelayCallLogger] = None,
    ):
        self._provider_stream = provider_stream
        self._first_chunk = first_chunk
        self._buffer = buffer
        self._provider_name = provider_name
        self._started_at = started_at
        self._on_complete = on_complete
        self._call_logger = call_logger
        self._consumed = False
        self.status: Optional[str] = None
        self.outcome: Optional[RewriteOutcome] = None

    @property
    def model_identifier(self) -> str:
        return self._buffer.model_identifier

    def __aiter__(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("Relay stream can only be iterated once")
        self._consumed = True
        return self._relay()

    async def _relay(self) -> AsyncIterator[str]:
        status = STATUS_CANCELLED
        error: Optional[str] = None
        try:
            if self._first_chunk is not None:
                chunk, self._first_chunk = self._first_chunk, None
                self._buffer.append(chunk)
                yield chunk

            async for chunk in self._provider_stream:
                self._buffer.append(chunk)
                yield chunk

            status = STATUS_COMPLETED
        except ProviderError as e:
            # Partial output already delivered; end the caller stream without billing
            status = STATUS_FAILED
            error = str(e)
            logger.warning(
                f"Provider failed mid-stream after {self._buffer.chunk_count} chunks "
                f"({self.model_identifier}): {e}"
            )
        except (asyncio.CancelledError, GeneratorExit):
            logger.info(f"Caller disconnected; cancelling upstream stream ({self.model_identifier})")
            raise
        except Exception as e:
            # The response has started; an unmapped failure still only ends the stream
            status = STATUS_FAILED
            error = str(e)
            logger.error(
                f"Unexpected relay error after {self._buffer.chunk_count} chunks "
                f"({self.model_identifier}): {e}",
                exc_info=True,
            )
        finally:
            self.status = status
            await self._close_provider()
            if status != STATUS_COMPLETED:
                self._record(status, count_words(self._buffer.text), error)

        if status == STATUS_COMPLETED:
            self._complete()

    async def _close_provider(self):
        aclose = getattr(self._provider_stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.warning(f"Error closing provider stream: {e}")

    def _record(self, status: str, word_count: int, error: Optional[str] = None):
        duration_ms = (time.monotonic() - self._started_at) * 1000
        if self._call_logger is not None:
            self._call_logger.log_call(
                model=self.model_identifier,
                provider=self._provider_name,
                status=status,
                chunks=self._buffer.chunk_count,
                output_chars=self._buffer.char_count,
                word_count=word_count,
                duration_ms=duration_ms,
                error=error,
            )
        logger.info(
            f"Relay {status}: model={self.model_identifier} chunks={self._buffer.chunk_count} "
            f"duration_ms={duration_ms:.0f}"
        )

    def _complete(self):
        self.outcome = self._buffer.seal()
        self._record(STATUS_COMPLETED, self.outcome.word_count)
        if self._on_complete is None:
            return
        try:
            self._on_complete(self.outcome)
        except Exception as e:
            logger.error(f"Failed to hand off completed output for billing: {e}", exc_info=True)


class StreamRelay:
    """Opens provider streams and couples them to the caller."""

    def __init__(
        self,
        clients: Mapping[ProviderKind, StreamingLLMClient],
        call_logger: Optional[RelayCallLogger] = None,
    ):
        """
        Initialize the relay.

        Args:
            clients: One injected client per provider kind
            call_logger: Optional relay call logger
        """
        self.clients = dict(clients)
        self.call_logger = call_logger

    async def open(
        self,
        prompt: str,
        selection: ModelSelection,
        title: str,
        on_complete: Optional[OnComplete] = None,
    ) -> RelayStream:
        """
        Open the provider stream and wait for its first chunk.

        Args:
            prompt: Composed model prompt
            selection: Backend chosen by the router
            title: Usage-log title for the outcome
            on_complete: Called once with the outcome after a clean end-of-stream

        Returns:
            RelayStream ready to be iterated by the caller

        Raises:
            ProviderError: If the provider fails before producing any output
        """
        client = self.clients.get(selection.provider_kind)
        if client is None:
            raise ProviderError(f"No client configured for provider {selection.provider_kind.value}")

        started_at = time.monotonic()
        provider_stream = client.stream_text(prompt, selection.model_identifier)

        try:
            first_chunk: Optional[str] = await provider_stream.__anext__()
        except StopAsyncIteration:
            first_chunk = None
        except ProviderError as e:
            self._record_failure(client, selection, started_at, str(e))
            raise
        except Exception as e:
            self._record_failure(client, selection, started_at, str(e))
            await provider_stream.aclose()
            raise ProviderError(f"Streaming connection error: {e}") from e
        except BaseException:
            # Caller cancelled while waiting for the first chunk
            logger.info(f"Relay cancelled before first chunk ({selection.model_identifier})")
            await provider_stream.aclose()
            self._record_call(client, selection, started_at, STATUS_CANCELLED)
            raise

        logger.info(
            f"Relay opened: provider={client.provider_name} model={selection.model_identifier}"
        )
        return RelayStream(
            provider_stream=provider_stream,
            first_chunk=first_chunk,
            buffer=OutputBuffer(selection.model_identifier, title),
            provider_name=client.provider_name,
            started_at=started_at,
            on_complete=on_complete,
            call_logger=self.call_logger,
        )

    def _record_failure(self, client, selection: ModelSelection, started_at: float, error: str):
        logger.error(f"Provider failed before first chunk ({selection.model_identifier}): {error}")
        self._record_call(client, selection, started_at, STATUS_FAILED, error)

    def _record_call(
        self,
        client,
        selection: ModelSelection,
        started_at: float,
        status: str,
        error: Optional[str] = None,
    ):
        if self.call_logger is not None:
            self.call_logger.log_call(
                model=selection.model_identifier,
                provider=client.provider_name,
                status=status,
                chunks=0,
                output_chars=0,
                word_count=0,
                duration_ms=(time.monotonic() - started_at) * 1000,
                error=error,
            )
