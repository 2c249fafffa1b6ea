"""Relay call logging."""

import json
import logging
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


@dataclass
class RelayCallRecord:
    """Record of a single streamed provider call."""

    timestamp: str
    model: str
    provider: str
    status: str  # "completed", "failed", "cancelled"
    chunks: int
    output_chars: int
    word_count: int
    duration_ms: float
    error: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class RelayCallLogger:
    """Logger for tracking relay attempts and their outcome.

    Totals cover the whole process lifetime; only the most recent records are
    kept in memory.
    """

    def __init__(self, log_path: Path, enabled: bool = True, max_recent: int = 100):
        """Initialize the logger.

        Args:
            log_path: Path to the JSONL log file
            enabled: Whether writing to the file is enabled
            max_recent: Number of recent records kept in memory
        """
        self.log_path = log_path
        self.enabled = enabled
        self.recent_calls: deque[RelayCallRecord] = deque(maxlen=max_recent)
        self.total_calls = 0
        self.total_output_words = 0
        self.total_output_chars = 0
        self.calls_by_status = {STATUS_COMPLETED: 0, STATUS_FAILED: 0, STATUS_CANCELLED: 0}

        if self.enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_call(
        self,
        model: str,
        provider: str,
        status: str,
        chunks: int,
        output_chars: int,
        word_count: int,
        duration_ms: float,
        error: Optional[str] = None,
    ) -> RelayCallRecord:
        """Log a relay attempt.

        Args:
            model: Model identifier used
            provider: Provider name (e.g., "anthropic", "cloudflare")
            status: One of "completed", "failed", "cancelled"
            chunks: Number of chunks forwarded to the caller
            output_chars: Characters forwarded to the caller
            word_count: Words in the forwarded output
            duration_ms: Wall time from open to end of stream
            error: Error description for failed calls

        Returns:
            The created RelayCallRecord
        """
        record = RelayCallRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            model=model,
            provider=provider,
            status=status,
            chunks=chunks,
            output_chars=output_chars,
            word_count=word_count,
            duration_ms=round(duration_ms, 2),
            error=error,
        )

        self.recent_calls.append(record)
        self.total_calls += 1
        self.total_output_words += word_count
        self.total_output_chars += output_chars
        self.calls_by_status[status] = self.calls_by_status.get(status, 0) + 1

        if self.enabled:
            self._write_to_log(record)

        return record

    def _write_to_log(self, record: RelayCallRecord):
        """Append a record to the log file."""
        try:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(record.to_dict()) + "\n")
        except OSError as e:
            # Logging must never fail a relay
            logger.warning(f"Failed to write to relay call log: {e}")

    def get_session_summary(self) -> Dict[str, Any]:
        """Get summary statistics for the current process.

        Returns:
            Dictionary with counts per status and output totals
        """
        return {
            "total_calls": self.total_calls,
            "by_status": dict(self.calls_by_status),
            "total_output_words": self.total_output_words,
            "total_output_chars": self.total_output_chars,
            "last_call": self.recent_calls[-1].to_dict() if self.recent_calls else None,
        }

    def get_recent_calls(self, limit: int = 10) -> list[Dict[str, Any]]:
        """Get recent call records as dictionaries, oldest first."""
        recent = list(self.recent_calls)[-limit:]
        return [call.to_dict() for call in recent]
