"""Data models for the billing layer."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class Account(BaseModel):
    """A ledger account and its credit balance."""

    id: str
    credits: int = 0
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class UsageLogEntry(BaseModel):
    """One billed (or underfunded) completion."""

    id: str
    account_id: str
    title: str
    model_identifier: str
    word_count: int
    credits_charged: int
    underfunded: bool = False
    input_text: str = ""
    output_text: str = ""
    created_at: datetime = Field(default_factory=_utc_now)


class BillingStatus(str, Enum):
    """Outcome of a finalize call."""

    CHARGED = "charged"
    UNDERFUNDED = "underfunded"
    ACCOUNT_NOT_FOUND = "account_not_found"
    FAILED = "failed"


class BillingResult(BaseModel):
    """Result returned by the billing finalizer; never an exception."""

    account_id: str
    status: BillingStatus
    cost: int = 0
    balance_after: Optional[int] = None
    usage_log_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """True when the ledger transaction committed."""
        return self.status in (BillingStatus.CHARGED, BillingStatus.UNDERFUNDED)
