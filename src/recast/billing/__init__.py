"""Credit ledger and post-stream billing."""

from .models import Account, UsageLogEntry, BillingStatus, BillingResult
from .ledger import CreditLedger, ChargeResult
from .finalizer import BillingFinalizer

__all__ = [
    "Account",
    "UsageLogEntry",
    "BillingStatus",
    "BillingResult",
    "CreditLedger",
    "ChargeResult",
    "BillingFinalizer",
]
