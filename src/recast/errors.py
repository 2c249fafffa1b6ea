"""Exception types raised by the rewrite pipeline."""

from typing import Optional


class RecastError(Exception):
    """Base class for pipeline errors."""


class InvalidRequestError(RecastError, ValueError):
    """Request rejected before any external call (empty text, bad intent)."""


class ProviderError(RecastError):
    """Language-model provider failed: connection, status or protocol."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BillingError(RecastError):
    """Credit ledger operation failed."""


class AccountNotFoundError(BillingError):
    """No ledger account exists for the given id."""

    def __init__(self, account_id: str):
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id
