"""
Ledger error taxonomy.

Every mutating ledger operation is all-or-nothing: when one of these is
raised the enclosing transaction has already been rolled back. Only
PersistenceError is worth retrying, and only once with backoff; the other
kinds are permanent for the given input.
"""
from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for commission ledger errors."""

    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(LedgerError):
    """Non-positive or malformed input (amounts, paging, payment method)."""


class ConflictError(LedgerError):
    """Vendor already has a pending withdrawal request."""


class InsufficientFundsError(LedgerError):
    """Requested amount exceeds the pending commissions that could cover it."""


class NotFoundError(LedgerError):
    """Referenced commission or withdrawal request does not exist."""


class StateError(LedgerError):
    """Operation attempted on a record that is not in the required state."""


class PersistenceError(LedgerError):
    """Transaction failure, lock timeout or deadlock. The transaction was rolled back."""

    retryable = True
