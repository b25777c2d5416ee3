"""Project-native typed exceptions for hedge ledger operations."""

from __future__ import annotations


class HedgeLedgerError(Exception):
    """Base exception for hedge ledger failures.

    Attributes:
        error_code: Stable machine-readable error code.
        retryable: Whether the caller may retry the same operation unchanged.
    """

    error_code = "HEDGE_LEDGER_ERROR"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class HedgeValidationError(HedgeLedgerError, ValueError):
    """Caller-fixable input or invariant violation."""

    error_code = "VALIDATION_FAILED"


class HedgeTransitionError(HedgeValidationError):
    """Status transition not present in the entity transition table."""

    error_code = "INVALID_TRANSITION"


class HedgeConflictError(HedgeLedgerError):
    """Concurrent mutation detected between read and write."""

    error_code = "CONCURRENT_MODIFICATION"
    retryable = True


class HedgeNotFoundError(HedgeLedgerError, LookupError):
    """Referenced record does not exist or was soft-deleted."""

    error_code = "NOT_FOUND"


class HedgeStorageError(HedgeLedgerError, RuntimeError):
    """Ledger store infrastructure failure; nothing was committed."""

    error_code = "STORAGE_FAILURE"
