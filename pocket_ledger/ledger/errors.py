"""
Ledger exceptions.

Raised inside the ledger package and converted into a failed LedgerResult
at the public boundary; callers outside the package never see them.
"""

from pocket_ledger.models.ledger import ErrorCode


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code: ErrorCode = ErrorCode.STORE_UNAVAILABLE


class LedgerValidationError(LedgerError):
    """Malformed input: non-positive amount, unknown type, missing account id."""

    code = ErrorCode.VALIDATION_ERROR


class InsufficientFundsError(LedgerError):
    """An expense would drive an account below zero."""

    code = ErrorCode.INSUFFICIENT_FUNDS


class RecordNotFoundError(LedgerError):
    """A transaction or account id does not resolve."""

    code = ErrorCode.NOT_FOUND


class InvalidStateError(LedgerError):
    """Stored data is already inconsistent; manual reconciliation needed."""

    code = ErrorCode.INVALID_STATE


class StoreUnavailableError(LedgerError):
    """A store or image hosting call failed for infrastructure reasons."""

    code = ErrorCode.STORE_UNAVAILABLE
