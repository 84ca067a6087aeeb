"""
Ledger Package

The consistency core: the engine that keeps account aggregates equal to what
their transactions imply, and the manager for account lifecycle.
"""

from pocket_ledger.ledger.accounts import AccountManager
from pocket_ledger.ledger.effects import (
    apply_effect,
    effect_of,
    sum_effects,
    transaction_effect,
)
from pocket_ledger.ledger.engine import LedgerEngine
from pocket_ledger.ledger.errors import (
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    LedgerValidationError,
    RecordNotFoundError,
    StoreUnavailableError,
)

__all__ = [
    "AccountManager",
    "LedgerEngine",
    # Arithmetic
    "apply_effect",
    "effect_of",
    "sum_effects",
    "transaction_effect",
    # Errors
    "InsufficientFundsError",
    "InvalidStateError",
    "LedgerError",
    "LedgerValidationError",
    "RecordNotFoundError",
    "StoreUnavailableError",
]
