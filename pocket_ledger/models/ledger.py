"""
Core Data Models for Pocket Ledger

These models define the strict schemas for all data flowing through the ledger.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Money is always Decimal. Records cross the storage boundary
as JSON-mode dicts (decimals and timestamps as strings) so every backend
stores the same textual representation.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction relative to its account."""
    INCOME = "income"
    EXPENSE = "expense"


class ErrorCode(str, Enum):
    """
    Failure categories surfaced at the ledger boundary.

    VALIDATION_ERROR and INSUFFICIENT_FUNDS are safe to retry with different
    input. NOT_FOUND needs different ids. INVALID_STATE means stored data
    needs manual reconciliation. STORE_UNAVAILABLE may be retried as a whole.
    """
    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    STORE_UNAVAILABLE = "store_unavailable"


def _coerce_transaction_type(value: Any) -> Any:
    """Accept any casing, and the legacy plural 'expenses'."""
    if isinstance(value, str):
        normalised = value.strip().lower()
        if normalised == "expenses":
            return TransactionType.EXPENSE.value
        return normalised
    return value


def _as_utc(value: Any) -> Any:
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


# =============================================================================
# ACCOUNT
# =============================================================================

class Account(BaseModel):
    """
    A cash pool with cached aggregates.

    CRITICAL: amount, total_income and total_expense are written ONLY by the
    ledger engine. Everything else may be edited through the account manager.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display label"
    )
    amount: Decimal = Field(
        default=Decimal("0"),
        description="Current balance"
    )
    total_income: Decimal = Field(
        default=Decimal("0"),
        description="Lifetime sum of income transactions"
    )
    total_expense: Decimal = Field(
        default=Decimal("0"),
        description="Lifetime sum of expense transactions"
    )
    image: Optional[str] = Field(
        default=None,
        description="Hosted URL of the account icon"
    )
    user_id: Optional[str] = None
    version: int = Field(
        default=0,
        ge=0,
        description="Optimistic concurrency token, bumped on every versioned write"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def aggregates(self) -> tuple[Decimal, Decimal, Decimal]:
        """(amount, total_income, total_expense)"""
        return self.amount, self.total_income, self.total_expense


# =============================================================================
# TRANSACTIONS
# =============================================================================

# Fields whose change requires touching account aggregates
LEDGER_FIELDS = ("type", "amount", "account_id")


class TransactionInput(BaseModel):
    """
    Payload for recording a new transaction.

    receipt_image is either a hosted URL (kept as is) or a local file
    reference that is uploaded before the transaction is persisted.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive amount in the account's unit"
    )
    account_id: str = Field(
        ...,
        min_length=1,
        description="Owning account"
    )
    date: datetime = Field(default_factory=utcnow)
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = Field(default=None, max_length=50)
    receipt_image: Optional[str] = None
    user_id: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, v: Any) -> Any:
        return _coerce_transaction_type(v)

    @field_validator("date")
    @classmethod
    def date_as_utc(cls, v: Any) -> Any:
        return _as_utc(v)


class Transaction(TransactionInput):
    """A persisted transaction."""

    id: str = Field(
        ...,
        min_length=1,
        description="Store-assigned identifier"
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def ledger_key(self) -> tuple:
        """The fields that determine the account adjustment."""
        return self.type, self.amount, self.account_id


class TransactionUpdate(BaseModel):
    """
    Partial edit of a transaction.

    Only fields that were explicitly set are applied; use
    model_dump(exclude_unset=True) to get them.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    account_id: Optional[str] = Field(default=None, min_length=1)
    date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[str] = Field(default=None, max_length=50)
    receipt_image: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, v: Any) -> Any:
        return _coerce_transaction_type(v)

    @field_validator("date")
    @classmethod
    def date_as_utc(cls, v: Any) -> Any:
        return _as_utc(v)

    def changes(self) -> dict[str, Any]:
        """Explicitly set fields, dropping nulls for ledger fields."""
        data = self.model_dump(exclude_unset=True)
        for field in LEDGER_FIELDS:
            if field in data and data[field] is None:
                del data[field]
        return data


# =============================================================================
# LEDGER ARITHMETIC
# =============================================================================

class LedgerEffect(BaseModel):
    """
    The net change a transaction makes to its account's aggregates.

    Revert is the negated effect; an edit on a single account is
    new_effect + (-old_effect).
    """
    model_config = ConfigDict(frozen=True)

    amount_delta: Decimal = Decimal("0")
    income_delta: Decimal = Decimal("0")
    expense_delta: Decimal = Decimal("0")

    def __neg__(self) -> "LedgerEffect":
        return LedgerEffect(
            amount_delta=-self.amount_delta,
            income_delta=-self.income_delta,
            expense_delta=-self.expense_delta,
        )

    def __add__(self, other: "LedgerEffect") -> "LedgerEffect":
        return LedgerEffect(
            amount_delta=self.amount_delta + other.amount_delta,
            income_delta=self.income_delta + other.income_delta,
            expense_delta=self.expense_delta + other.expense_delta,
        )

    @property
    def is_zero(self) -> bool:
        return not (self.amount_delta or self.income_delta or self.expense_delta)


# =============================================================================
# BOUNDARY RESULT
# =============================================================================

class LedgerResult(BaseModel):
    """
    Structured outcome of a ledger operation.

    Callers render msg inline instead of handling exceptions.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    msg: Optional[str] = None
    data: Any = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, data: Any = None, msg: Optional[str] = None) -> "LedgerResult":
        return cls(success=True, data=data, msg=msg)

    @classmethod
    def fail(cls, error_code: ErrorCode, msg: str) -> "LedgerResult":
        return cls(success=False, error_code=error_code, msg=msg)


# =============================================================================
# STATISTICS
# =============================================================================

class PeriodTotals(BaseModel):
    """Income and expense sums for one reporting bucket."""

    label: str
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class StatsReport(BaseModel):
    """Bucketed totals plus the transactions that fed them (newest first)."""

    period: str = Field(
        ...,
        pattern="^(weekly|monthly|yearly)$"
    )
    generated_at: datetime = Field(default_factory=utcnow)
    buckets: list[PeriodTotals] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)

    @property
    def total_income(self) -> Decimal:
        return sum((b.income for b in self.buckets), Decimal("0"))

    @property
    def total_expense(self) -> Decimal:
        return sum((b.expense for b in self.buckets), Decimal("0"))
