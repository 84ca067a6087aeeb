"""
Data Models Package

This package contains all Pydantic models used in the Pocket Ledger system.
All data flowing through the system must conform to these schemas.
"""

from pocket_ledger.models.ledger import (
    LEDGER_FIELDS,
    Account,
    ErrorCode,
    LedgerEffect,
    LedgerResult,
    PeriodTotals,
    StatsReport,
    Transaction,
    TransactionInput,
    TransactionType,
    TransactionUpdate,
    utcnow,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "LEDGER_FIELDS",
    "Account",
    "ErrorCode",
    "LedgerEffect",
    "LedgerResult",
    "PeriodTotals",
    "StatsReport",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    "TransactionUpdate",
    "utcnow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
