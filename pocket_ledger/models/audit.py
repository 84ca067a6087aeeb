"""
Audit Models for Pocket Ledger

Every balance-affecting action in the system is logged for audit purposes.
This provides:
1. Complete traceability of account adjustments
2. Debugging information when a multi-step operation fails halfway
3. The trail an operator needs before running a reconcile

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocket_ledger.models.ledger import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger and account operation has its own event type.
    """
    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_AMENDED = "transaction_amended"
    TRANSACTION_REMOVED = "transaction_removed"
    OPERATION_REJECTED = "operation_rejected"

    # Account aggregates
    ACCOUNT_ADJUSTED = "account_adjusted"
    ACCOUNT_RECONCILED = "account_reconciled"
    COMPENSATION_APPLIED = "compensation_applied"
    COMPENSATION_FAILED = "compensation_failed"

    # Account lifecycle
    ACCOUNT_OPENED = "account_opened"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_CLOSED = "account_closed"

    # Images
    IMAGE_UPLOADED = "image_uploaded"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all writes of one amend)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_code, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_recorded(tx_id, account_id, ...)
        event = AuditEventBuilder.compensation_failed(account_id, ...)
    """

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: Decimal,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recorded {transaction_type} of {amount} on account {account_id}",
            details={
                "account_id": account_id,
                "type": transaction_type,
                "amount": str(amount),
            },
        )

    @staticmethod
    def transaction_amended(
        transaction_id: str,
        changed_fields: list[str],
        ledger_changed: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_AMENDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Amended transaction {transaction_id}",
            details={
                "changed_fields": changed_fields,
                "ledger_changed": ledger_changed,
            },
        )

    @staticmethod
    def transaction_removed(
        transaction_id: str,
        account_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Removed transaction {transaction_id} from account {account_id}",
            details={
                "account_id": account_id,
            },
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error_code: str,
        error_message: str,
        entity_id: Optional[str],
        correlation_id: UUID,
        entity_type: str = "transaction",
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {error_code}",
            details={
                "operation": operation,
            },
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def account_adjusted(
        account_id: str,
        before: tuple[Decimal, Decimal, Decimal],
        after: tuple[Decimal, Decimal, Decimal],
        version: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_ADJUSTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} balance {before[0]} -> {after[0]}",
            details={
                "before": [str(v) for v in before],
                "after": [str(v) for v in after],
                "version": version,
            },
        )

    @staticmethod
    def compensation_applied(
        account_id: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMPENSATION_APPLIED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Reverted adjustment on account {account_id}",
            details={
                "reason": reason,
            },
        )

    @staticmethod
    def compensation_failed(
        account_id: str,
        reason: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMPENSATION_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} may be inconsistent; reconcile required",
            details={
                "reason": reason,
            },
            error_message=error_message,
        )

    @staticmethod
    def account_reconciled(
        account_id: str,
        before: tuple[Decimal, Decimal, Decimal],
        after: tuple[Decimal, Decimal, Decimal],
        transaction_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        drifted = before != after
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_RECONCILED,
            severity=AuditSeverity.WARNING if drifted else AuditSeverity.INFO,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=(
                f"Account {account_id} corrected from {transaction_count} transactions"
                if drifted
                else f"Account {account_id} already consistent"
            ),
            details={
                "before": [str(v) for v in before],
                "after": [str(v) for v in after],
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def account_opened(
        account_id: str,
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_OPENED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account opened: {name}",
            details={
                "name": name,
            },
        )

    @staticmethod
    def account_updated(
        account_id: str,
        changed_fields: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} updated",
            details={
                "changed_fields": changed_fields,
            },
        )

    @staticmethod
    def account_closed(
        account_id: str,
        transactions_deleted: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CLOSED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Account {account_id} closed with {transactions_deleted} transactions",
            details={
                "transactions_deleted": transactions_deleted,
            },
        )

    @staticmethod
    def image_uploaded(
        folder: str,
        url: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_UPLOADED,
            entity_type="image",
            correlation_id=correlation_id,
            description=f"Image uploaded to {folder}",
            details={
                "folder": folder,
                "url": url,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
