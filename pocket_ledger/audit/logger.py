"""
Audit Logger

DESIGN DECISION: Every balance-affecting action in the system is logged.
This provides:
1. Complete traceability of account adjustments
2. Debugging capability when a multi-step operation stops halfway
3. The evidence an operator needs before running a reconcile

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a failed audit write never fails a ledger operation)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocket_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocket_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pocket_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_recorded(
        self,
        transaction_id: str,
        account_id: str,
        transaction_type: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a newly recorded transaction."""
        event = AuditEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_amended(
        self,
        transaction_id: str,
        changed_fields: list[str],
        ledger_changed: bool,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_amended(
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            ledger_changed=ledger_changed,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_removed(
        self,
        transaction_id: str,
        account_id: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_removed(
            transaction_id=transaction_id,
            account_id=account_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_operation_rejected(
        self,
        operation: str,
        error_code: str,
        error_message: str,
        entity_id: Optional[str],
        correlation_id: UUID,
        entity_type: str = "transaction",
    ) -> None:
        """Log a ledger operation that was refused before or during persistence."""
        event = AuditEventBuilder.operation_rejected(
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            entity_id=entity_id,
            correlation_id=correlation_id,
            entity_type=entity_type,
        )
        await self.log(event)

    async def log_account_adjusted(
        self,
        account_id: str,
        before: tuple[Decimal, Decimal, Decimal],
        after: tuple[Decimal, Decimal, Decimal],
        version: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.account_adjusted(
            account_id=account_id,
            before=before,
            after=after,
            version=version,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_compensation(
        self,
        account_id: str,
        reason: str,
        correlation_id: UUID,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Log a compensating revert.

        error_message set means the revert itself failed and the account
        needs a reconcile.
        """
        if error_message is None:
            event = AuditEventBuilder.compensation_applied(
                account_id=account_id,
                reason=reason,
                correlation_id=correlation_id,
            )
        else:
            event = AuditEventBuilder.compensation_failed(
                account_id=account_id,
                reason=reason,
                error_message=error_message,
                correlation_id=correlation_id,
            )
        await self.log(event)

    async def log_account_reconciled(
        self,
        account_id: str,
        before: tuple[Decimal, Decimal, Decimal],
        after: tuple[Decimal, Decimal, Decimal],
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.account_reconciled(
            account_id=account_id,
            before=before,
            after=after,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_account_opened(
        self,
        account_id: str,
        name: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.account_opened(
            account_id=account_id,
            name=name,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_account_updated(
        self,
        account_id: str,
        changed_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.account_updated(
            account_id=account_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_account_closed(
        self,
        account_id: str,
        transactions_deleted: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.account_closed(
            account_id=account_id,
            transactions_deleted=transactions_deleted,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_image_uploaded(
        self,
        folder: str,
        url: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.image_uploaded(
            folder=folder,
            url=url,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
