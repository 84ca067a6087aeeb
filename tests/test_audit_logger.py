"""
Tests for the audit logger.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.models import AuditEventBuilder, AuditEventType, AuditSeverity
from pocket_ledger.services.storage import InMemoryAuditStorage, StorageError


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_without_storage_logs_locally(self):
        logger = AuditLogger()

        await logger.log_account_opened("a1", "Cash", create_correlation_id())

    @pytest.mark.asyncio
    async def test_events_are_persisted(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_account_adjusted(
            account_id="a1",
            before=(Decimal("0"), Decimal("0"), Decimal("0")),
            after=(Decimal("5"), Decimal("5"), Decimal("0")),
            version=1,
            correlation_id=correlation_id,
        )

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.ACCOUNT_ADJUSTED
        assert events[0].entity_id == "a1"
        assert events[0].details["after"] == ["5", "5", "0"]

    @pytest.mark.asyncio
    async def test_compensation_outcomes(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_compensation("a1", "insert failed", correlation_id)
        await logger.log_compensation("a1", "insert failed", correlation_id, error_message="store down")

        applied, failed = storage.events
        assert applied.event_type == AuditEventType.COMPENSATION_APPLIED
        assert applied.severity == AuditSeverity.WARNING
        assert failed.event_type == AuditEventType.COMPENSATION_FAILED
        assert failed.severity == AuditSeverity.CRITICAL
        assert failed.error_message == "store down"

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        storage = MagicMock()
        storage.append_event = AsyncMock(side_effect=StorageError("sheet unavailable"))
        logger = AuditLogger(storage)

        event = AuditEventBuilder.account_opened(
            account_id="a1",
            name="Cash",
            correlation_id=create_correlation_id(),
        )

        assert await logger.log(event) is False
        storage.append_event.assert_awaited_once_with(event)

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()
