"""
Tests for Pocket Ledger models

Test strategy:
1. Unit tests for individual components (models, arithmetic)
2. Engine and manager tests against the in-memory store
3. No real API calls in tests (fake worksheets, patched Cloudinary SDK)
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pocket_ledger.models import (
    Account,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    ErrorCode,
    LedgerResult,
    PeriodTotals,
    StatsReport,
    Transaction,
    TransactionInput,
    TransactionType,
    TransactionUpdate,
)


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_account_defaults(self):
        """Test that a new account has zeroed aggregates."""
        account = Account(id="a1", name="  Wallet  ")
        assert account.name == "Wallet"
        assert account.aggregates == (Decimal("0"), Decimal("0"), Decimal("0"))
        assert account.version == 0

    def test_account_requires_name(self):
        """Test that an empty account name is rejected."""
        with pytest.raises(ValueError):
            Account(id="a1", name="   ")

    def test_transaction_input_creation(self):
        """Test TransactionInput model creation."""
        data = TransactionInput(
            type="expense",
            amount=Decimal("12.50"),
            account_id="a1",
            category="food",
        )
        assert data.type == TransactionType.EXPENSE
        assert data.amount == Decimal("12.50")
        assert data.date.tzinfo is not None

    def test_transaction_input_rejects_zero_amount(self):
        """Test that non-positive amounts are rejected."""
        with pytest.raises(ValueError):
            TransactionInput(type="income", amount=Decimal("0"), account_id="a1")

    def test_transaction_input_rejects_fractional_cents(self):
        """Test that more than two decimal places are rejected."""
        with pytest.raises(ValueError):
            TransactionInput(type="income", amount=Decimal("1.005"), account_id="a1")

    def test_transaction_type_is_normalised(self):
        """Test that type accepts any casing and the legacy plural."""
        assert TransactionInput(type=" INCOME ", amount=1, account_id="a1").type == TransactionType.INCOME
        assert TransactionInput(type="expenses", amount=1, account_id="a1").type == TransactionType.EXPENSE

    def test_naive_date_is_taken_as_utc(self):
        """Test that naive datetimes are treated as UTC."""
        data = TransactionInput(
            type="income",
            amount=1,
            account_id="a1",
            date=datetime(2025, 1, 1, 9, 30),
        )
        assert data.date == datetime(2025, 1, 1, 9, 30, tzinfo=timezone.utc)

    def test_offset_date_is_converted_to_utc(self):
        """Test that aware datetimes are normalised to UTC."""
        data = TransactionInput(
            type="income",
            amount=1,
            account_id="a1",
            date="2020-01-01T01:00:00+05:00",
        )
        assert data.date == datetime(2019, 12, 31, 20, 0, tzinfo=timezone.utc)
        assert data.date.utcoffset() == timedelta(0)

    def test_transaction_ledger_key(self):
        """Test that ledger_key covers type, amount and account."""
        tx = Transaction(id="t1", type="income", amount=Decimal("5"), account_id="a1")
        assert tx.ledger_key == (TransactionType.INCOME, Decimal("5"), "a1")

    def test_transaction_update_changes_only_set_fields(self):
        """Test that only explicitly set fields are returned."""
        update = TransactionUpdate(description="Lunch", amount=None)
        assert update.changes() == {"description": "Lunch"}

    def test_transaction_update_keeps_cleared_description(self):
        """Test that descriptive fields can be cleared."""
        update = TransactionUpdate(description=None)
        assert update.changes() == {"description": None}


class TestLedgerResult:
    """Tests for LedgerResult."""

    def test_ok(self):
        """Test successful result."""
        result = LedgerResult.ok({"id": "t1"}, msg="done")
        assert result.success is True
        assert result.error_code is None
        assert result.data == {"id": "t1"}

    def test_fail(self):
        """Test failed result."""
        result = LedgerResult.fail(ErrorCode.INSUFFICIENT_FUNDS, "Insufficient funds in account!")
        assert result.success is False
        assert result.error_code == ErrorCode.INSUFFICIENT_FUNDS
        assert result.data is None


class TestStatsModels:
    """Tests for statistics models."""

    def test_totals(self):
        """Test report totals across buckets."""
        report = StatsReport(
            period="monthly",
            buckets=[
                PeriodTotals(label="Jan 25", income=Decimal("10"), expense=Decimal("4")),
                PeriodTotals(label="Feb 25", income=Decimal("5")),
            ],
        )
        assert report.total_income == Decimal("15")
        assert report.total_expense == Decimal("4")
        assert report.buckets[0].net == Decimal("6")

    def test_unknown_period_rejected(self):
        """Test that only known periods are accepted."""
        with pytest.raises(ValueError):
            StatsReport(period="daily")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.IMAGE_UPLOADED,
            description="Test image uploaded",
        )
        assert event.event_type == AuditEventType.IMAGE_UPLOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            description="Recorded expense",
            details={"account_id": "a1", "amount": "30"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_recorded"
        assert log_dict["details"]["account_id"] == "a1"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            description="record rejected",
            error_code="insufficient_funds",
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "operation_rejected"  # event_type
        assert row[9] == "insufficient_funds"  # error_code

    def test_audit_event_builder_transaction_recorded(self):
        """Test AuditEventBuilder.transaction_recorded."""
        correlation_id = uuid4()

        event = AuditEventBuilder.transaction_recorded(
            transaction_id="t1",
            account_id="a1",
            transaction_type="expense",
            amount=Decimal("30"),
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSACTION_RECORDED
        assert event.entity_id == "t1"
        assert event.correlation_id == correlation_id
        assert event.details["amount"] == "30"

    def test_audit_event_builder_compensation_failed_is_critical(self):
        """Test AuditEventBuilder.compensation_failed."""
        event = AuditEventBuilder.compensation_failed(
            account_id="a1",
            reason="transaction insert failed",
            error_message="sheet unavailable",
            correlation_id=uuid4(),
        )

        assert event.event_type == AuditEventType.COMPENSATION_FAILED
        assert event.severity == AuditSeverity.CRITICAL
        assert event.entity_type == "account"


class TestEnums:
    """Tests for ledger enums."""

    def test_transaction_type_values(self):
        """Test transaction type string values."""
        assert TransactionType.INCOME.value == "income"
        assert TransactionType.EXPENSE.value == "expense"

    def test_error_codes_exist(self):
        """Test that the full error taxonomy exists."""
        expected = [
            "validation_error", "insufficient_funds", "not_found",
            "invalid_state", "store_unavailable",
        ]
        for code in expected:
            assert ErrorCode(code) is not None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
