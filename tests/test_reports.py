"""
Tests for the statistics reporter.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from pocket_ledger.models import ErrorCode, StatsReport
from pocket_ledger.reports import StatsReporter
from pocket_ledger.services.storage import StorageError


TODAY = date(2025, 3, 12)  # a Wednesday


def at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def reporter(transactions):
    return StatsReporter(transactions)


@pytest.fixture
def history(accounts, engine):
    """A year and a bit of activity for user-1, plus one transaction of user-2."""
    async def create():
        account = await accounts.create("Wallet", user_id="user-1")
        entries = [
            ("income", "30", at(2024, 2, 10)),
            ("income", "50", at(2025, 1, 15)),
            ("income", "7", at(2025, 3, 6, hour=0)),
            ("income", "100", at(2025, 3, 12)),
            ("expense", "5", at(2025, 3, 1)),
            ("expense", "20", at(2025, 3, 10)),
        ]
        for kind, amount, when in entries:
            result = await engine.record({
                "type": kind,
                "amount": amount,
                "account_id": account.id,
                "date": when,
                "user_id": "user-1",
            })
            assert result.success, result.msg

        stranger = await accounts.create("Other", user_id="user-2")
        await engine.record({
            "type": "income",
            "amount": "999",
            "account_id": stranger.id,
            "date": at(2025, 3, 11),
            "user_id": "user-2",
        })

    return create


def by_label(report: StatsReport) -> dict:
    return {b.label: (b.income, b.expense) for b in report.buckets}


class TestWeekly:
    """Tests for the seven day report."""

    @pytest.mark.asyncio
    async def test_daily_buckets(self, reporter, history):
        await history()

        result = await reporter.weekly("user-1", today=TODAY)

        report = result.data
        assert result.success
        assert report.period == "weekly"
        assert [b.label for b in report.buckets] == ["Thu", "Fri", "Sat", "Sun", "Mon", "Tue", "Wed"]
        assert by_label(report)["Thu"] == (Decimal("7"), Decimal("0"))
        assert by_label(report)["Mon"] == (Decimal("0"), Decimal("20"))
        assert by_label(report)["Wed"] == (Decimal("100"), Decimal("0"))

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self, reporter, history):
        await history()

        report = (await reporter.weekly("user-1", today=TODAY)).data

        assert [t.amount for t in report.transactions] == [Decimal("100"), Decimal("20"), Decimal("7")]
        assert all(t.user_id == "user-1" for t in report.transactions)

    @pytest.mark.asyncio
    async def test_empty_week(self, reporter):
        report = (await reporter.weekly("nobody", today=TODAY)).data

        assert len(report.buckets) == 7
        assert report.total_income == Decimal("0")
        assert report.transactions == []


class TestMonthly:
    """Tests for the twelve month report."""

    @pytest.mark.asyncio
    async def test_monthly_buckets(self, reporter, history):
        await history()

        report = (await reporter.monthly("user-1", today=TODAY)).data

        labels = [b.label for b in report.buckets]
        assert len(labels) == 12
        assert labels[0] == "Apr 24"
        assert labels[-1] == "Mar 25"
        assert by_label(report)["Jan 25"] == (Decimal("50"), Decimal("0"))
        assert by_label(report)["Mar 25"] == (Decimal("107"), Decimal("25"))
        assert report.total_income == Decimal("157")
        assert report.total_expense == Decimal("25")

    @pytest.mark.asyncio
    async def test_older_transactions_are_left_out(self, reporter, history):
        await history()

        report = (await reporter.monthly("user-1", today=TODAY)).data

        assert Decimal("30") not in [t.amount for t in report.transactions]


class TestYearly:
    """Tests for the per-year report."""

    @pytest.mark.asyncio
    async def test_years_since_first_transaction(self, reporter, history):
        await history()

        report = (await reporter.yearly("user-1", today=TODAY)).data

        assert by_label(report) == {
            "2024": (Decimal("30"), Decimal("0")),
            "2025": (Decimal("157"), Decimal("25")),
        }
        assert report.buckets[-1].net == Decimal("132")

    @pytest.mark.asyncio
    async def test_offset_date_lands_in_its_utc_year(self, reporter, accounts, engine):
        """01:00 on New Year's Day at +05:00 is still 2019 in UTC."""
        account = await accounts.create("Wallet", user_id="user-1")
        result = await engine.record({
            "type": "income",
            "amount": "40",
            "account_id": account.id,
            "date": "2020-01-01T01:00:00+05:00",
            "user_id": "user-1",
        })
        assert result.success, result.msg

        report = (await reporter.yearly("user-1", today=date(2021, 6, 1))).data

        assert [b.label for b in report.buckets] == ["2019", "2020", "2021"]
        assert by_label(report)["2019"] == (Decimal("40"), Decimal("0"))
        assert report.total_income == Decimal("40")

    @pytest.mark.asyncio
    async def test_no_history_gives_current_year(self, reporter):
        report = (await reporter.yearly("nobody", today=TODAY)).data

        assert [b.label for b in report.buckets] == ["2025"]


class TestFailures:
    """Tests for store failures while reporting."""

    @pytest.mark.asyncio
    async def test_store_failure_is_reported(self):
        transactions = MagicMock()
        transactions.list_for_user = AsyncMock(side_effect=StorageError("sheet unavailable"))
        reporter = StatsReporter(transactions)

        result = await reporter.monthly("user-1", today=TODAY)

        assert not result.success
        assert result.error_code == ErrorCode.STORE_UNAVAILABLE
