"""
Statistics Reporter

Buckets a user's transactions into income and expense totals per day, month
or year.

DESIGN DECISION: Reporting is read-only and works from the transactions
themselves, never from the cached account aggregates, so a report is correct
even for an account that still needs a reconcile.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

import structlog

from pocket_ledger.models.ledger import (
    ErrorCode,
    LedgerResult,
    PeriodTotals,
    StatsReport,
    Transaction,
    TransactionType,
)
from pocket_ledger.services.storage import StorageError, TransactionStore


logger = structlog.get_logger(__name__)


def _start_of(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _end_of(day: date) -> datetime:
    return datetime.combine(day, time.max, tzinfo=timezone.utc)


def _shift_months(day: date, months: int) -> date:
    """First day of the month `months` away from day's month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def _month_label(day: date) -> str:
    return f"{calendar.month_abbr[day.month]} {day.year % 100:02d}"


class StatsReporter:
    """
    Income/expense statistics for a user.

    All three reports return a LedgerResult whose data is a StatsReport with
    buckets in chronological order and transactions newest first.
    """

    def __init__(self, transactions: TransactionStore):
        self._transactions = transactions

    async def weekly(self, user_id: str, today: Optional[date] = None) -> LedgerResult:
        """Seven daily buckets ending today, labelled Mon..Sun."""
        today = today or datetime.now(timezone.utc).date()
        days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
        buckets = {day: PeriodTotals(label=calendar.day_abbr[day.weekday()]) for day in days}

        return await self._report(
            "weekly",
            user_id,
            buckets,
            key=lambda t: t.date.astimezone(timezone.utc).date(),
            date_from=_start_of(days[0]),
            date_to=_end_of(today),
        )

    async def monthly(self, user_id: str, today: Optional[date] = None) -> LedgerResult:
        """Twelve monthly buckets ending with today's month, labelled "Jan 25"."""
        today = today or datetime.now(timezone.utc).date()
        months = [_shift_months(today, -offset) for offset in range(11, -1, -1)]
        buckets = {month: PeriodTotals(label=_month_label(month)) for month in months}

        return await self._report(
            "monthly",
            user_id,
            buckets,
            key=lambda t: t.date.astimezone(timezone.utc).date().replace(day=1),
            date_from=_start_of(months[0]),
            date_to=_end_of(today),
        )

    async def yearly(self, user_id: str, today: Optional[date] = None) -> LedgerResult:
        """One bucket per year, from the user's first transaction to today."""
        today = today or datetime.now(timezone.utc).date()
        try:
            transactions = await self._transactions.list_for_user(user_id, date_to=_end_of(today))
        except StorageError as e:
            return self._failed("yearly", user_id, e)

        first_year = min((t.date.astimezone(timezone.utc).year for t in transactions), default=today.year)
        buckets = {
            year: PeriodTotals(label=str(year))
            for year in range(first_year, today.year + 1)
        }
        return LedgerResult.ok(
            self._fill(
                "yearly",
                buckets,
                transactions,
                key=lambda t: t.date.astimezone(timezone.utc).year,
            )
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _report(
        self,
        period: str,
        user_id: str,
        buckets: dict,
        key: Callable[[Transaction], object],
        date_from: datetime,
        date_to: datetime,
    ) -> LedgerResult:
        try:
            transactions = await self._transactions.list_for_user(
                user_id,
                date_from=date_from,
                date_to=date_to,
            )
        except StorageError as e:
            return self._failed(period, user_id, e)

        return LedgerResult.ok(self._fill(period, buckets, transactions, key))

    @staticmethod
    def _fill(
        period: str,
        buckets: dict,
        transactions: list[Transaction],
        key: Callable[[Transaction], object],
    ) -> StatsReport:
        for transaction in transactions:
            bucket = buckets.get(key(transaction))
            if bucket is None:
                continue
            if transaction.type == TransactionType.INCOME:
                bucket.income += transaction.amount
            else:
                bucket.expense += transaction.amount

        return StatsReport(
            period=period,
            buckets=list(buckets.values()),
            transactions=transactions,
        )

    @staticmethod
    def _failed(period: str, user_id: str, error: StorageError) -> LedgerResult:
        logger.error("stats_query_failed", period=period, user_id=user_id, error=str(error))
        return LedgerResult.fail(ErrorCode.STORE_UNAVAILABLE, f"Failed to fetch {period} stats: {error}")
