"""
Tests for the pure ledger arithmetic.
"""

from decimal import Decimal

from pocket_ledger.ledger import apply_effect, effect_of, sum_effects, transaction_effect
from pocket_ledger.models import Account, LedgerEffect, Transaction, TransactionType


def make_transaction(kind: str, amount: str) -> Transaction:
    return Transaction(id=f"t-{kind}-{amount}", type=kind, amount=Decimal(amount), account_id="a1")


class TestEffectOf:
    """Tests for effect_of."""

    def test_income(self):
        effect = effect_of(TransactionType.INCOME, Decimal("40"))
        assert effect == LedgerEffect(amount_delta=Decimal("40"), income_delta=Decimal("40"))

    def test_expense(self):
        effect = effect_of(TransactionType.EXPENSE, Decimal("40"))
        assert effect == LedgerEffect(amount_delta=Decimal("-40"), expense_delta=Decimal("40"))

    def test_revert_cancels_effect(self):
        effect = effect_of(TransactionType.EXPENSE, Decimal("12.34"))
        assert (effect + (-effect)).is_zero

    def test_combined_edit_is_difference(self):
        """Expense 30 edited to 50 on the same account is one -20 delta."""
        old = effect_of(TransactionType.EXPENSE, Decimal("30"))
        new = effect_of(TransactionType.EXPENSE, Decimal("50"))

        combined = new + (-old)

        assert combined.amount_delta == Decimal("-20")
        assert combined.expense_delta == Decimal("20")
        assert combined.income_delta == Decimal("0")


class TestApplyEffect:
    """Tests for apply_effect."""

    def test_returns_adjusted_copy(self):
        account = Account(id="a1", name="Wallet", amount=Decimal("100"), total_income=Decimal("100"), version=4)

        adjusted = apply_effect(account, effect_of(TransactionType.EXPENSE, Decimal("30")))

        assert adjusted.aggregates == (Decimal("70"), Decimal("100"), Decimal("30"))
        assert adjusted.version == 4
        assert account.amount == Decimal("100")


class TestSumEffects:
    """Tests for sum_effects."""

    def test_sum_matches_income_minus_expense(self):
        transactions = [
            make_transaction("income", "100"),
            make_transaction("expense", "30"),
            make_transaction("expense", "20.50"),
        ]

        total = sum_effects(transactions)

        assert total.amount_delta == Decimal("49.50")
        assert total.income_delta == Decimal("100")
        assert total.expense_delta == Decimal("50.50")
        assert total == sum((transaction_effect(t) for t in transactions), LedgerEffect())

    def test_empty(self):
        assert sum_effects([]).is_zero
