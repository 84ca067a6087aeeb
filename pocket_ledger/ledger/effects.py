"""
Pure ledger arithmetic.

Accounts only store sums, so an edit cannot be diffed directly: its old
contribution is reverted (negated effect) and the new one applied. Record,
amend, remove and reconcile all go through these two functions.
"""

from decimal import Decimal
from typing import Iterable

from pocket_ledger.models.ledger import (
    Account,
    LedgerEffect,
    Transaction,
    TransactionType,
)


def effect_of(transaction_type: TransactionType, amount: Decimal) -> LedgerEffect:
    """
    The change a transaction makes to its account.

    income  -> balance +amount, total_income +amount
    expense -> balance -amount, total_expense +amount
    """
    if transaction_type == TransactionType.INCOME:
        return LedgerEffect(amount_delta=amount, income_delta=amount)
    return LedgerEffect(amount_delta=-amount, expense_delta=amount)


def transaction_effect(transaction: Transaction) -> LedgerEffect:
    return effect_of(transaction.type, transaction.amount)


def apply_effect(account: Account, effect: LedgerEffect) -> Account:
    """Return a copy of the account with the effect added; version is kept."""
    return account.model_copy(update={
        "amount": account.amount + effect.amount_delta,
        "total_income": account.total_income + effect.income_delta,
        "total_expense": account.total_expense + effect.expense_delta,
    })


def sum_effects(transactions: Iterable[Transaction]) -> LedgerEffect:
    """Total effect of a set of transactions, as applied to a zeroed account."""
    total = LedgerEffect()
    for transaction in transactions:
        total = total + transaction_effect(transaction)
    return total
