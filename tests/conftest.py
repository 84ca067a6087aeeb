"""
Shared fixtures.

Everything runs against the in-memory store; no network services are touched.
"""

from decimal import Decimal

import pytest

from pocket_ledger.audit import AuditLogger
from pocket_ledger.config import LedgerSettings
from pocket_ledger.ledger import AccountManager, LedgerEngine
from pocket_ledger.services.storage import (
    AccountStore,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    TransactionStore,
)


@pytest.fixture
def ledger_settings():
    return LedgerSettings(
        max_conflict_retries=3,
        conflict_backoff_seconds=0,
        compensate_on_failure=True,
    )


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def accounts(store):
    return AccountStore(store)


@pytest.fixture
def transactions(store):
    return TransactionStore(store)


@pytest.fixture
def engine(accounts, transactions, audit_logger, ledger_settings):
    return LedgerEngine(
        accounts,
        transactions,
        audit_logger=audit_logger,
        settings=ledger_settings,
    )


@pytest.fixture
def manager(accounts, transactions, audit_logger, ledger_settings):
    return AccountManager(
        accounts,
        transactions,
        audit_logger=audit_logger,
        settings=ledger_settings,
    )


@pytest.fixture
def funded_account(accounts, engine):
    """
    Factory: create an account and fund it with one income transaction.

    Usage:
        account = await funded_account("Wallet", "100")
    """
    async def create(name: str = "Wallet", income: str = "0", user_id: str = "user-1"):
        account = await accounts.create(name, user_id=user_id)
        if Decimal(income) > 0:
            result = await engine.record({
                "type": "income",
                "amount": income,
                "account_id": account.id,
                "user_id": user_id,
                "description": "Opening deposit",
            })
            assert result.success, result.msg
        return await accounts.get(account.id)

    return create
