"""
Typed Account and Transaction Stores

Thin typed layer over a RecordStoreInterface. These are the two leaf stores
the ledger engine works through; they translate between pydantic models and
the JSON-mode dicts the record store keeps.

IMPORTANT: AccountStore.save_aggregates is the only method that writes
amount/total_income/total_expense, and it always sends the version the
caller read. Only the ledger engine calls it.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic_core import to_jsonable_python

from pocket_ledger.models.ledger import (
    Account,
    Transaction,
    TransactionInput,
    utcnow,
)
from pocket_ledger.services.storage.interface import (
    ACCOUNTS_TABLE,
    TRANSACTIONS_TABLE,
    RecordStoreInterface,
)


def to_record(fields: dict[str, Any]) -> dict[str, Any]:
    """JSON-mode copy of fields (Decimal, datetime and enums become strings)."""
    return to_jsonable_python(fields)


# Fields the account manager may change; aggregates are deliberately absent
ACCOUNT_DETAIL_FIELDS = ("name", "image")


class AccountStore:
    """CRUD over account records."""

    def __init__(self, store: RecordStoreInterface):
        self._store = store

    async def get(self, account_id: str) -> Account:
        record = await self._store.get(ACCOUNTS_TABLE, account_id)
        return Account.model_validate(record)

    async def create(
        self,
        name: str,
        user_id: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Account:
        """Insert a new account with zeroed aggregates."""
        now = utcnow()
        record = to_record({
            "name": name,
            "amount": 0,
            "total_income": 0,
            "total_expense": 0,
            "image": image,
            "user_id": user_id,
            "version": 0,
            "created_at": now,
            "updated_at": now,
        })
        stored = await self._store.insert(ACCOUNTS_TABLE, record)
        return Account.model_validate(stored)

    async def save_aggregates(self, account: Account) -> Account:
        """
        Write the account's aggregates, guarded by its version.

        Raises:
            ConflictError: If someone else wrote the account since it was read
        """
        fields = to_record({
            "amount": account.amount,
            "total_income": account.total_income,
            "total_expense": account.total_expense,
            "updated_at": utcnow(),
        })
        stored = await self._store.update(
            ACCOUNTS_TABLE,
            account.id,
            fields,
            expected_version=account.version,
        )
        return Account.model_validate(stored)

    async def update_details(self, account_id: str, fields: dict[str, Any]) -> Account:
        unknown = set(fields) - set(ACCOUNT_DETAIL_FIELDS)
        if unknown:
            raise ValueError(f"Account fields cannot be edited directly: {sorted(unknown)}")
        stored = await self._store.update(
            ACCOUNTS_TABLE,
            account_id,
            to_record({**fields, "updated_at": utcnow()}),
        )
        return Account.model_validate(stored)

    async def delete(self, account_id: str) -> None:
        await self._store.delete(ACCOUNTS_TABLE, account_id)

    async def list_for_user(self, user_id: str) -> list[Account]:
        records = await self._store.query(
            ACCOUNTS_TABLE,
            filters={"user_id": user_id},
            order_by="created_at",
        )
        return [Account.model_validate(r) for r in records]


class TransactionStore:
    """CRUD over transaction records."""

    def __init__(self, store: RecordStoreInterface):
        self._store = store

    async def get(self, transaction_id: str) -> Transaction:
        record = await self._store.get(TRANSACTIONS_TABLE, transaction_id)
        return Transaction.model_validate(record)

    async def insert(self, data: TransactionInput) -> Transaction:
        now = utcnow()
        record = to_record({
            **data.model_dump(),
            "created_at": now,
            "updated_at": now,
        })
        stored = await self._store.insert(TRANSACTIONS_TABLE, record)
        return Transaction.model_validate(stored)

    async def update(self, transaction_id: str, fields: dict[str, Any]) -> Transaction:
        stored = await self._store.update(
            TRANSACTIONS_TABLE,
            transaction_id,
            to_record({**fields, "updated_at": utcnow()}),
        )
        return Transaction.model_validate(stored)

    async def delete(self, transaction_id: str) -> None:
        await self._store.delete(TRANSACTIONS_TABLE, transaction_id)

    async def list_for_account(self, account_id: str) -> list[Transaction]:
        records = await self._store.query(
            TRANSACTIONS_TABLE,
            filters={"account_id": account_id},
            order_by="date",
            descending=True,
        )
        return [Transaction.model_validate(r) for r in records]

    async def list_for_user(
        self,
        user_id: str,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Transaction]:
        """Transactions of a user, newest first, optionally within [date_from, date_to]."""
        records = await self._store.query(
            TRANSACTIONS_TABLE,
            filters={"user_id": user_id},
            order_by="date",
            descending=True,
        )
        transactions = [Transaction.model_validate(r) for r in records]

        # Range filtering happens here: the store only does equality filters
        if date_from is not None:
            transactions = [t for t in transactions if t.date >= date_from]
        if date_to is not None:
            transactions = [t for t in transactions if t.date <= date_to]
        return transactions
