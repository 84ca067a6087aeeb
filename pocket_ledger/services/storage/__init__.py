"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests and
local use. Both are swappable behind RecordStoreInterface.
"""

from pocket_ledger.services.storage.interface import (
    ACCOUNTS_TABLE,
    TRANSACTIONS_TABLE,
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
    StoreConnectionError,
)
from pocket_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)
from pocket_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
)
from pocket_ledger.services.storage.repositories import (
    AccountStore,
    TransactionStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordStoreInterface",
    "ACCOUNTS_TABLE",
    "TRANSACTIONS_TABLE",
    # Exceptions
    "ConflictError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    # Typed stores
    "AccountStore",
    "TransactionStore",
]
