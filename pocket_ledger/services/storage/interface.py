"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from storage implementation

The interface mirrors what a remote document/relational store offers a
client with no multi-statement transactions: single-record reads and writes
keyed by id, plus a filtered read for reporting. Consistency across records
is the ledger engine's job, not the store's.

Records are plain dicts in JSON representation (strings for decimals and
timestamps). The only concurrency primitive is the optional
expected_version check on update.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from pocket_ledger.models.audit import AuditEvent


ACCOUNTS_TABLE = "accounts"
TRANSACTIONS_TABLE = "transactions"


class RecordStoreInterface(ABC):
    """
    Abstract interface for record-level storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get(self, table: str, record_id: str) -> dict[str, Any]:
        """
        Retrieve a record by id.

        Raises:
            NotFoundError: If no record has this id
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new record.

        An id is assigned when the record has none.

        Returns:
            The stored record, including its id

        Raises:
            DuplicateError: If the id is already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Merge fields into an existing record.

        Args:
            table: Table name
            record_id: Record to update
            fields: Partial fields to overwrite
            expected_version: When given, the write only succeeds if the
                stored "version" equals it; the stored version is then
                incremented.

        Returns:
            The full record after the update

        Raises:
            NotFoundError: If the record doesn't exist
            ConflictError: If expected_version doesn't match
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, table: str, record_id: str) -> None:
        """
        Delete a record by id.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def query(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        List records matching equality filters.

        Args:
            table: Table name
            filters: field -> value, all must match
            order_by: Field to sort on
            descending: Sort direction
            limit: Maximum number of results

        Returns:
            List of matching records
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one amend operation).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConflictError(StorageError):
    """A versioned write lost a race with another writer."""
    pass


class StoreConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
