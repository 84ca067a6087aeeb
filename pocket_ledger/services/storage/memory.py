"""
In-Memory Storage Implementation

Process-local backend used by tests and for running the ledger without any
external service. It honours the same contract as the Google Sheets backend,
including version checks, so ledger behaviour is identical on both.

Records are deep-copied on the way in and out; callers never share state
with the store.
"""

import copy
from typing import Any, Optional
from uuid import UUID, uuid4

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
)


class InMemoryRecordStore(RecordStoreInterface):
    """Dict-of-dicts record store."""

    def __init__(self):
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        return self._tables.setdefault(table, {})

    async def get(self, table: str, record_id: str) -> dict[str, Any]:
        try:
            return copy.deepcopy(self._table(table)[record_id])
        except KeyError:
            raise NotFoundError(f"{table} record not found: {record_id}")

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        rows = self._table(table)
        stored = copy.deepcopy(record)
        record_id = stored.get("id") or str(uuid4())
        if record_id in rows:
            raise DuplicateError(f"{table} record already exists: {record_id}")
        stored["id"] = record_id
        rows[record_id] = stored
        return copy.deepcopy(stored)

    async def update(
        self,
        table: str,
        record_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        rows = self._table(table)
        if record_id not in rows:
            raise NotFoundError(f"{table} record not found: {record_id}")

        current = rows[record_id]
        updated = {**current, **copy.deepcopy(fields), "id": record_id}
        if expected_version is not None:
            stored_version = int(current.get("version") or 0)
            if stored_version != expected_version:
                raise ConflictError(
                    f"{table} record {record_id} is at version {stored_version}, "
                    f"expected {expected_version}"
                )
            updated["version"] = stored_version + 1

        rows[record_id] = updated
        return copy.deepcopy(updated)

    async def delete(self, table: str, record_id: str) -> None:
        try:
            del self._table(table)[record_id]
        except KeyError:
            raise NotFoundError(f"{table} record not found: {record_id}")

    async def query(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        filters = filters or {}
        matches = [
            record
            for record in self._table(table).values()
            if all(record.get(field) == value for field, value in filters.items())
        ]

        if order_by:
            matches.sort(key=lambda r: (r.get(order_by) is None, r.get(order_by) or ""), reverse=descending)

        if limit is not None:
            matches = matches[:limit]

        return copy.deepcopy(matches)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
