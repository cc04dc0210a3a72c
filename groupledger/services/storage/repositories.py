"""
Typed repositories on top of the document store.

Each repository keeps one JSON list under one key, newest entry first,
the same layout the browser app kept in localStorage:
- `group-events`: list of GroupEvent
- `personal-expenses`: list of Transaction
- `audit-log`: list of AuditEvent (append-only, capped)

Entries that no longer parse are hidden from readers but kept: they are
written back byte-for-byte whenever the list is saved, and reported once
per repository through the audit logger.

Every read-modify-write of a list runs under the repository's lock, so
concurrent flows sharing a repository never lose each other's updates.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncIterator, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from groupledger.models.audit import AuditEvent
from groupledger.models.event import GroupEvent
from groupledger.models.personal import Transaction
from groupledger.services.storage.interface import (
    AuditStorageInterface,
    DocumentStoreInterface,
    DuplicateError,
    NotFoundError,
    StorageError,
)

if TYPE_CHECKING:
    from groupledger.audit import AuditLogger


ModelT = TypeVar("ModelT", bound=BaseModel)


class UnreadableEntry:
    """A stored entry that no longer validates. Saved back untouched."""

    def __init__(self, raw: Any, error: ValidationError):
        self.raw = raw
        self.error = error

    @property
    def id(self) -> Optional[str]:
        if isinstance(self.raw, dict) and self.raw.get("id") is not None:
            return str(self.raw["id"])
        return None

    @property
    def fingerprint(self) -> str:
        return json.dumps(self.raw, sort_keys=True, default=str)

    @property
    def reason(self) -> str:
        first = self.error.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        return f"{where}: {first['msg']}" if where else first["msg"]


class _ListDocument:
    """A JSON list of models stored under a single key."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        key: str,
        model: type[ModelT],
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._store = store
        self._key = key
        self._model = model
        self._audit_logger = audit_logger
        self._reported: set[str] = set()

    async def load_entries(self) -> list:
        """Models and UnreadableEntry placeholders, in stored order."""
        raw = await self._store.get(self._key)
        if not raw:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Document '{self._key}' is not valid JSON: {e}")
        if not isinstance(data, list):
            raise StorageError(f"Document '{self._key}' is not a list")

        entries = []
        unreadable = []
        for entry in data:
            try:
                entries.append(self._model.model_validate(entry))
            except ValidationError as e:
                placeholder = UnreadableEntry(entry, e)
                entries.append(placeholder)
                unreadable.append(placeholder)

        if unreadable:
            await self._report(unreadable)
        return entries

    async def _report(self, unreadable: list[UnreadableEntry]) -> None:
        new = [e for e in unreadable if e.fingerprint not in self._reported]
        if not new:
            return
        self._reported.update(e.fingerprint for e in new)
        if self._audit_logger:
            await self._audit_logger.log_unreadable_entries(
                document_key=self._key,
                entry_ids=[e.id for e in new],
                reasons=[e.reason for e in new],
            )

    async def load(self) -> list:
        return [e for e in await self.load_entries() if not isinstance(e, UnreadableEntry)]

    async def save(self, entries: list) -> None:
        payload = json.dumps(
            [
                e.raw if isinstance(e, UnreadableEntry) else e.model_dump(mode="json")
                for e in entries
            ],
            ensure_ascii=False,
        )
        await self._store.put(self._key, payload)


class EventRepository:
    """Stores group events."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        key: str = "group-events",
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._doc = _ListDocument(store, key, GroupEvent, audit_logger)
        self._lock = asyncio.Lock()

    async def list_events(self) -> list[GroupEvent]:
        """All readable events, newest first."""
        return await self._doc.load()

    async def get_event(self, event_id: str) -> Optional[GroupEvent]:
        for event in await self._doc.load():
            if event.id == event_id:
                return event
        return None

    async def save_event(self, event: GroupEvent) -> None:
        """Insert a new event at the front, or replace an existing one in place."""
        async with self._lock:
            entries = await self._doc.load_entries()
            for idx, existing in enumerate(entries):
                if existing.id == event.id:
                    entries[idx] = event
                    break
            else:
                entries.insert(0, event)
            await self._doc.save(entries)

    @asynccontextmanager
    async def editing(self, event_id: str) -> AsyncIterator[GroupEvent]:
        """
        Load one event for a read-modify-write under the repository lock.

        The event is written back when the block exits normally and the
        event changed. An exception inside the block discards the change.

        Raises:
            NotFoundError: If no readable event has this id
        """
        async with self._lock:
            entries = await self._doc.load_entries()
            for idx, entry in enumerate(entries):
                if isinstance(entry, GroupEvent) and entry.id == event_id:
                    break
            else:
                raise NotFoundError(f"Event not found: {event_id}")

            event = entries[idx]
            before = event.model_copy(deep=True)
            yield event
            if event != before:
                entries[idx] = event
                await self._doc.save(entries)

    async def delete_event(self, event_id: str) -> bool:
        async with self._lock:
            entries = await self._doc.load_entries()
            remaining = [e for e in entries if e.id != event_id]
            if len(remaining) == len(entries):
                return False
            await self._doc.save(remaining)
            return True


class TransactionRepository:
    """Stores personal tracker transactions."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        key: str = "personal-expenses",
        audit_logger: Optional["AuditLogger"] = None,
    ):
        self._doc = _ListDocument(store, key, Transaction, audit_logger)
        self._lock = asyncio.Lock()

    async def list_transactions(self) -> list[Transaction]:
        """All readable transactions, newest entry first."""
        return await self._doc.load()

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for transaction in await self._doc.load():
            if transaction.id == transaction_id:
                return transaction
        return None

    async def add_transaction(self, transaction: Transaction) -> None:
        """
        Raises:
            DuplicateError: If a transaction with the same id exists
        """
        async with self._lock:
            entries = await self._doc.load_entries()
            if any(e.id == transaction.id for e in entries):
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            entries.insert(0, transaction)
            await self._doc.save(entries)

    async def update_transaction(self, transaction: Transaction) -> None:
        """
        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        async with self._lock:
            entries = await self._doc.load_entries()
            for idx, existing in enumerate(entries):
                if isinstance(existing, Transaction) and existing.id == transaction.id:
                    entries[idx] = transaction
                    await self._doc.save(entries)
                    return
            raise NotFoundError(f"Transaction not found: {transaction.id}")

    async def delete_transaction(self, transaction_id: str) -> bool:
        async with self._lock:
            entries = await self._doc.load_entries()
            remaining = [e for e in entries if e.id != transaction_id]
            if len(remaining) == len(entries):
                return False
            await self._doc.save(remaining)
            return True


class DocumentAuditStorage(AuditStorageInterface):
    """
    Audit log kept as a list in the document store.

    Append-only from the caller's side. When `max_entries` is set the
    oldest entries are rotated out so the document stays bounded.
    """

    def __init__(
        self,
        store: DocumentStoreInterface,
        key: str = "audit-log",
        max_entries: Optional[int] = None,
    ):
        self._doc = _ListDocument(store, key, AuditEvent)
        self._max_entries = max_entries
        self._lock = asyncio.Lock()

    async def append_event(self, event: AuditEvent) -> bool:
        async with self._lock:
            entries = await self._doc.load_entries()
            entries.append(event)
            if self._max_entries and len(entries) > self._max_entries:
                entries = entries[-self._max_entries:]
            await self._doc.save(entries)
            return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in await self._doc.load() if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in await self._doc.load()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = await self._doc.load()
        return list(reversed(events))[:limit]
