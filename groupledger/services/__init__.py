"""Services package."""

from groupledger.services.storage import (
    AuditStorageInterface,
    DocumentAuditStorage,
    DocumentStoreInterface,
    DuplicateError,
    EventRepository,
    InMemoryDocumentStore,
    JsonFileDocumentStore,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TransactionRepository,
)

__all__ = [
    "AuditStorageInterface",
    "DocumentAuditStorage",
    "DocumentStoreInterface",
    "DuplicateError",
    "EventRepository",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    "TransactionRepository",
]
