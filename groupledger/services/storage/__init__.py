"""
Storage Services Package

Provides the abstract document store interface, its backends, and the
typed repositories the flows use.
"""

from groupledger.services.storage.interface import (
    AuditStorageInterface,
    DocumentStoreInterface,
    DuplicateError,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from groupledger.services.storage.json_file import JsonFileDocumentStore
from groupledger.services.storage.memory import InMemoryDocumentStore
from groupledger.services.storage.repositories import (
    DocumentAuditStorage,
    EventRepository,
    TransactionRepository,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DocumentStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Backends
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
    # Repositories
    "DocumentAuditStorage",
    "EventRepository",
    "TransactionRepository",
]
