"""In-memory document store, used by tests and as the default backend."""

import asyncio
from typing import Optional

from groupledger.services.storage.interface import DocumentStoreInterface


class InMemoryDocumentStore(DocumentStoreInterface):
    """Keeps documents in a dict. Contents are lost when the process exits."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._documents: dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._documents.get(key)

    async def put(self, key: str, value: str) -> None:
        async with self._lock:
            self._documents[key] = value

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._documents.pop(key, None) is not None

    async def keys(self) -> list[str]:
        async with self._lock:
            return list(self._documents)
