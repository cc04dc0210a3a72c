"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON object on disk, one entry per key.
Good enough for a single-user install; the whole file is rewritten on
every put.

TRADEOFFS:
- Not suitable for concurrent writers from several processes
- Every write rewrites the file (we're fine for personal use)
- Writes go through a temporary file and an atomic rename, so a crash
  never leaves a half-written document behind
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from groupledger.services.storage.interface import (
    DocumentStoreInterface,
    StorageConnectionError,
    StorageError,
)


class JsonFileDocumentStore(DocumentStoreInterface):
    """Document store backed by one JSON file."""

    def __init__(self, path: str):
        self._path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        """Load the whole file. A missing file is an empty store."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise StorageError(f"Ledger data file is corrupt: {self._path}: {e}")
        except OSError as e:
            raise StorageConnectionError(f"Cannot read {self._path}: {e}")

        if not isinstance(data, dict):
            raise StorageError(f"Ledger data file is not a JSON object: {self._path}")
        return {str(k): str(v) for k, v in data.items()}

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        reraise=True,
    )
    def _write_all(self, documents: dict[str, str]) -> None:
        """Atomically replace the file contents."""
        directory = self._path.parent
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".ledger-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(documents, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def _save(self, documents: dict[str, str]) -> None:
        try:
            await asyncio.to_thread(self._write_all, documents)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            documents = await asyncio.to_thread(self._read_all)
            return documents.get(key)

    async def put(self, key: str, value: str) -> None:
        async with self._lock:
            documents = await asyncio.to_thread(self._read_all)
            documents[key] = value
            await self._save(documents)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            documents = await asyncio.to_thread(self._read_all)
            if key not in documents:
                return False
            del documents[key]
            await self._save(documents)
            return True

    async def keys(self) -> list[str]:
        async with self._lock:
            documents = await asyncio.to_thread(self._read_all)
            return list(documents)
