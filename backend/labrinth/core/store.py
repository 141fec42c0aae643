"""
Flat-file JSON store.

Each document (users, categories, posts, replies) is a JSON array read and
written wholesale. Mutations go through a per-document asyncio.Lock so
concurrent requests cannot interleave a read-modify-write cycle on the same
file.
"""

import asyncio
import os
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import Any

import orjson
from fastapi import Request
from loguru import logger

from labrinth.core.errors import StoreError

Record = dict[str, Any]


class Document(str, Enum):
    """Named documents held by the store."""

    USERS = "users"
    CATEGORIES = "categories"
    POSTS = "posts"
    REPLIES = "replies"


# Lock acquisition order for multi-document transactions
_LOCK_ORDER = list(Document)


class StoreTransaction:
    """
    Documents loaded under lock for one compound operation.

    Mutate the lists returned by records() in place and mark() every
    document that must be written back.
    """

    def __init__(self, documents: dict[Document, list[Record]]) -> None:
        self._documents = documents
        self._dirty: set[Document] = set()

    def records(self, name: Document) -> list[Record]:
        """Get the mutable record list of a loaded document."""
        try:
            return self._documents[name]
        except KeyError:
            raise StoreError(f"Document {name.value} is not part of this transaction") from None

    def replace(self, name: Document, records: list[Record]) -> None:
        """Replace a document's records wholesale and mark it dirty."""
        self.records(name)
        self._documents[name] = records
        self._dirty.add(name)

    def mark(self, name: Document) -> None:
        """Schedule a document for writing on commit."""
        self.records(name)
        self._dirty.add(name)

    @property
    def dirty(self) -> set[Document]:
        return set(self._dirty)


class JsonStore:
    """
    Whole-document JSON persistence.

    Usage:
        store = JsonStore(Path("data"))
        await store.initialize()
        users = await store.read(Document.USERS)

        async with store.transaction(Document.POSTS, Document.CATEGORIES) as tx:
            tx.records(Document.POSTS).append(post)
            tx.mark(Document.POSTS)
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._locks: dict[Document, asyncio.Lock] = {doc: asyncio.Lock() for doc in Document}

    def path_for(self, name: Document) -> Path:
        """Get file path of a document."""
        return self.data_dir / f"{name.value}.json"

    async def initialize(self) -> None:
        """Create data directory and any missing document as an empty array."""
        await asyncio.to_thread(self.data_dir.mkdir, parents=True, exist_ok=True)

        for name in Document:
            path = self.path_for(name)
            if not path.exists():
                await asyncio.to_thread(self._dump, path, [])
                logger.info(f"Created empty document {path}")

    # ==================== Raw I/O ====================

    @staticmethod
    def _load(path: Path) -> list[Record]:
        data = orjson.loads(path.read_bytes())
        if not isinstance(data, list):
            raise ValueError(f"{path} does not hold a JSON array")
        return data

    @staticmethod
    def _dump(path: Path, records: list[Record]) -> None:
        payload = orjson.dumps(records, option=orjson.OPT_INDENT_2)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def _read_file(self, name: Document) -> list[Record]:
        path = self.path_for(name)
        try:
            return await asyncio.to_thread(self._load, path)
        except (OSError, ValueError) as e:
            logger.exception(f"Failed to read document {name.value}")
            raise StoreError() from e

    async def _write_file(self, name: Document, records: list[Record]) -> None:
        path = self.path_for(name)
        try:
            await asyncio.to_thread(self._dump, path, records)
        except (OSError, TypeError, orjson.JSONEncodeError) as e:
            logger.exception(f"Failed to write document {name.value}")
            raise StoreError() from e

    # ==================== Public API ====================

    async def read(self, name: Document) -> list[Record]:
        """
        Read a whole document.

        Writes replace the file atomically, so reads need no lock.
        """
        return await self._read_file(name)

    async def write(self, name: Document, records: list[Record]) -> None:
        """Overwrite a whole document."""
        async with self._locks[name]:
            await self._write_file(name, records)

    @asynccontextmanager
    async def transaction(self, *names: Document) -> AsyncIterator[StoreTransaction]:
        """
        Load documents under lock and write marked ones back on success.

        Documents are written in the order given, so callers list primary
        data first and denormalized counters last. There is no rollback: if
        a later write fails, earlier documents stay written and only the
        remaining ones are stale.
        """
        ordered = sorted(set(names), key=_LOCK_ORDER.index)
        acquired: list[asyncio.Lock] = []
        try:
            for name in ordered:
                lock = self._locks[name]
                await lock.acquire()
                acquired.append(lock)

            documents = {name: await self._read_file(name) for name in ordered}
            tx = StoreTransaction(documents)

            yield tx

            dirty = tx.dirty
            for name in dict.fromkeys(names):
                if name in dirty:
                    await self._write_file(name, tx.records(name))
        finally:
            for lock in reversed(acquired):
                lock.release()


def get_store(request: Request) -> JsonStore:
    """FastAPI dependency returning the application store."""
    return request.app.state.store
