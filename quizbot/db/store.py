"""Durable document collections with per-collection write serialization.

Every collection (users, channels, tests, results, admins) is one JSON document.
Writes replace the whole document atomically: JSON files are written to a temp
file and swapped in with ``os.replace``; SQL storage replaces the row inside a
single transaction. Writes to the same collection run one at a time in the order
they were submitted; different collections never wait on each other.
"""
import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, Protocol, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from quizbot.db.models import COLLECTIONS, Base, CollectionRow, default_document
from quizbot.errors import PersistenceFailure

T = TypeVar("T")


class Backend(Protocol):
    def load(self, collection: str) -> Optional[str]: ...

    def save(self, collection: str, payload: str) -> None: ...


class JsonFileBackend:
    """One ``<collection>.json`` file per collection inside ``data_dir``."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    def path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def load(self, collection: str) -> Optional[str]:
        try:
            return self.path(collection).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def save(self, collection: str, payload: str) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.data_dir, prefix=f".{collection}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path(collection))
        except BaseException:
            # the live file is untouched, only the temp copy goes
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class SqlBackend:
    """Collections stored as rows of the ``collections`` table."""

    def __init__(self, url: str) -> None:
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine = create_engine(url, echo=False, connect_args=connect_args)
        self.SessionLocal = sessionmaker(bind=self.engine)
        Base.metadata.create_all(self.engine)

    def load(self, collection: str) -> Optional[str]:
        with self.SessionLocal() as session:
            row = session.get(CollectionRow, collection)
            return row.payload if row else None

    def save(self, collection: str, payload: str) -> None:
        with self.SessionLocal() as session:
            session.merge(CollectionRow(name=collection, payload=payload))
            session.commit()


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise KeyError(f"Unknown collection: {collection}")


def _decode(collection: str, raw: Optional[str]) -> dict:
    """Parse a stored document, falling back to the empty default."""
    if raw is None:
        return default_document(collection)
    try:
        data = json.loads(raw)
    except ValueError:
        logging.warning(f"Collection '{collection}' is corrupt, using empty default")
        return default_document(collection)
    if not isinstance(data, dict) or not isinstance(data.get(collection), list):
        logging.warning(f"Collection '{collection}' has unexpected shape, using empty default")
        return default_document(collection)
    return data


class DocumentStore:
    """Async facade over a backend; callers never see the locks."""

    def __init__(self, backend: Backend) -> None:
        self.backend = backend
        self._locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(cls, data_dir: Path, storage_url: Optional[str] = None) -> "DocumentStore":
        if storage_url:
            return cls(SqlBackend(storage_url))
        return cls(JsonFileBackend(data_dir))

    def _lock(self, collection: str) -> asyncio.Lock:
        _check_collection(collection)
        return self._locks.setdefault(collection, asyncio.Lock())

    async def ensure_collections(self) -> None:
        """Create every missing collection with its empty default."""
        for collection in COLLECTIONS:
            async with self._lock(collection):
                raw = await self._load(collection)
                if raw is None:
                    await self._save(collection, default_document(collection))

    async def read(self, collection: str) -> dict:
        _check_collection(collection)
        return _decode(collection, await self._load(collection))

    async def write(self, collection: str, data: dict) -> None:
        async with self._lock(collection):
            await self._save(collection, data)

    async def update(self, collection: str, mutate: Callable[[dict], T]) -> T:
        """Read, mutate in place and write back while holding the collection lock.

        Whatever ``mutate`` raises propagates and nothing is written.
        """
        async with self._lock(collection):
            data = _decode(collection, await self._load(collection))
            outcome = mutate(data)
            await self._save(collection, data)
            return outcome

    async def _load(self, collection: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self.backend.load, collection)
        except (OSError, SQLAlchemyError) as e:
            logging.error(f"Failed to read collection '{collection}': {e}")
            raise PersistenceFailure(f"read {collection}") from e

    async def _save(self, collection: str, data: dict) -> None:
        payload = json.dumps(data, ensure_ascii=False, indent=2)
        try:
            await asyncio.to_thread(self.backend.save, collection, payload)
        except (OSError, SQLAlchemyError) as e:
            logging.error(f"Failed to write collection '{collection}': {e}")
            raise PersistenceFailure(f"write {collection}") from e
