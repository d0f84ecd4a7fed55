from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

import aiosqlite

from ..errors import StorageError
from .cache import TTLCache

T = TypeVar("T")
log = logging.getLogger("guildvault.base_service")


class BaseService(ABC, Generic[T]):
    """Base class for SQLite-backed stores with a read cache."""

    def __init__(self, sqlite_path: str, cache_ttl_seconds: int = 120) -> None:
        self._path = sqlite_path
        self._cache: TTLCache[str, T] = TTLCache(default_ttl_seconds=cache_ttl_seconds)
        self._logger = logging.getLogger(f"guildvault.{self.__class__.__name__.lower()}")

    async def init(self) -> None:
        """Create the schema. Safe to call more than once."""
        try:
            async with aiosqlite.connect(self._path) as db:
                await db.execute("PRAGMA journal_mode=WAL")
                await db.execute("PRAGMA synchronous=NORMAL")
                await self._create_tables(db)
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot initialize {self._path}: {e}") from e
        self._logger.info(f"Initialized {self.__class__.__name__} at {self._path}")

    @abstractmethod
    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        """Create the necessary database tables."""

    @abstractmethod
    def _from_row(self, row: aiosqlite.Row) -> T:
        """Convert a database row to the service's data type."""

    @property
    @abstractmethod
    def _get_query(self) -> str:
        """SQL query for getting one record by key."""

    async def get(self, key: str) -> Optional[T]:
        """Cached record for ``key``, reading through to the database."""
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            async with aiosqlite.connect(self._path) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(self._get_query, (key,)) as cur:
                    row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot read {key}: {e}") from e
        if row is None:
            return None

        data = self._from_row(row)
        self._cache.set(key, data)
        return data
