from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import List, Optional

import aiosqlite

from ..errors import BackupNotFound, StorageError
from ..models import Document
from .base import BaseService


def new_backup_id() -> str:
    """A fresh backup id. Ids are random and never reused."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class BackupInfo:
    id: str
    guild_id: str
    name: str
    created_at: int  # ms since epoch, from the document
    size_kb: float


class BackupStore(BaseService[Document]):
    """One JSON Document per backup id."""

    def __init__(self, sqlite_path: str, cache_ttl_seconds: int = 120) -> None:
        super().__init__(sqlite_path, cache_ttl_seconds)

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS backups (
                id TEXT PRIMARY KEY,
                guild_id TEXT NOT NULL,
                name TEXT NOT NULL,
                created_at INTEGER NOT NULL,
                payload_json TEXT NOT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_backups_guild ON backups (guild_id, created_at)")

    def _from_row(self, row: aiosqlite.Row) -> Document:
        try:
            return Document.from_dict(json.loads(row["payload_json"]))
        except (ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Backup {row['id']} is corrupt: {e}") from e

    @property
    def _get_query(self) -> str:
        return "SELECT id, payload_json FROM backups WHERE id = ?"

    async def save(self, backup_id: str, document: Document) -> BackupInfo:
        payload_json = json.dumps(document.to_dict(), separators=(",", ":"), ensure_ascii=False)
        try:
            async with aiosqlite.connect(self._path) as db:
                await db.execute(
                    "INSERT INTO backups (id, guild_id, name, created_at, payload_json) VALUES (?, ?, ?, ?, ?)",
                    (backup_id, document.guild_id, document.name, int(document.created_timestamp), payload_json),
                )
                await db.commit()
        except aiosqlite.IntegrityError as e:
            raise StorageError(f"Backup {backup_id} already exists") from e
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot write backup {backup_id}: {e}") from e

        self._cache.set(backup_id, document)
        self._logger.info(f"Saved backup {backup_id} ({document.summary()})")
        return BackupInfo(
            id=backup_id,
            guild_id=document.guild_id,
            name=document.name,
            created_at=int(document.created_timestamp),
            size_kb=round(len(payload_json.encode("utf-8")) / 1024, 2),
        )

    async def load(self, backup_id: str) -> Document:
        document = await self.get(backup_id)
        if document is None:
            raise BackupNotFound(backup_id)
        return document

    async def list_ids(self, guild_id: Optional[str] = None) -> List[str]:
        """Backup ids, newest first, optionally only those captured from ``guild_id``."""
        query = "SELECT id FROM backups"
        params: tuple = ()
        if guild_id is not None:
            query += " WHERE guild_id = ?"
            params = (str(guild_id),)
        query += " ORDER BY created_at DESC, id"
        try:
            async with aiosqlite.connect(self._path) as db:
                async with db.execute(query, params) as cur:
                    rows = await cur.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot list backups: {e}") from e
        return [str(r[0]) for r in rows]

    async def info(self, backup_id: str) -> BackupInfo:
        try:
            async with aiosqlite.connect(self._path) as db:
                async with db.execute(
                    "SELECT id, guild_id, name, created_at, length(CAST(payload_json AS BLOB)) FROM backups WHERE id = ?",
                    (backup_id,),
                ) as cur:
                    row = await cur.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot read backup {backup_id}: {e}") from e
        if row is None:
            raise BackupNotFound(backup_id)
        return BackupInfo(
            id=str(row[0]),
            guild_id=str(row[1]),
            name=str(row[2]),
            created_at=int(row[3]),
            size_kb=round(int(row[4]) / 1024, 2),
        )

    async def delete(self, backup_id: str) -> None:
        try:
            async with aiosqlite.connect(self._path) as db:
                cur = await db.execute("DELETE FROM backups WHERE id = ?", (backup_id,))
                await db.commit()
                deleted = cur.rowcount
        except aiosqlite.Error as e:
            raise StorageError(f"Cannot delete backup {backup_id}: {e}") from e
        self._cache.delete(backup_id)
        if not deleted:
            raise BackupNotFound(backup_id)
        self._logger.info(f"Deleted backup {backup_id}")
