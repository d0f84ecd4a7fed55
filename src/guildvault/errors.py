from __future__ import annotations

import asyncio
from typing import List, Optional


class GuildVaultError(Exception):
    """Base class for errors surfaced to callers."""


class PreconditionError(GuildVaultError):
    """Raised when the target guild cannot be read or written at all."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])


class NotFoundError(GuildVaultError):
    """Raised when a requested document or entity does not exist."""


class BackupNotFound(NotFoundError):
    def __init__(self, backup_id: str):
        super().__init__(f"No backup found with id {backup_id!r}")
        self.backup_id = backup_id


class StorageError(GuildVaultError, IOError):
    """Raised when a document cannot be written to or read from storage."""


class RestoreCancelled(asyncio.CancelledError):
    """Raised at a suspension point once the restore's token is cancelled."""
