"""
guildvault

Guild backup and restore: capture a guild into a portable Document, persist it,
and replay it onto a target guild.
"""

from .models import Document
from .capture import CaptureConfig, capture_guild
from .restore import RestoreOptions, RestoreReport, restore
from .services.backup_store import BackupStore, new_backup_id

__version__ = "1.0.0"

__all__ = [
    "Document",
    "CaptureConfig",
    "capture_guild",
    "RestoreOptions",
    "RestoreReport",
    "restore",
    "BackupStore",
    "new_backup_id",
]
