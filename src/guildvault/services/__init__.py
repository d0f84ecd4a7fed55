from .backup_store import BackupInfo, BackupStore, new_backup_id

__all__ = ["BackupInfo", "BackupStore", "new_backup_id"]
