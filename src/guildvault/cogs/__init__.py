from .backup import BackupCog

__all__ = ["BackupCog"]
