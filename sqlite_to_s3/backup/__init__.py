"""Backup and restore orchestration for sqlite-to-s3."""

from .manager import BackupManager
from .recovery import RecoveryManager
from .scheduler import BackupScheduler
from .storage import BackupStorage

__all__ = ["BackupManager", "BackupScheduler", "RecoveryManager", "BackupStorage"]
