"""
Backup module for pgbackup.

This module handles the core backup functionality including:
- Logical and physical PostgreSQL backups
- Upload to the remote destination
- Email notifications
- Retention of local artifacts
"""

from .artifacts import BackupRun, BackupResult, BackupRunResult
from .executor import BackupExecutor, BackupError
from .storage import RcloneStorage, S3Storage, LocalStorage, StorageError, create_storage
from .uploader import Uploader, UploadResult
from .notifications import Notifier, NotificationError, create_notifier
from .retention import RetentionManager

__all__ = [
    'BackupRun',
    'BackupResult',
    'BackupRunResult',
    'BackupExecutor',
    'BackupError',
    'RcloneStorage',
    'S3Storage',
    'LocalStorage',
    'StorageError',
    'create_storage',
    'Uploader',
    'UploadResult',
    'Notifier',
    'NotificationError',
    'create_notifier',
    'RetentionManager'
]
