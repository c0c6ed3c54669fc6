"""
Retention policy enforcement for local backups.

Deletes backup artifacts in the backup directory whose age in whole days
exceeds the retention window, matching `find -mtime +N`.
"""

import os
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Iterable

from .artifacts import BACKUP_EXTENSIONS
from .storage import LocalStorage, StorageError


logger = logging.getLogger(__name__)


class RetentionManager:
    """
    Cleans up old local backups based on the retention window.
    """

    def __init__(self, backup_dir: str, retention_days: int, extensions: Iterable[str] = BACKUP_EXTENSIONS):
        """
        Initialize retention manager.

        Args:
            backup_dir: Directory holding the backup artifacts
            retention_days: Whole days an artifact is kept
            extensions: Filename suffixes that identify backup artifacts
        """
        if retention_days < 0:
            raise ValueError(f"retention_days must be >= 0, got {retention_days}")

        self.backup_dir = backup_dir
        self.retention_days = retention_days
        self.extensions = tuple(extensions)

    def cleanup(self) -> Dict[str, Any]:
        """
        Delete backups older than the retention window.

        Deletion errors are logged and the remaining files are still processed.

        Returns:
            Dict with summary: {'matched': int, 'deleted': int, 'errors': List[str]}
        """
        logger.info(f"=== Cleaning up backups older than {self.retention_days} days ===")

        summary = {
            'matched': 0,
            'deleted': 0,
            'errors': []
        }

        local_storage = LocalStorage(self.backup_dir)

        try:
            files = local_storage.list_files(self.extensions)
        except StorageError as e:
            logger.error(f"ERROR: {e}")
            summary['errors'].append(str(e))
            return summary

        # An age of N full days means N * 24h <= age < (N + 1) * 24h
        cutoff_date = datetime.now() - timedelta(days=self.retention_days + 1)

        to_delete = [
            f for f in files
            if f['modified'] <= cutoff_date
        ]
        summary['matched'] = len(to_delete)

        if not to_delete:
            logger.info("No old backup files to delete")
            return summary

        for file_info in to_delete:
            try:
                local_storage.delete(file_info['path'])
                summary['deleted'] += 1
                logger.info(f"Deleted: {os.path.basename(file_info['path'])}")
            except StorageError as e:
                logger.error(f"ERROR: Failed to delete {file_info['path']}: {e}")
                summary['errors'].append(str(e))

        logger.info(f"Deleted {summary['deleted']} old backup file(s)")
        if summary['errors']:
            logger.error(f"ERROR: {len(summary['errors'])} old backup file(s) could not be deleted")

        return summary
