"""
Backup run orchestration.

Sequence:
1. Log run metadata and ensure the backup directory exists
2. Run the logical and physical backups
3. Any backup failed: send a failure report and exit 1
4. Upload the artifacts
5. Upload failed: exit 1 without cleanup; otherwise enforce retention and exit 0
"""

import os
import sys
import socket
import logging

from pgbackup import configure_logging
from pgbackup.config import get_config
from pgbackup.lock import run_lock, LockError
from pgbackup.backup.artifacts import LOGICAL, PHYSICAL, BackupRun
from pgbackup.backup.executor import BackupExecutor
from pgbackup.backup.notifications import create_notifier
from pgbackup.backup.retention import RetentionManager
from pgbackup.backup.storage import create_storage, StorageError
from pgbackup.backup.uploader import Uploader


logger = logging.getLogger(__name__)

BANNER = '=' * 42


class BackupRunner:
    """
    Runs one complete backup invocation.
    """

    def __init__(self, config, run: BackupRun = None):
        """
        Initialize backup runner.

        Args:
            config: Configuration class or object (see pgbackup.config.Config)
            run: BackupRun to use (default: started now)
        """
        self.config = config
        self.run_info = run or BackupRun.start()
        self.notifier = create_notifier(config)

    def run(self) -> int:
        """
        Execute the backup run.

        Returns:
            Process exit code: 0 on full success, 1 otherwise
        """
        try:
            with run_lock(self.config.LOCK_FILE):
                return self._run()
        except LockError as e:
            logger.error(f"ERROR: {e}")
            return 1

    def _run(self) -> int:
        config = self.config

        logger.info(BANNER)
        logger.info("PostgreSQL Backup Process Started")
        logger.info(BANNER)
        logger.info(f"Hostname: {socket.gethostname()}")
        logger.info(f"Backup Directory: {config.BACKUP_DIR}")
        logger.info(f"Database: {config.DB_NAME}")
        logger.info(f"Timestamp: {self.run_info.timestamp}")

        os.makedirs(config.BACKUP_DIR, exist_ok=True)

        executor = BackupExecutor(config, self.run_info)
        run_result = executor.execute()

        if run_result.failed:
            logger.error(BANNER)
            logger.error("BACKUP PROCESS FAILED")
            logger.error(BANNER)

            failed_backups = ''
            if LOGICAL in run_result.failed_kinds:
                failed_backups += f"- Logical backup of {config.DB_NAME}\n"
            if PHYSICAL in run_result.failed_kinds:
                failed_backups += "- Physical base backup\n"

            self.notifier.notify_failure(
                "FAILURE: PostgreSQL Backup Task",
                f"The following backup(s) failed:\n{failed_backups}\n"
                f"Please check the logs immediately."
            )
            return 1

        logger.info("All backups completed successfully, proceeding to upload...")

        try:
            storage = create_storage(config.REMOTE_DESTINATION)
        except (ValueError, StorageError) as e:
            logger.error(f"ERROR: Cannot open remote destination: {e}")
            self.notifier.notify_failure(
                "FAILURE: PostgreSQL Backup Upload",
                f"Backups were created locally but the remote destination "
                f"{config.REMOTE_DESTINATION!r} could not be used: {e}"
            )
            logger.error("Upload failed, skipping cleanup")
            return 1

        uploader = Uploader(storage, self.notifier, config.REMOTE_DESTINATION)
        upload_result = uploader.upload(run_result)

        if not upload_result.success:
            logger.error("Upload failed, skipping cleanup")
            return 1

        logger.info("Upload completed successfully")

        # Cleanup old backups (only after successful backup and upload)
        retention = RetentionManager(config.BACKUP_DIR, config.RETENTION_DAYS)
        retention.cleanup()

        logger.info(BANNER)
        logger.info("PostgreSQL Backup Process Completed Successfully")
        logger.info(BANNER)

        return 0


def run_backup(config=None) -> int:
    """
    Configure logging and run one backup.

    Args:
        config: Configuration class (default: selected by PGBACKUP_ENV)

    Returns:
        Process exit code
    """
    if config is None:
        config = get_config()

    try:
        configure_logging(config.LOG_FILE)
    except OSError as e:
        print(f"ERROR: Cannot open log file {config.LOG_FILE}: {e}", file=sys.stderr)
        return 1

    return BackupRunner(config).run()


def main():
    sys.exit(run_backup())


if __name__ == '__main__':
    main()
