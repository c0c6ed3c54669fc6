"""
Uploads successful backup artifacts to the remote destination.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .artifacts import BackupRunResult
from .storage import StorageError


logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    uploaded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and not self.failed and bool(self.uploaded)


class Uploader:
    """
    Copies each upload-eligible artifact to storage and reports the outcome by email.
    """

    def __init__(self, storage, notifier, destination: str):
        """
        Initialize uploader.

        Args:
            storage: Storage handler with upload(local_path)
            notifier: Notifier for the success/failure report
            destination: Destination shown in logs and emails
        """
        self.storage = storage
        self.notifier = notifier
        self.destination = destination

    def upload(self, run_result: BackupRunResult) -> UploadResult:
        """
        Upload every artifact whose backup succeeded.

        One failed file does not stop the remaining uploads.

        Args:
            run_result: Outcome of the backup step

        Returns:
            UploadResult
        """
        logger.info(f"=== Starting upload to {self.destination} ===")

        artifacts = run_result.successful_artifacts
        if not artifacts:
            logger.error("ERROR: No backup files to upload")
            return UploadResult(error='nothing to upload')

        result = UploadResult()

        for artifact in artifacts:
            logger.info(f"Uploading: {artifact.filename}")
            try:
                self.storage.upload(artifact.path)
            except StorageError as e:
                logger.error(f"ERROR: Failed to upload {artifact.filename}: {e}")
                result.failed.append(artifact.filename)
                continue

            logger.info(f"Successfully uploaded: {artifact.filename}")
            result.uploaded.append(artifact.filename)

        if result.failed:
            self.notifier.notify_failure(
                "FAILURE: PostgreSQL Backup Upload",
                f"Backups were created locally but failed to upload to {self.destination}.\n"
                f"Failed uploads:\n"
                + ''.join(f"- {name}\n" for name in result.failed)
                + "\nCheck the upload tool logs."
            )
        else:
            run = run_result.run
            self.notifier.notify_success(
                "SUCCESS: PostgreSQL Backup and Upload",
                "Successfully created and uploaded the following backups:\n"
                + ''.join(f"- {name}\n" for name in result.uploaded)
                + f"\nBackup Date: {run.date_stamp}\nBackup Time: {run.timestamp}"
            )

        return result
