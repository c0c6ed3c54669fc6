"""
Storage handlers for uploading backup artifacts.

Supports:
- RcloneStorage: Copy to an rclone remote ("remote:path")
- S3Storage: Upload to AWS S3 ("s3://bucket/prefix")
- LocalStorage: Copy into a local or mounted directory; also lists and deletes local artifacts

Every handler copies; the local artifact is always kept.
"""

import os
import shutil
import logging
import subprocess
from pathlib import Path
from datetime import datetime
from typing import Optional, Iterable, List, Dict, Any

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError, BotoCoreError


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operation fails."""
    pass


class RcloneStorage:
    """
    Handler for copying backups to an rclone remote.
    """

    def __init__(self, remote: str, rclone_command: str = 'rclone'):
        """
        Initialize rclone storage handler.

        Args:
            remote: rclone destination, e.g. "gdrive_backups:PostgreSQL_Backups"
            rclone_command: rclone executable
        """
        self.remote = remote
        self.rclone_command = rclone_command

    def upload(self, local_path: str) -> str:
        """
        Copy a file to the remote.

        Args:
            local_path: Path to local artifact

        Returns:
            Remote location of the copy

        Raises:
            StorageError: If the copy fails
        """
        if not os.path.exists(local_path):
            raise StorageError(f"Local file not found: {local_path}")

        cmd = [self.rclone_command, 'copy', local_path, self.remote]

        try:
            completed = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            raise StorageError(f"Command not found: {self.rclone_command}")
        except OSError as e:
            raise StorageError(f"Failed to run {self.rclone_command}: {e}")

        for line in (completed.stdout + completed.stderr).splitlines():
            if line.strip():
                logger.info(line.rstrip())

        if completed.returncode != 0:
            raise StorageError(f"rclone copy exited with status {completed.returncode}")

        return f"{self.remote.rstrip('/')}/{os.path.basename(local_path)}"


class S3Storage:
    """
    Handler for uploading backups to AWS S3.

    Uploads artifacts under the configured key prefix:
    {prefix}/{filename}
    """

    def __init__(self, bucket_name: str, prefix: str = '', region: Optional[str] = None):
        """
        Initialize S3 storage handler.

        Credentials come from boto3's default chain (environment, shared config, instance role).

        Args:
            bucket_name: S3 bucket name
            prefix: Key prefix inside the bucket
            region: AWS region (default: from the environment)
        """
        self.bucket_name = bucket_name
        self.prefix = prefix.strip('/')
        self.region = region

        try:
            self.s3_client = boto3.client('s3', region_name=region)
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    def upload(self, local_path: str) -> str:
        """
        Upload artifact to S3.

        Args:
            local_path: Path to local artifact

        Returns:
            s3:// URI of the uploaded object

        Raises:
            StorageError: If upload fails
        """
        if not os.path.exists(local_path):
            raise StorageError(f"Local file not found: {local_path}")

        filename = os.path.basename(local_path)
        s3_key = f"{self.prefix}/{filename}" if self.prefix else filename

        try:
            # upload_file switches to multipart for large artifacts
            self.s3_client.upload_file(local_path, self.bucket_name, s3_key)
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            raise StorageError(f"S3 upload failed ({error_code}): {e}")
        except (BotoCoreError, S3UploadFailedError) as e:
            raise StorageError(f"S3 upload failed: {e}")

        return f"s3://{self.bucket_name}/{s3_key}"


class LocalStorage:
    """
    Handler for backups in a local filesystem directory.
    """

    def __init__(self, base_path: str):
        """
        Initialize local storage handler.

        Args:
            base_path: Directory holding the backups
        """
        self.base_path = Path(base_path)

    def upload(self, local_path: str) -> str:
        """
        Copy artifact into the storage directory.

        Args:
            local_path: Path to source artifact

        Returns:
            Full path of the stored copy

        Raises:
            StorageError: If the copy fails
        """
        if not os.path.exists(local_path):
            raise StorageError(f"Source file not found: {local_path}")

        dest_path = self.base_path / os.path.basename(local_path)

        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            shutil.copy2(local_path, dest_path)
        except PermissionError as e:
            raise StorageError(f"Permission denied writing to {dest_path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to store locally: {e}")

        return str(dest_path)

    def list_files(self, extensions: Iterable[str]) -> List[Dict[str, Any]]:
        """
        List backup files directly inside the directory (not recursive).

        Args:
            extensions: Filename suffixes to include

        Returns:
            List of dicts with 'path', 'modified', and 'size' keys

        Raises:
            StorageError: If listing fails
        """
        if not self.base_path.exists():
            return []

        suffixes = tuple(extensions)

        try:
            files = []

            for file_path in sorted(self.base_path.iterdir()):
                if file_path.is_file() and file_path.name.endswith(suffixes):
                    stat = file_path.stat()
                    files.append({
                        'path': str(file_path),
                        'modified': datetime.fromtimestamp(stat.st_mtime),
                        'size': stat.st_size
                    })

            return files

        except OSError as e:
            raise StorageError(f"Failed to list local files: {e}")

    def delete(self, path: str):
        """
        Delete a file from local storage.

        Args:
            path: Path of file to delete

        Raises:
            StorageError: If deletion fails
        """
        full_path = Path(path)

        try:
            if full_path.exists():
                full_path.unlink()
        except PermissionError as e:
            raise StorageError(f"Permission denied deleting {full_path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to delete local file: {e}")


def create_storage(destination: str):
    """
    Create the storage handler for a destination string.

    Args:
        destination: "s3://bucket/prefix", "file:///path", "/abs/path" or an rclone "remote:path"

    Returns:
        Storage handler with an upload(local_path) method

    Raises:
        ValueError: If destination is empty
    """
    if not destination:
        raise ValueError("Remote destination is not configured")

    if destination.startswith('s3://'):
        bucket, _, prefix = destination[len('s3://'):].partition('/')
        if not bucket:
            raise ValueError(f"Invalid S3 destination: {destination}")
        return S3Storage(bucket_name=bucket, prefix=prefix)

    if destination.startswith('file://'):
        return LocalStorage(destination[len('file://'):])

    if os.path.isabs(destination):
        return LocalStorage(destination)

    return RcloneStorage(destination)
