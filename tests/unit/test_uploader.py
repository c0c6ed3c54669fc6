"""
Unit tests for the uploader (pgbackup/backup/uploader.py).
"""

from unittest.mock import MagicMock

import pytest

from pgbackup.backup.artifacts import LOGICAL, PHYSICAL, BackupResult, BackupRunResult
from pgbackup.backup.storage import StorageError
from pgbackup.backup.uploader import Uploader, UploadResult


def make_run_result(run, logical_ok=True, physical_ok=True):
    return BackupRunResult(
        run=run,
        logical=BackupResult(
            kind=LOGICAL, path='/backups/production_db_2024-01-15-120000.dump', success=logical_ok
        ),
        physical=BackupResult(
            kind=PHYSICAL, path='/backups/pg_base_backup_2024-01-15-120000.tar.gz', success=physical_ok
        )
    )


@pytest.fixture
def storage():
    return MagicMock()


class TestUploadResult:
    """Test UploadResult.success."""

    def test_success(self):
        assert UploadResult(uploaded=['a.dump']).success is True

    def test_any_failure(self):
        assert UploadResult(uploaded=['a.dump'], failed=['b.tar.gz']).success is False

    def test_nothing_uploaded(self):
        assert UploadResult().success is False
        assert UploadResult(error='nothing to upload').success is False


class TestUploader:
    """Test Uploader.upload."""

    def test_all_uploads_succeed(self, storage, notifier, mail_transport, backup_run):
        uploader = Uploader(storage, notifier, 'gdrive:backups')

        result = uploader.upload(make_run_result(backup_run))

        assert result.success is True
        assert result.uploaded == [
            'production_db_2024-01-15-120000.dump',
            'pg_base_backup_2024-01-15-120000.tar.gz'
        ]
        assert [c[0][0] for c in storage.upload.call_args_list] == [
            '/backups/production_db_2024-01-15-120000.dump',
            '/backups/pg_base_backup_2024-01-15-120000.tar.gz'
        ]

        message = mail_transport.sent[0]
        assert message['subject'] == "SUCCESS: PostgreSQL Backup and Upload"
        assert "- production_db_2024-01-15-120000.dump\n" in message['body']
        assert "- pg_base_backup_2024-01-15-120000.tar.gz\n" in message['body']
        assert "Backup Date: 2024-01-15" in message['body']
        assert "Backup Time: 2024-01-15-120000" in message['body']

    def test_only_successful_artifacts_are_uploaded(self, storage, notifier, backup_run):
        uploader = Uploader(storage, notifier, 'gdrive:backups')

        result = uploader.upload(make_run_result(backup_run, logical_ok=False))

        storage.upload.assert_called_once_with('/backups/pg_base_backup_2024-01-15-120000.tar.gz')
        assert result.uploaded == ['pg_base_backup_2024-01-15-120000.tar.gz']

    def test_nothing_to_upload(self, storage, notifier, mail_transport, backup_run, caplog):
        uploader = Uploader(storage, notifier, 'gdrive:backups')

        with caplog.at_level('INFO', logger='pgbackup'):
            result = uploader.upload(make_run_result(backup_run, logical_ok=False, physical_ok=False))

        assert result.success is False
        assert result.error == 'nothing to upload'
        storage.upload.assert_not_called()
        assert mail_transport.sent == []
        assert "ERROR: No backup files to upload" in caplog.text

    def test_one_failure_does_not_stop_the_rest(self, storage, notifier, mail_transport, backup_run, caplog):
        storage.upload.side_effect = [StorageError("rclone copy exited with status 1"), 'remote/base.tar.gz']
        uploader = Uploader(storage, notifier, 'gdrive:backups')

        with caplog.at_level('INFO', logger='pgbackup'):
            result = uploader.upload(make_run_result(backup_run))

        assert storage.upload.call_count == 2
        assert result.success is False
        assert result.failed == ['production_db_2024-01-15-120000.dump']
        assert result.uploaded == ['pg_base_backup_2024-01-15-120000.tar.gz']
        assert "ERROR: Failed to upload production_db_2024-01-15-120000.dump" in caplog.text

        message = mail_transport.sent[0]
        assert message['subject'] == "FAILURE: PostgreSQL Backup Upload"
        assert "created locally but failed to upload to gdrive:backups" in message['body']
        assert "- production_db_2024-01-15-120000.dump" in message['body']
