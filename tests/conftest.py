"""
Shared pytest fixtures for pgbackup tests.

This module provides fixtures for:
- A test configuration rooted in a temporary directory
- A fixed BackupRun
- Fake external tools (pg_dump, psql, tar) behind subprocess.run
- A recording mail transport
- Logging wired to the test log file
- Mock fixtures for external services (S3)
"""

import os
import logging
import subprocess
from datetime import datetime
from unittest.mock import patch

import pytest
import boto3
from moto import mock_aws

from pgbackup import configure_logging
from pgbackup.config import Config
from pgbackup.backup.artifacts import BackupRun
from pgbackup.backup.notifications import Notifier


@pytest.fixture(scope='function')
def backup_config(tmp_path):
    """
    Configuration class pointing every path into tmp_path.

    Tools run as the invoking user (no sudo) and uploads go to a local directory.
    """
    class TestConfig(Config):
        BACKUP_DIR = str(tmp_path / 'backups')
        LOG_FILE = str(tmp_path / 'logs' / 'pg_backup.log')
        LOCK_FILE = str(tmp_path / 'backups' / '.pg_backup.lock')
        DB_NAME = 'production_db'
        DB_USER = 'postgres'
        DB_PASSWORD = ''
        DB_SERVICE_USER = 'postgres'
        USE_SUDO = False
        LOGICAL_PREFIX = 'production_db'
        PHYSICAL_PREFIX = 'pg_base_backup'
        ALERT_EMAIL = 'dba@example.com'
        FROM_EMAIL = 'backups@example.com'
        LOG_TAIL_LINES = 15
        MAIL_COMMAND = 'mail'
        SMTP_HOST = ''
        REMOTE_DESTINATION = str(tmp_path / 'remote')
        RETENTION_DAYS = 7

    os.makedirs(TestConfig.BACKUP_DIR, exist_ok=True)
    return TestConfig


@pytest.fixture(scope='function')
def backup_run():
    """BackupRun started at 2024-01-15 12:00:00."""
    return BackupRun.start(datetime(2024, 1, 15, 12, 0, 0))


@pytest.fixture(scope='function')
def backup_logging(backup_config):
    """
    Configure the pgbackup logger to write to the test log file.

    Handlers are removed again after the test.
    """
    logger = configure_logging(backup_config.LOG_FILE)
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


class FakeTools:
    """
    Stand-in for pg_dump, psql and tar behind subprocess.run.

    Tools named in `fail` exit with status 1. Successful pg_dump and tar
    calls write their output file.
    """

    def __init__(self, data_directory='/var/lib/postgresql/16/main'):
        self.data_directory = data_directory
        self.fail = set()
        self.calls = []

    @staticmethod
    def tool_name(cmd):
        for name in ('pg_dump', 'psql', 'tar'):
            if name in cmd:
                return name
        return cmd[0]

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        name = self.tool_name(cmd)

        if name in self.fail:
            return subprocess.CompletedProcess(cmd, 1, stdout='', stderr=f'{name}: simulated failure\n')

        if name == 'pg_dump':
            output = cmd[cmd.index('-f') + 1]
            with open(output, 'wb') as f:
                f.write(b'PGDMP' + b'\0' * 2048)
            return subprocess.CompletedProcess(cmd, 0, stdout='', stderr='')

        if name == 'psql':
            return subprocess.CompletedProcess(cmd, 0, stdout=f'{self.data_directory}\n', stderr='')

        if name == 'tar':
            output = cmd[cmd.index('-czf') + 1]
            with open(output, 'wb') as f:
                f.write(b'\x1f\x8b' + b'\0' * 4096)
            return subprocess.CompletedProcess(cmd, 0, stdout='', stderr='')

        raise AssertionError(f"Unexpected command: {cmd}")


@pytest.fixture(scope='function')
def fake_tools():
    """
    Patch subprocess.run for the executor with FakeTools.
    """
    tools = FakeTools()
    with patch('pgbackup.backup.executor.subprocess.run', side_effect=tools):
        yield tools


class RecordingTransport:
    """Mail transport that keeps sent messages in memory."""

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def send(self, subject, body, sender, recipient):
        if self.error is not None:
            raise self.error
        self.sent.append({
            'subject': subject,
            'body': body,
            'sender': sender,
            'recipient': recipient
        })


@pytest.fixture(scope='function')
def mail_transport():
    return RecordingTransport()


@pytest.fixture(scope='function')
def notifier(backup_config, mail_transport):
    """Notifier that records messages instead of sending them."""
    return Notifier(
        mail_transport,
        sender=backup_config.FROM_EMAIL,
        recipient=backup_config.ALERT_EMAIL,
        log_file=backup_config.LOG_FILE,
        tail_lines=backup_config.LOG_TAIL_LINES
    )


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def mock_s3(aws_credentials):
    """
    Mock AWS S3 service using moto.

    Creates a test bucket 'test-bucket' in us-east-1 region.
    """
    with mock_aws():
        # Create mock S3 resource
        s3 = boto3.resource('s3', region_name='us-east-1')

        # Create test bucket
        s3.create_bucket(Bucket='test-bucket')

        yield s3


@pytest.fixture
def backup_files(backup_config):
    """
    Create a directory of backup artifacts and unrelated files.
    """
    backup_dir = backup_config.BACKUP_DIR
    names = [
        'production_db_2024-01-01-020000.dump',
        'pg_base_backup_2024-01-01-020000.tar.gz',
        'notes.txt',
        'pg_backup.log',
    ]
    for name in names:
        with open(os.path.join(backup_dir, name), 'wb') as f:
            f.write(b'data')
    return backup_dir
