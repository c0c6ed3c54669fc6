"""
Backup executor - runs the logical and physical backups for a run.

Workflow:
1. Logical backup: pg_dump (custom format) of one database, as the database service account
2. Physical backup: query the server data directory, then tar.gz it with root privileges

Both backups are always attempted; a failure in one never skips the other.
"""

import os
import logging
import subprocess
from typing import List, Optional

from .artifacts import (
    LOGICAL,
    PHYSICAL,
    BackupRun,
    BackupResult,
    BackupRunResult,
    artifact_filename,
    get_artifact_size,
    format_size,
)


logger = logging.getLogger(__name__)

DATA_DIRECTORY_QUERY = 'SHOW data_directory;'


class BackupError(Exception):
    """Raised when a backup step fails."""
    pass


class BackupExecutor:
    """
    Runs both backup kinds for a single BackupRun.
    """

    def __init__(self, config, run: BackupRun):
        """
        Initialize backup executor.

        Args:
            config: Configuration class or object (see pgbackup.config.Config)
            run: The current BackupRun
        """
        self.config = config
        self.run = run
        self.backup_dir = config.BACKUP_DIR

    @property
    def logical_path(self) -> str:
        filename = artifact_filename(self.config.LOGICAL_PREFIX, LOGICAL, self.run.timestamp)
        return os.path.join(self.backup_dir, filename)

    @property
    def physical_path(self) -> str:
        filename = artifact_filename(self.config.PHYSICAL_PREFIX, PHYSICAL, self.run.timestamp)
        return os.path.join(self.backup_dir, filename)

    def execute(self) -> BackupRunResult:
        """
        Run the logical and then the physical backup.

        Returns:
            BackupRunResult holding both outcomes
        """
        logical = self.perform_logical_backup()
        physical = self.perform_physical_backup()
        return BackupRunResult(run=self.run, logical=logical, physical=physical)

    def perform_logical_backup(self) -> BackupResult:
        """
        Dump the configured database in pg_dump custom format.

        Returns:
            BackupResult for the logical kind
        """
        db_name = self.config.DB_NAME
        logger.info(f"=== Starting FULL LOGICAL BACKUP of {db_name} ===")

        backup_path = self.logical_path
        cmd = self._as_service_user([
            'pg_dump',
            '-Fc',
            '-U', self.config.DB_USER,
            '-f', backup_path,
            db_name,
        ])

        try:
            self._run_command(cmd, env=self._db_env())
        except BackupError as e:
            logger.error(f"ERROR: Logical backup FAILED for {db_name}: {e}")
            self._remove_partial(backup_path)
            return BackupResult(kind=LOGICAL, path=backup_path, success=False, error=str(e))

        size = get_artifact_size(backup_path)
        logger.info(f"Logical backup completed successfully: {os.path.basename(backup_path)}")
        logger.info(f"Backup size: {format_size(size)}")
        return BackupResult(kind=LOGICAL, path=backup_path, success=True, size_bytes=size)

    def perform_physical_backup(self) -> BackupResult:
        """
        Archive the server's data directory as a gzip-compressed tarball.

        Returns:
            BackupResult for the physical kind
        """
        logger.info("=== Starting PHYSICAL BASE BACKUP ===")

        backup_path = self.physical_path

        try:
            data_dir = self.query_data_directory()
            logger.info(f"Data directory: {data_dir}")

            data_dir = data_dir.rstrip('/')
            cmd = self._as_root([
                'tar',
                '-czf', backup_path,
                '-C', os.path.dirname(data_dir),
                os.path.basename(data_dir),
            ])
            self._run_command(cmd)
        except BackupError as e:
            logger.error(f"ERROR: Physical backup FAILED: {e}")
            self._remove_partial(backup_path)
            return BackupResult(kind=PHYSICAL, path=backup_path, success=False, error=str(e))

        size = get_artifact_size(backup_path)
        logger.info(f"Physical backup completed successfully: {os.path.basename(backup_path)}")
        logger.info(f"Backup size: {format_size(size)}")
        return BackupResult(kind=PHYSICAL, path=backup_path, success=True, size_bytes=size)

    def query_data_directory(self) -> str:
        """
        Ask the running server for its data directory.

        Returns:
            Absolute path of the data directory

        Raises:
            BackupError: If the query fails or returns nothing usable
        """
        cmd = self._as_service_user([
            'psql',
            '-U', self.config.DB_USER,
            '-t', '-A',
            '-c', DATA_DIRECTORY_QUERY,
        ])
        output = self._run_command(cmd, env=self._db_env(), log_output=False).strip()

        if not output:
            raise BackupError("Data directory query returned no value")
        if not os.path.isabs(output):
            raise BackupError(f"Data directory query returned an unexpected value: {output}")

        return output

    def _as_service_user(self, cmd: List[str]) -> List[str]:
        """Prefix cmd so it runs as the database service account."""
        if not self.config.USE_SUDO:
            return cmd

        prefix = ['sudo', '-u', self.config.DB_SERVICE_USER]
        if self.config.DB_PASSWORD:
            prefix.append('--preserve-env=PGPASSWORD')
        return prefix + cmd

    def _as_root(self, cmd: List[str]) -> List[str]:
        if not self.config.USE_SUDO:
            return cmd
        return ['sudo'] + cmd

    def _db_env(self) -> Optional[dict]:
        if not self.config.DB_PASSWORD:
            return None
        env = os.environ.copy()
        env['PGPASSWORD'] = self.config.DB_PASSWORD
        return env

    def _run_command(self, cmd: List[str], env: Optional[dict] = None, log_output: bool = True) -> str:
        """
        Run an external tool and return its stdout.

        Args:
            cmd: Argument vector
            env: Optional environment for the child process
            log_output: Copy the tool's output into the backup log

        Returns:
            Captured stdout

        Raises:
            BackupError: If the tool is missing or exits non-zero
        """
        try:
            completed = subprocess.run(
                cmd,
                env=env,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise BackupError(f"Command not found: {cmd[0]}")
        except OSError as e:
            raise BackupError(f"Failed to run {cmd[0]}: {e}")

        if log_output:
            _log_tool_output(completed.stdout)
        _log_tool_output(completed.stderr)

        if completed.returncode != 0:
            detail = (completed.stderr or '').strip().splitlines()
            reason = detail[-1] if detail else 'no error output'
            raise BackupError(f"{cmd[0]} exited with status {completed.returncode}: {reason}")

        return completed.stdout or ''

    def _remove_partial(self, path: str):
        """Remove a partial artifact left behind by a failed tool."""
        if os.path.exists(path):
            try:
                os.remove(path)
                logger.info(f"Removed partial backup file: {os.path.basename(path)}")
            except OSError as e:
                logger.warning(f"Warning: Failed to remove partial backup file {path}: {e}")


def _log_tool_output(output: Optional[str]):
    for line in (output or '').splitlines():
        if line.strip():
            logger.info(line.rstrip())
