"""
Backup artifact naming and run result types.

Artifacts are named deterministically from a prefix and the run timestamp:
- logical:  {prefix}_{YYYY-MM-DD-HHMMSS}.dump
- physical: {prefix}_{YYYY-MM-DD-HHMMSS}.tar.gz
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


LOGICAL = 'logical'
PHYSICAL = 'physical'

# Map backup kind to file extension
EXTENSIONS = {
    LOGICAL: '.dump',
    PHYSICAL: '.tar.gz',
}

BACKUP_EXTENSIONS = tuple(EXTENSIONS.values())

TIMESTAMP_FORMAT = '%Y-%m-%d-%H%M%S'
DATE_FORMAT = '%Y-%m-%d'


@dataclass(frozen=True)
class BackupRun:
    """One invocation of the backup job."""

    started_at: datetime
    timestamp: str
    date_stamp: str

    @classmethod
    def start(cls, now: Optional[datetime] = None) -> 'BackupRun':
        now = now or datetime.now()
        return cls(
            started_at=now,
            timestamp=now.strftime(TIMESTAMP_FORMAT),
            date_stamp=now.strftime(DATE_FORMAT),
        )


@dataclass(frozen=True)
class BackupResult:
    """Outcome of one backup kind."""

    kind: str
    path: str
    success: bool
    size_bytes: Optional[int] = None
    error: Optional[str] = None

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)


@dataclass(frozen=True)
class BackupRunResult:
    """Outcome of both backup kinds for a run."""

    run: BackupRun
    logical: BackupResult
    physical: BackupResult

    @property
    def failed(self) -> bool:
        return not (self.logical.success and self.physical.success)

    @property
    def failed_kinds(self) -> List[str]:
        return [r.kind for r in (self.logical, self.physical) if not r.success]

    @property
    def successful_artifacts(self) -> List[BackupResult]:
        return [r for r in (self.logical, self.physical) if r.success]


def artifact_filename(prefix: str, kind: str, timestamp: str) -> str:
    """
    Generate the artifact filename for a backup kind.

    Args:
        prefix: Filename prefix (database name or physical backup prefix)
        kind: LOGICAL or PHYSICAL
        timestamp: Run timestamp (YYYY-MM-DD-HHMMSS)

    Returns:
        Filename (without path)

    Raises:
        ValueError: If kind is unknown
    """
    if kind not in EXTENSIONS:
        raise ValueError(
            f"Invalid backup kind: {kind}. "
            f"Valid options: {list(EXTENSIONS.keys())}"
        )

    return f"{prefix}_{timestamp}{EXTENSIONS[kind]}"


def is_backup_file(filename: str) -> bool:
    return filename.endswith(BACKUP_EXTENSIONS)


def get_artifact_size(path: str) -> Optional[int]:
    """Size of an artifact in bytes, or None if it cannot be read."""
    try:
        return os.path.getsize(path)
    except OSError:
        return None


def format_size(size_bytes: Optional[int]) -> str:
    if size_bytes is None:
        return 'unknown'
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.2f} KB"
    return f"{size_bytes / 1024 / 1024:.2f} MB"
