"""
Single-instance guard for backup runs.

Only one run may hold the lock; overlapping runs would share artifact names.
"""

import os
import fcntl
from contextlib import contextmanager


class LockError(Exception):
    """Raised when another backup run holds the lock."""
    pass


@contextmanager
def run_lock(lock_path: str):
    """
    Hold an exclusive advisory lock on lock_path for the duration of the block.

    Args:
        lock_path: Path of the lock file (created if missing)

    Raises:
        LockError: If the lock is already held by another process
    """
    os.makedirs(os.path.dirname(os.path.abspath(lock_path)), exist_ok=True)

    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o644)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            raise LockError(f"Another backup run holds the lock: {lock_path}")

        os.ftruncate(fd, 0)
        os.write(fd, str(os.getpid()).encode())
        try:
            yield lock_path
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
