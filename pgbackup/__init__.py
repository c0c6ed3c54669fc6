import os
import sys
import logging
from collections import deque


__version__ = '1.0.0'

LOG_FORMAT = '[%(asctime)s] %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(log_file, level=logging.INFO):
    """Configure the pgbackup logger to write to the log file and stdout"""

    # Create log directory if it doesn't exist
    log_dir = os.path.dirname(os.path.abspath(log_file))
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger('pgbackup')
    logger.setLevel(level)

    # Drop handlers from a previous call
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    # File handler (append only, the log is never rotated here)
    file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def tail_log(log_file, lines=15):
    """
    Return the last lines of the log file.

    Args:
        log_file: Path to the log file
        lines: Number of trailing lines to return

    Returns:
        The trailing lines joined by newlines, or '' if the file is missing
    """
    if not os.path.exists(log_file):
        return ''

    with open(log_file, 'r', encoding='utf-8', errors='replace') as f:
        tail = deque(f, maxlen=lines)

    return ''.join(tail).rstrip('\n')
