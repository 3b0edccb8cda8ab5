"""
nftjson Logging Configuration

Centralized logging setup for the nftjson command-line entry points.

Configures:
- Console output to stdout
- Optional file logging with rotation and gzip compression
- Log level management (INFO/DEBUG)

Library modules only create loggers (logging.getLogger(__name__)); handlers
are installed here and only by applications.

Author: nftjson Project
License: GNU GPL v3
"""

import logging
import logging.handlers
import sys
import os
import gzip
import shutil
from pathlib import Path
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _gzip_rotator(source, dest):
    """
    Rotator compressing rotated log files with gzip.

    Args:
        source: Source log file path
        dest: Destination path for rotated log
    """
    with open(source, 'rb') as f_in:
        with gzip.open(f'{dest}.gz', 'wb') as f_out:
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


def setup_logging(level=logging.INFO, log_file: Optional[str] = None,
                  max_bytes: int = 10485760, backup_count: int = 5):
    """
    Configure application-wide logging.

    Sets up:
    - Console handler: stdout
    - Rotating file handler (only if log_file is given), old files
      compressed with gzip

    Args:
        level: Logging level (logging.INFO, logging.DEBUG, etc.)
        log_file: Path of the log file, or None for console only
        max_bytes: Rotate the log file at this size
        backup_count: Number of rotated files to keep

    Example:
        >>> setup_logging(level=logging.DEBUG)  # Verbose mode
        >>> setup_logging(log_file='/var/log/nftjson.log')
    """
    handlers = [
        logging.StreamHandler(sys.stdout)
    ]

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                str(log_file),
                maxBytes=max_bytes,
                backupCount=backup_count
            )
            file_handler.rotator = _gzip_rotator
            handlers.append(file_handler)
        except (PermissionError, OSError) as e:
            print(f"Warning: Could not create log file {log_file}: {e}", file=sys.stderr)
            print("Logging to console only", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )
