"""Logging for the catalog extractor: JSON rotating file + stderr console.

The file handler keeps a structured DEBUG-level record of every run
(one JSON object per line, fields renamed for log tooling). The console
handler writes short text lines to stderr, leaving stdout free for command
output such as exported JSON or CSV.

Call setup_logging() once at startup, before any other code logs.
Module code uses logging.getLogger(__name__).
"""

import logging
import logging.handlers
from pathlib import Path

from pythonjsonlogger.json import JsonFormatter

LOG_FILE_NAME = "catalog.log"

# SDK and HTTP client chatter drowns out pipeline stages at DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")

_CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(
    log_dir: str = "logs",
    console_level: str | int = "INFO",
    max_bytes: int = 10_485_760,  # 10MB
    backup_count: int = 5,
) -> Path:
    """Install the file and console handlers on the root logger.

    Replaces (and closes) any handlers already installed, so calling it
    twice does not duplicate output.

    Args:
        log_dir: Directory for ``catalog.log`` and its rotations.
        console_level: Level name or number for stderr output.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.

    Returns:
        Path of the active log file.
    """
    log_path = Path(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "component"},
            static_fields={"app": "carcatalog"},
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )

    console_handler = logging.StreamHandler()  # stderr
    console_handler.setLevel(
        logging.getLevelName(console_level.upper())
        if isinstance(console_level, str)
        else console_level
    )
    console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))

    root.addHandler(file_handler)
    root.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_path
