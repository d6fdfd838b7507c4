"""Process-wide logging setup: rotating file in the logs dir plus stderr."""

from __future__ import annotations

import logging
import logging.handlers
from typing import Optional

from app_paths import get_log_path

LOGGER_NAME = "trackerrelo"
MAX_LOG_BYTES = 5_000_000
LOG_BACKUPS = 3

# HTTP plumbing is chatty at DEBUG.
QUIET_LOGGERS = ("urllib3", "requests", "werkzeug", "qbittorrentapi", "transmission_rpc")

_INITIALIZED = False


def setup_logging(level: int = logging.DEBUG, log_path: Optional[str] = None) -> logging.Logger:
    """Configure logging once per process and return the application logger."""
    global _INITIALIZED
    logger = logging.getLogger(LOGGER_NAME)
    if _INITIALIZED:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    path = log_path or get_log_path()
    try:
        file_handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
        )
    except OSError as e:
        logger.warning("File logging disabled (%s): %s", path, e)
    else:
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _INITIALIZED = True
    logger.info("Logging to %s", path)
    return logger
