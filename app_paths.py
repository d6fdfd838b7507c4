"""Where TrackerRelo keeps config.json and its logs.

A ``TrackerRelo_Data`` folder next to the program is used when it already
exists and is writable (portable installs). Otherwise data goes to the
per-user data directory: AppData on Windows, XDG data home elsewhere.
"""

from __future__ import annotations

import functools
import os
import sys
from typing import Optional

APP_DIR_NAME = "TrackerRelo"
PORTABLE_DATA_DIR_NAME = "TrackerRelo_Data"
CONFIG_FILENAME = "config.json"
LOG_FILENAME = "trackerrelo.log"


def _program_dir() -> str:
    if getattr(sys, "frozen", False):
        return os.path.dirname(sys.executable)
    return os.path.dirname(os.path.abspath(__file__))


def _portable_dir() -> Optional[str]:
    path = os.path.join(_program_dir(), PORTABLE_DATA_DIR_NAME)
    if os.path.isdir(path) and os.access(path, os.W_OK):
        return path
    return None


def _user_dir() -> str:
    base = None
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or os.environ.get("LOCALAPPDATA")
    else:
        base = os.environ.get("XDG_DATA_HOME")
    if not base:
        base = os.path.join(os.path.expanduser("~"), ".local", "share")
    return os.path.join(base, APP_DIR_NAME)


@functools.lru_cache(maxsize=None)
def get_data_dir() -> str:
    path = _portable_dir() or _user_dir()
    os.makedirs(path, exist_ok=True)
    return path


def get_config_path() -> str:
    return os.path.join(get_data_dir(), CONFIG_FILENAME)


def get_log_path(filename: str = LOG_FILENAME) -> str:
    logs_dir = os.path.join(get_data_dir(), "logs")
    os.makedirs(logs_dir, exist_ok=True)
    return os.path.join(logs_dir, filename)
