"""Config persistence for TrackerRelo.

The whole AppConfig (connection settings plus replacement rules) lives in a
single JSON file in the app data directory.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Dict, Optional

from app_paths import get_config_path
from errors import LoadError, SaveError
from models import AppConfig


def _read_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: str, data: Dict[str, Any]) -> None:
    """Write to a temp file next to ``path`` and swap it in, so readers never see half a file."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".config-", suffix=".tmp", dir=directory or None)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


CONFIG_FILE = get_config_path()


class ConfigManager:
    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or CONFIG_FILE

    def load_config(self) -> AppConfig:
        # First run: nothing stored yet.
        if not os.path.exists(self.path):
            return AppConfig.default()
        try:
            return AppConfig.from_dict(_read_json(self.path))
        except (OSError, ValueError, TypeError) as e:
            raise LoadError(f"Failed to read {self.path}: {e}") from e

    def save_config(self, config: AppConfig) -> None:
        try:
            _write_json(self.path, config.to_dict())
        except (OSError, TypeError) as e:
            raise SaveError(f"Failed to write {self.path}: {e}") from e
