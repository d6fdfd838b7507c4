from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Iterable

from models import AppConfig, ConnectionConfig, Rule
from task_runner import Debouncer

logger = logging.getLogger(__name__)

AUTOSAVE_DELAY_MS = 800


class ConfigStore:
    """In-memory AppConfig with load-once and debounced, best-effort autosave."""

    def __init__(self, backend, runner, call_later, notify: Callable[[], None], delay_ms: int = AUTOSAVE_DELAY_MS):
        self.backend = backend
        self.runner = runner
        self.notify = notify
        self.config = AppConfig.default()
        self.load_requested = False
        self._saving = False
        self._resave = False
        self._autosave = Debouncer(delay_ms, self._save, call_later)

    @property
    def connection(self) -> ConnectionConfig:
        return self.config.connection

    @property
    def rules(self):
        return self.config.rules

    @property
    def save_pending(self) -> bool:
        return self._autosave.pending

    def load(self):
        if self.load_requested:
            logger.debug("Config load already requested; ignoring")
            return
        self.load_requested = True
        self.runner.submit(self.backend.load_config, (), self._on_loaded, self._on_load_failed)

    def _on_loaded(self, config: AppConfig):
        rules = config.rules or self.config.rules
        self.config = AppConfig(connection=config.connection, rules=tuple(rules))
        logger.info("Config loaded (%d rules)", len(self.config.rules))
        self.notify()

    def _on_load_failed(self, e):
        logger.warning("Failed to load config: %s", e)

    def replace_connection(self, connection: ConnectionConfig):
        self.config = dataclasses.replace(self.config, connection=connection)
        self._changed()

    def replace_rules(self, rules: Iterable[Rule]):
        self.config = dataclasses.replace(self.config, rules=tuple(rules))
        self._changed()

    def _changed(self):
        self._autosave.trigger()
        self.notify()

    def _save(self):
        # One write at a time; a save due while another is running goes out
        # when it finishes, with whatever the config is by then.
        if self._saving:
            self._resave = True
            return
        self._saving = True
        snapshot = self.config
        self.runner.submit(self.backend.save_config, (snapshot,), self._on_saved, self._on_save_failed)

    def _on_saved(self, _result):
        logger.debug("Config saved")
        self._save_finished()

    def _on_save_failed(self, e):
        logger.warning("Failed to save config: %s", e)
        self._save_finished()

    def _save_finished(self):
        self._saving = False
        if self._resave:
            self._resave = False
            self._save()

    def flush(self):
        """Write a pending autosave synchronously (used at shutdown)."""
        if not (self._autosave.pending or self._resave):
            return
        self._autosave.cancel()
        self._resave = False
        try:
            self.backend.save_config(self.config)
        except Exception as e:
            logger.warning("Failed to save config: %s", e)
