"""The owning session object for one tracker-replacement workspace.

Presentation layers hold a ReplaceSession and go through its components;
nothing else writes the config. All methods must be called on the event
thread that ``runner.call_after`` dispatches to.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from config_store import AUTOSAVE_DELAY_MS, ConfigStore
from connection_session import ConnectionSession
from models import match_key
from rule_editor import RuleSetEditor
from scan_coordinator import ScanCoordinator
from task_runner import SerialDispatcher, TaskRunner, thread_call_later
from tracker_catalog import TrackerCatalog

logger = logging.getLogger(__name__)


class ReplaceSession:
    def __init__(self, backend, runner=None, call_later=None, autosave_delay_ms=AUTOSAVE_DELAY_MS):
        self.backend = backend
        # Without a runner the session brings its own event thread; callers
        # then go through ``dispatcher.call_and_wait``.
        self.dispatcher = None
        if runner is None:
            self.dispatcher = SerialDispatcher()
            runner = TaskRunner(call_after=self.dispatcher.call_after)
        self.runner = runner
        if call_later is None:
            call_later = thread_call_later(self.runner.call_after)
        self._listeners: List[Callable[[], None]] = []

        self.store = ConfigStore(backend, self.runner, call_later, self._notify, delay_ms=autosave_delay_ms)
        self.connection = ConnectionSession(self.store, backend, self.runner, self._notify)
        self.catalog = TrackerCatalog(self.store, backend, self.runner, self._notify)
        self.rules = RuleSetEditor(self.store, catalog=self.catalog)
        self.workflow = ScanCoordinator(self.store, self.connection, self.rules, backend, self.runner, self._notify)

    def add_listener(self, fn: Callable[[], None]):
        self._listeners.append(fn)

    def remove_listener(self, fn: Callable[[], None]):
        if fn in self._listeners:
            self._listeners.remove(fn)

    def _notify(self):
        for fn in list(self._listeners):
            try:
                fn()
            except Exception:
                logger.exception("Session listener failed")

    def start(self):
        self.store.load()

    def build_config(self):
        return self.store.config

    def close(self):
        self.store.flush()
        self.runner.shutdown(wait=False)
        if self.dispatcher is not None:
            # May be running on the dispatcher itself, so never join it here.
            self.dispatcher.shutdown(wait=False)

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the whole session, for the web API and debugging."""
        result = self.workflow.scan_result
        return {
            "config": self.store.config.to_dict(),
            "connection_status": self.connection.status.value,
            "connection_message": self.connection.message,
            "active_rule_count": self.rules.active_rule_count,
            "catalog": [item.to_dict() for item in self.catalog.presented()],
            "catalog_open": self.catalog.picker_open,
            "is_fetching_trackers": self.catalog.is_fetching,
            "workflow_state": self.workflow.state.value,
            "can_scan": self.workflow.can_scan,
            "can_execute": self.workflow.can_execute,
            "show_matches": self.workflow.show_matches,
            "scan_result": None
            if result is None
            else dict(
                result.to_dict(),
                match_percent=result.match_percent,
                match_keys=[match_key(i, m) for i, m in enumerate(result.matches)],
            ),
        }
