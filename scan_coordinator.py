"""Two-phase scan -> execute workflow.

Scanning is a dry run that previews the replacements; executing applies them
and discards the preview, so every execute is preceded by a fresh scan. The
workflow is never scanning and executing at the same time.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from models import ReplaceResult, ScanResult, WorkflowState, summarize_results

logger = logging.getLogger(__name__)


class ScanCoordinator:
    def __init__(self, store, connection, editor, backend, runner, notify):
        self.store = store
        self.connection = connection
        self.editor = editor
        self.backend = backend
        self.runner = runner
        self.notify = notify
        self.state = WorkflowState.IDLE
        self.scan_result: Optional[ScanResult] = None
        self.show_matches = False

    @property
    def is_scanning(self) -> bool:
        return self.state == WorkflowState.SCANNING

    @property
    def is_executing(self) -> bool:
        return self.state == WorkflowState.EXECUTING

    @property
    def is_busy(self) -> bool:
        return self.is_scanning or self.is_executing

    @property
    def can_scan(self) -> bool:
        return self.connection.is_connected and self.editor.active_rule_count > 0 and not self.is_busy

    @property
    def can_execute(self) -> bool:
        return (
            self.connection.is_connected
            and not self.is_busy
            and self.scan_result is not None
            and self.scan_result.matched_torrents > 0
        )

    def scan(self) -> bool:
        if not self.can_scan:
            logger.debug("Scan refused (state=%s, connection=%s)", self.state.value, self.connection.status.value)
            return False
        # Drop the old preview before the new one loads.
        self.scan_result = None
        self.show_matches = False
        self.state = WorkflowState.SCANNING
        self.notify()
        self.runner.submit(self.backend.scan_torrents, (self.store.config,), self._on_scanned, self._on_scan_failed)
        return True

    def _on_scanned(self, result: ScanResult):
        self.scan_result = result
        self.state = WorkflowState.IDLE
        self.notify()

    def _on_scan_failed(self, e):
        logger.error("Scan failed: %s", e)
        self.state = WorkflowState.IDLE
        self.notify()

    def execute(self, on_done: Optional[Callable[[List[ReplaceResult]], None]] = None) -> bool:
        if not self.can_execute:
            logger.debug("Execute refused (state=%s, scan_result=%s)", self.state.value, self.scan_result is not None)
            return False
        self.state = WorkflowState.EXECUTING
        self.notify()
        self.runner.submit(
            self.backend.execute_replace,
            (self.store.config,),
            lambda results: self._on_executed(results, on_done),
            self._on_execute_failed,
        )
        return True

    def _on_executed(self, results, on_done):
        ok, failed = summarize_results(results)
        logger.info("Execute finished: %d replaced, %d failed", ok, failed)
        self.scan_result = None
        self.show_matches = False
        self.state = WorkflowState.IDLE
        self.notify()
        if on_done is not None:
            on_done(list(results))

    def _on_execute_failed(self, e):
        logger.error("Execute failed: %s", e)
        self.state = WorkflowState.IDLE
        self.notify()

    def toggle_matches(self):
        if self.scan_result is None:
            return
        self.show_matches = not self.show_matches
        self.notify()
