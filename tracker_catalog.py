from __future__ import annotations

import logging
from typing import List

from models import CatalogItem, TrackerEntry

logger = logging.getLogger(__name__)


class TrackerCatalog:
    """Tracker domains currently in use on the download client, for building rules."""

    def __init__(self, store, backend, runner, notify):
        self.store = store
        self.backend = backend
        self.runner = runner
        self.notify = notify
        self.entries: List[TrackerEntry] = []
        self.picker_open = False
        self.is_fetching = False

    def fetch(self):
        if self.is_fetching:
            return False
        self.is_fetching = True
        self.notify()
        self.runner.submit(self.backend.list_trackers, (self.store.connection,), self._on_fetched, self._on_fetch_failed)
        return True

    def _on_fetched(self, entries):
        self.entries = list(entries)
        self.picker_open = True
        self.is_fetching = False
        self.notify()

    def _on_fetch_failed(self, e):
        logger.error("Failed to fetch trackers: %s", e)
        self.is_fetching = False
        self.notify()

    def is_selectable(self, domain: str) -> bool:
        # Exact comparison: "Tracker.example" and "tracker.example" are different rules.
        return all(rule.old_domain != domain for rule in self.store.rules)

    def presented(self) -> List[CatalogItem]:
        used = {rule.old_domain for rule in self.store.rules}
        return [CatalogItem(domain=e.domain, count=e.count, selectable=e.domain not in used) for e in self.entries]

    def close_picker(self):
        if self.picker_open:
            self.picker_open = False
            self.notify()
