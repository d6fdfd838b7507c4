from __future__ import annotations

import dataclasses
import logging
from typing import Any

from models import CONNECTION_FIELDS, ConnectionConfig, ConnectionStatus, coerce_port, default_port

logger = logging.getLogger(__name__)


def apply_connection_edit(connection: ConnectionConfig, field: str, value: Any) -> ConnectionConfig:
    """Return ``connection`` with one field replaced.

    Switching the client type or the scheme resets the port to that
    combination's default; editing the port itself never does.
    """
    if field not in CONNECTION_FIELDS:
        raise KeyError(field)
    if field == "port":
        value = coerce_port(value)
    elif field == "use_https":
        value = bool(value)
    else:
        value = "" if value is None else str(value)

    updated = dataclasses.replace(connection, **{field: value})
    if field in ("downloader_type", "use_https"):
        updated = dataclasses.replace(updated, port=default_port(updated.downloader_type, updated.use_https))
    return updated


class ConnectionSession:
    def __init__(self, store, backend, runner, notify):
        self.store = store
        self.backend = backend
        self.runner = runner
        self.notify = notify
        self.status = ConnectionStatus.IDLE
        self.message = ""
        # Bumped on every edit so a test started before the edit cannot
        # report on settings that no longer exist.
        self._generation = 0

    @property
    def connection(self) -> ConnectionConfig:
        return self.store.connection

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    @property
    def can_test(self) -> bool:
        return self.status != ConnectionStatus.TESTING

    def update(self, field: str, value: Any):
        updated = apply_connection_edit(self.connection, field, value)
        self._generation += 1
        self.status = ConnectionStatus.IDLE
        self.message = ""
        self.store.replace_connection(updated)

    def test(self):
        self.status = ConnectionStatus.TESTING
        self.message = ""
        generation = self._generation
        self.notify()
        self.runner.submit(
            self.backend.test_connection,
            (self.connection,),
            lambda msg: self._on_tested(generation, msg),
            lambda e: self._on_test_failed(generation, e),
        )

    def _on_tested(self, generation, message):
        if generation != self._generation:
            logger.debug("Discarding connection test result for superseded settings")
            return
        self.status = ConnectionStatus.CONNECTED
        self.message = str(message)
        self.notify()

    def _on_test_failed(self, generation, e):
        if generation != self._generation:
            logger.debug("Discarding connection test failure for superseded settings")
            return
        self.status = ConnectionStatus.ERROR
        self.message = str(e)
        self.notify()
