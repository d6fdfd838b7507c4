"""Error types raised across the backend command boundary.

None of these are fatal: the session turns each one into a state transition
plus, at most, a message.
"""

from __future__ import annotations


class TrackerReloError(Exception):
    pass


class LoadError(TrackerReloError):
    """Stored config could not be read or parsed."""


class SaveError(TrackerReloError):
    """Config could not be written."""


class DownloaderError(TrackerReloError):
    """A download client rejected a request or could not be reached."""


class ClientConnectionError(TrackerReloError):
    """Connection test failed (network, TLS or authentication)."""


class FetchError(TrackerReloError):
    pass


class ScanError(TrackerReloError):
    pass


class ExecuteError(TrackerReloError):
    pass
