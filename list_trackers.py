#!/usr/bin/env python3
"""Print the tracker domains in use on the saved download client."""

import logging
import sys

from backend import Backend
from errors import TrackerReloError
from log_setup import setup_logging

logger = logging.getLogger(__name__)


def format_tracker_table(entries, rules=()):
    """Render tracker entries as a text table; domains already covered by a rule are flagged."""
    if not entries:
        return "No trackers found"
    used = {r.old_domain for r in rules}
    width = max(len("Domain"), max(len(e.domain) for e in entries))
    lines = [f"{'Domain'.ljust(width)} | Torrents | Rule", "-" * (width + 18)]
    for e in entries:
        mark = "yes" if e.domain in used else ""
        lines.append(f"{e.domain.ljust(width)} | {str(e.count).rjust(8)} | {mark}")
    return "\n".join(lines)


def main():
    setup_logging(level=logging.WARNING)
    backend = Backend()
    try:
        config = backend.load_config()
    except TrackerReloError as e:
        print(f"Error: {e}")
        return 1

    conn = config.connection
    print(f"Connecting to {conn.downloader_type} at {conn.host}:{conn.port} as {conn.username}")
    try:
        entries = backend.list_trackers(conn)
    except TrackerReloError as e:
        print(f"Error: {e}")
        return 1

    print(f"Found {len(entries)} tracker domains")
    print(format_tracker_table(entries, config.rules))
    return 0


if __name__ == "__main__":
    sys.exit(main())
