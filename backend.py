"""Backend commands: the request/response boundary the session talks to.

Every method is blocking and is meant to run on the worker pool
(see task_runner.TaskRunner). Failures are raised as the error types in
errors.py with a human-readable message.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

from clients import create_client, safe_tracker_domain
from config_manager import ConfigManager
from errors import (
    ClientConnectionError,
    DownloaderError,
    ExecuteError,
    FetchError,
    ScanError,
)
from models import (
    AppConfig,
    ConnectionConfig,
    MatchedTorrent,
    ReplaceResult,
    Rule,
    ScanResult,
    TrackerEntry,
    summarize_results,
)

logger = logging.getLogger(__name__)


def apply_rules(tracker_url: str, rules: Iterable[Rule]) -> Optional[str]:
    """Return the rewritten URL for the first enabled rule that matches, else None."""
    for rule in rules:
        if not rule.enabled:
            continue
        old_domain = rule.old_domain.strip()
        if not old_domain:
            continue
        if old_domain in tracker_url:
            return tracker_url.replace(old_domain, rule.new_domain.strip())
    return None


def count_tracker_domains(torrents) -> List[TrackerEntry]:
    counts: Dict[str, int] = {}
    for torrent in torrents:
        # A domain counts once per torrent, however many announce URLs use it.
        seen: Set[str] = set()
        for url in torrent.trackers:
            domain = safe_tracker_domain(url)
            if domain:
                seen.add(domain)
        for domain in seen:
            counts[domain] = counts.get(domain, 0) + 1
    entries = [TrackerEntry(domain=d, count=c) for d, c in counts.items()]
    entries.sort(key=lambda e: (-e.count, e.domain))
    return entries


class Backend:
    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        client_factory: Callable = create_client,
    ) -> None:
        self.config_manager = config_manager or ConfigManager()
        self.client_factory = client_factory

    def load_config(self) -> AppConfig:
        return self.config_manager.load_config()

    def save_config(self, config: AppConfig) -> None:
        self.config_manager.save_config(config)

    def test_connection(self, connection: ConnectionConfig) -> str:
        logger.info("Testing connection to %s", connection.downloader_type)
        try:
            message = self.client_factory(connection).test_connection()
        except DownloaderError as e:
            logger.warning("Connection test failed: %s", e)
            raise ClientConnectionError(str(e)) from e
        logger.info("Connection test succeeded: %s", message)
        return message

    def list_trackers(self, connection: ConnectionConfig) -> List[TrackerEntry]:
        logger.info("Listing tracker domains")
        try:
            torrents = self.client_factory(connection).list_torrents()
        except DownloaderError as e:
            raise FetchError(str(e)) from e
        entries = count_tracker_domains(torrents)
        logger.info("Found %d unique tracker domains", len(entries))
        return entries

    def scan_torrents(self, config: AppConfig) -> ScanResult:
        active = sum(1 for r in config.rules if r.enabled)
        logger.info("Scanning torrents with %d active rules", active)
        try:
            torrents = self.client_factory(config.connection).list_torrents()
        except DownloaderError as e:
            raise ScanError(str(e)) from e

        matches = []
        for torrent in torrents:
            for url in torrent.trackers:
                new_url = apply_rules(url, config.rules)
                if new_url is not None:
                    matches.append(MatchedTorrent(hash=torrent.hash, name=torrent.name, old_url=url, new_url=new_url))

        matched_torrents = len({m.hash for m in matches})
        logger.info(
            "Scan complete: %d total torrents, %d matched, %d replacements",
            len(torrents),
            matched_torrents,
            len(matches),
        )
        return ScanResult(total_torrents=len(torrents), matched_torrents=matched_torrents, matches=tuple(matches))

    def execute_replace(self, config: AppConfig) -> List[ReplaceResult]:
        logger.info("Executing tracker replacements")
        try:
            client = self.client_factory(config.connection)
            torrents = client.list_torrents()
        except DownloaderError as e:
            raise ExecuteError(str(e)) from e

        results = []
        for torrent in torrents:
            for url in torrent.trackers:
                new_url = apply_rules(url, config.rules)
                if new_url is None:
                    continue
                try:
                    client.replace_tracker(torrent.hash, url, new_url)
                except DownloaderError as e:
                    logger.error("Failed to replace tracker for '%s': %s", torrent.name, e)
                    results.append(ReplaceResult(torrent.name, url, new_url, success=False, error=str(e)))
                else:
                    results.append(ReplaceResult(torrent.name, url, new_url, success=True))

        ok, failed = summarize_results(results)
        logger.info("Replacement complete: %d succeeded, %d failed", ok, failed)
        return results
