import abc
import logging
from urllib.parse import urlparse

import qbittorrentapi
from transmission_rpc import Client as TransClient
from transmission_rpc import TransmissionError

from errors import DownloaderError
from models import QBITTORRENT, TRANSMISSION, TorrentTrackers

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 5
READ_TIMEOUT = 10


def safe_tracker_domain(tracker_url):
    if not tracker_url:
        return ""
    try:
        return urlparse(tracker_url).hostname or ""
    except ValueError:
        return ""


def is_announce_url(url):
    # qBittorrent lists DHT/PeX/LSD as pseudo-trackers ("** [DHT] **").
    return url.startswith(("http", "udp"))


class BaseClient(abc.ABC):
    @abc.abstractmethod
    def test_connection(self):
        """Return a short human-readable description of the remote client."""

    @abc.abstractmethod
    def list_torrents(self):
        """Return every torrent with its tracker URLs as TorrentTrackers."""

    @abc.abstractmethod
    def replace_tracker(self, h, old_url, new_url):
        pass


# --- qBit ---
class QBittorrentClient(BaseClient):
    def __init__(self, host, port, us, pw, use_https=False):
        scheme = "https" if use_https else "http"
        self.base_url = f"{scheme}://{host}:{port}"
        self.c = qbittorrentapi.Client(
            host=self.base_url,
            username=us,
            password=pw,
            VERIFY_WEBUI_CERTIFICATE=not use_https,
            REQUESTS_ARGS={"timeout": (CONNECT_TIMEOUT, READ_TIMEOUT)},
        )
        try:
            self.c.auth_log_in()
        except qbittorrentapi.LoginFailed as e:
            raise DownloaderError(f"Login failed: {e}") from e
        except qbittorrentapi.APIError as e:
            raise DownloaderError(f"Connection failed: {e}") from e

    def test_connection(self):
        try:
            return f"qBittorrent {self.c.app_version()}"
        except qbittorrentapi.APIError as e:
            raise DownloaderError(f"Connection failed: {e}") from e

    def list_torrents(self):
        try:
            res = []
            for t in self.c.torrents_info():
                trackers = self.c.torrents_trackers(torrent_hash=t.hash)
                urls = [tr.get("url", "") for tr in trackers]
                res.append(TorrentTrackers(hash=t.hash, name=t.name, trackers=tuple(u for u in urls if is_announce_url(u))))
            return res
        except qbittorrentapi.APIError as e:
            raise DownloaderError(str(e)) from e

    def replace_tracker(self, h, old_url, new_url):
        try:
            self.c.torrents_edit_tracker(torrent_hash=h, original_url=old_url, new_url=new_url)
        except qbittorrentapi.APIError as e:
            raise DownloaderError(f"Edit tracker failed: {e}") from e


# --- Trans ---
class TransmissionClient(BaseClient):
    RPC_PATH = "/transmission/rpc"

    def __init__(self, host, port, us, pw, use_https=False):
        try:
            self.c = TransClient(
                protocol="https" if use_https else "http",
                host=host,
                port=port,
                path=self.RPC_PATH,
                username=us or None,
                password=pw or None,
                timeout=READ_TIMEOUT,
            )
        except TransmissionError as e:
            raise DownloaderError(f"Connection failed: {e}") from e

    def test_connection(self):
        try:
            version = self.c.get_session().version
        except TransmissionError as e:
            raise DownloaderError(f"Connection failed: {e}") from e
        return f"Transmission {version or 'unknown'}"

    def list_torrents(self):
        try:
            ts = self.c.get_torrents(arguments=["id", "hashString", "name", "trackers"])
        except TransmissionError as e:
            raise DownloaderError(str(e)) from e
        res = []
        for t in ts:
            urls = tuple(tr.announce for tr in (t.trackers or []) if tr.announce)
            res.append(TorrentTrackers(hash=t.hashString, name=t.name, trackers=urls))
        return res

    def replace_tracker(self, h, old_url, new_url):
        try:
            t = self.c.get_torrent(h, arguments=["id", "trackers"])
        except (TransmissionError, KeyError) as e:
            raise DownloaderError(f"Torrent not found: {e}") from e
        tracker_id = next((tr.id for tr in (t.trackers or []) if tr.announce == old_url), None)
        if tracker_id is None:
            raise DownloaderError("Tracker not found in torrent")
        try:
            self.c.change_torrent(h, tracker_replace=[(tracker_id, new_url)])
        except TransmissionError as e:
            raise DownloaderError(f"Edit tracker failed: {e}") from e


CLIENT_CLASSES = {
    QBITTORRENT: QBittorrentClient,
    TRANSMISSION: TransmissionClient,
}


def create_client(connection):
    """Connect to the download client described by a ConnectionConfig."""
    logger.info("Connecting to %s at %s:%s", connection.downloader_type, connection.host, connection.port)
    cls = CLIENT_CLASSES.get(connection.downloader_type)
    if cls is None:
        logger.error("Unknown downloader type: %s", connection.downloader_type)
        raise DownloaderError(f"Unknown downloader type: {connection.downloader_type}")
    return cls(connection.host, connection.port, connection.username, connection.password, connection.use_https)
