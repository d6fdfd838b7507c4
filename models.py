"""Records shared by the session, the backend and the presentation layers."""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Iterable, List, Optional, Tuple

QBITTORRENT = "qbittorrent"
TRANSMISSION = "transmission"
DOWNLOADER_TYPES = (QBITTORRENT, TRANSMISSION)

HTTPS_PORT = 443
DEFAULT_PORTS = {
    QBITTORRENT: 8080,
    TRANSMISSION: 9091,
}


def default_port(downloader_type: str, use_https: bool = False) -> int:
    if use_https:
        return HTTPS_PORT
    return DEFAULT_PORTS.get(downloader_type, DEFAULT_PORTS[QBITTORRENT])


def coerce_port(value: Any) -> int:
    """Turn raw port input into a port number; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        return 0
    if port < 0 or port > 65535:
        return 0
    return port


class ConnectionStatus(str, enum.Enum):
    IDLE = "idle"
    TESTING = "testing"
    CONNECTED = "connected"
    ERROR = "error"


class WorkflowState(str, enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    EXECUTING = "executing"


@dataclass(frozen=True)
class ConnectionConfig:
    downloader_type: str = QBITTORRENT
    host: str = "127.0.0.1"
    port: int = 8080
    username: str = "admin"
    password: str = ""
    use_https: bool = False

    @property
    def scheme(self) -> str:
        return "https" if self.use_https else "http"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectionConfig":
        if not isinstance(data, dict):
            raise ValueError("connection must be an object")
        defaults = cls()
        return cls(
            downloader_type=str(data.get("downloader_type", defaults.downloader_type)),
            host=str(data.get("host", defaults.host)),
            port=coerce_port(data.get("port", defaults.port)),
            username=str(data.get("username", defaults.username)),
            password=str(data.get("password", defaults.password)),
            use_https=bool(data.get("use_https", defaults.use_https)),
        )


CONNECTION_FIELDS = tuple(f.name for f in fields(ConnectionConfig))


@dataclass(frozen=True)
class Rule:
    old_domain: str = ""
    new_domain: str = ""
    enabled: bool = True

    @property
    def is_blank(self) -> bool:
        return not self.old_domain.strip() and not self.new_domain.strip()

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.old_domain.strip())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        if not isinstance(data, dict):
            raise ValueError("rule must be an object")
        return cls(
            old_domain=str(data.get("old_domain", "")),
            new_domain=str(data.get("new_domain", "")),
            enabled=bool(data.get("enabled", True)),
        )


RULE_FIELDS = tuple(f.name for f in fields(Rule))


@dataclass(frozen=True)
class AppConfig:
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    rules: Tuple[Rule, ...] = ()

    @classmethod
    def default(cls) -> "AppConfig":
        return cls(connection=ConnectionConfig(), rules=(Rule(),))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connection": self.connection.to_dict(),
            "rules": [r.to_dict() for r in self.rules],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        if not isinstance(data, dict):
            raise ValueError("config must be an object")
        rules = data.get("rules") or []
        if not isinstance(rules, list):
            raise ValueError("rules must be a list")
        return cls(
            connection=ConnectionConfig.from_dict(data.get("connection") or {}),
            rules=tuple(Rule.from_dict(r) for r in rules),
        )


@dataclass(frozen=True)
class MatchedTorrent:
    hash: str
    name: str
    old_url: str
    new_url: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def match_key(index: int, match: MatchedTorrent) -> str:
    return f"{match.hash}-{index}"


@dataclass(frozen=True)
class ScanResult:
    total_torrents: int
    matched_torrents: int
    matches: Tuple[MatchedTorrent, ...] = ()

    @property
    def match_percent(self) -> int:
        if not self.total_torrents:
            return 0
        return round(self.matched_torrents / self.total_torrents * 100)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_torrents": self.total_torrents,
            "matched_torrents": self.matched_torrents,
            "matches": [m.to_dict() for m in self.matches],
        }


@dataclass(frozen=True)
class ReplaceResult:
    torrent_name: str
    old_url: str
    new_url: str
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TrackerEntry:
    domain: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CatalogItem:
    domain: str
    count: int
    selectable: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TorrentTrackers:
    """One torrent as reported by a download client: identity plus announce URLs."""

    hash: str
    name: str
    trackers: Tuple[str, ...] = ()


def summarize_results(results: Iterable[ReplaceResult]) -> Tuple[int, int]:
    """Return (succeeded, failed) counts for a replacement batch."""
    items: List[ReplaceResult] = list(results)
    ok = sum(1 for r in items if r.success)
    return ok, len(items) - ok
