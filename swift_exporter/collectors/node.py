"""Node identity and cluster info access.

The node identity file is a flat ``key = value`` text file written by the
cluster provisioning layer::

    node_uuid = 6d8a...
    api_ip = 10.0.0.5
    api_port = 443
    api_hostname = cloud.example.com

Identity is read once at startup; its FQDN/UUID become the ``FQDN``/``UUID``
labels of every node-scoped gauge. The API address is used to reach the
cluster ``/info`` endpoint which reports the running Swift release.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

import requests

from swift_exporter.utils.exceptions import DataSourceError
from swift_exporter.utils.versions import SwiftVersion, parse_version

from .sources import HostSources

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


@dataclass(frozen=True)
class NodeIdentity:
    fqdn: str
    uuid: str
    api_ip: str = ""
    api_port: str = ""
    api_hostname: str = ""

    def labels(self) -> dict[str, str]:
        return {"FQDN": self.fqdn, "UUID": self.uuid}

    @property
    def info_url(self) -> str | None:
        host = self.api_hostname or self.api_ip
        if not host:
            return None
        if self.api_port == "443":
            return f"https://{host}/info"
        if self.api_port in ("", "80"):
            return f"http://{host}/info"
        return f"http://{host}:{self.api_port}/info"


def parse_node_config(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", ";", "[")) or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def load_node_identity(path: str, sources: HostSources) -> NodeIdentity:
    """Build the node identity; unreadable sources degrade to ``unknown`` labels."""
    try:
        values = parse_node_config(sources.read_text(path))
    except DataSourceError as e:
        logger.warning("Cannot read node config %s: %s", path, e)
        values = {}
    try:
        fqdn = sources.fqdn()
    except DataSourceError as e:
        logger.warning("Cannot resolve FQDN: %s", e)
        fqdn = UNKNOWN
    identity = NodeIdentity(
        fqdn=fqdn,
        uuid=values.get("node_uuid") or UNKNOWN,
        api_ip=values.get("api_ip", ""),
        api_port=values.get("api_port", ""),
        api_hostname=values.get("api_hostname", ""),
    )
    logger.info("Node identity: FQDN=%s UUID=%s", identity.fqdn, identity.uuid)
    return identity


class ClusterInfoClient:
    """Fetches ``/info`` from the cluster API and extracts the Swift version.

    The version changes only on upgrades, so a successful lookup is reused for
    ``cache_seconds`` instead of hitting the proxy on every collection.
    """

    def __init__(self, url: str | None, timeout: float = 5.0, cache_seconds: float = 300.0,
                 session: requests.Session | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self.cache_seconds = cache_seconds
        self._session = session or requests.Session()
        self._lock = threading.Lock()
        self._cached: SwiftVersion | None = None
        self._cached_at = 0.0

    def fetch(self) -> dict[str, Any]:
        if not self.url:
            raise DataSourceError("no API address in node config; cluster info unavailable")
        try:
            resp = self._session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.exceptions.RequestException as e:
            raise DataSourceError(f"GET {self.url}: {e}") from e
        except ValueError as e:
            raise DataSourceError(f"GET {self.url}: response is not JSON") from e
        if not isinstance(body, dict):
            raise DataSourceError(f"GET {self.url}: expected a JSON object")
        return body

    def swift_version(self) -> SwiftVersion | None:
        with self._lock:
            if self._cached is not None and time.monotonic() - self._cached_at < self.cache_seconds:
                return self._cached
        swift = self.fetch().get("swift")
        raw = swift.get("version") if isinstance(swift, dict) else None
        version = parse_version(raw)
        if version is None:
            raise DataSourceError(f"GET {self.url}: no usable swift.version in response ({raw!r})")
        with self._lock:
            self._cached = version
            self._cached_at = time.monotonic()
        return version


__all__ = ["NodeIdentity", "ClusterInfoClient", "parse_node_config", "load_node_identity", "UNKNOWN"]
