"""HTTP export endpoint.

Routes:
  GET /metrics  -> 200, Prometheus text exposition of the registry at request time

Anything else answers 404. The registry is read fresh on every request (no
caching) and collection failures never reach this layer: as long as the
process is alive the endpoint serves whatever was last collected.
"""
from __future__ import annotations

import logging
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from prometheus_client import CONTENT_TYPE_LATEST

from .registry import MetricsRegistry

logger = logging.getLogger(__name__)

DEFAULT_PORT = 53167
METRICS_PATH = "/metrics"


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` / ``:port`` into a bind tuple (empty host -> all interfaces)."""
    host, sep, port = address.rpartition(":")
    if not sep:
        host, port = address, str(DEFAULT_PORT)
    host = host.strip("[]") or "0.0.0.0"
    try:
        return host, int(port)
    except ValueError as e:
        raise ValueError(f"invalid listen address {address!r}") from e


class _MetricsHandler(BaseHTTPRequestHandler):
    server_version = "SwiftExporter/1.0"
    registry: MetricsRegistry  # bound by MetricsHTTPServer

    _BENIGN_ERRORS = (BrokenPipeError, ConnectionResetError, TimeoutError)

    def handle(self):
        try:
            super().handle()
        except self._BENIGN_ERRORS as e:  # pragma: no cover - timing dependent
            logger.debug("metrics_http: client went away: %s", e)

    def log_message(self, format, *args):  # route access log to debug
        logger.debug("metrics_http: %s", format % args)

    def do_GET(self):  # noqa: N802
        if urlsplit(self.path).path != METRICS_PATH:
            self.send_error(404, "Not Found")
            return
        try:
            body = self.registry.exposition()
        except Exception:
            logger.exception("metrics_http: exposition failed")
            self.send_error(500, "Exposition failed")
            return
        self.send_response(200)
        self.send_header("Content-Type", CONTENT_TYPE_LATEST)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)


class _HTTPServer(ThreadingHTTPServer):
    daemon_threads = True


class _IPv6HTTPServer(_HTTPServer):
    address_family = socket.AF_INET6


class MetricsHTTPServer:
    """Serve one registry on a background daemon thread."""

    def __init__(self, registry: MetricsRegistry, host: str = "0.0.0.0", port: int = DEFAULT_PORT) -> None:
        handler = type("MetricsHandler", (_MetricsHandler,), {"registry": registry})
        server_class = _IPv6HTTPServer if ":" in host else _HTTPServer
        self._httpd = server_class((host, port), handler)
        self._thread: threading.Thread | None = None

    @property
    def server_address(self) -> tuple[str, int]:
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    def start(self) -> MetricsHTTPServer:
        if self._thread is not None:
            return self
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            kwargs={"poll_interval": 0.5},
            name="swift-exporter-http",
            daemon=True,
        )
        self._thread.start()
        host, port = self.server_address
        logger.info("Metrics available at http://%s:%s%s", host, port, METRICS_PATH)
        return self

    def shutdown(self) -> None:
        # BaseServer.shutdown() blocks forever unless serve_forever is running
        if self._thread is not None:
            self._httpd.shutdown()
            self._thread.join(timeout=5)
            self._thread = None
        self._httpd.server_close()


__all__ = ["MetricsHTTPServer", "parse_listen_address", "DEFAULT_PORT", "METRICS_PATH"]
