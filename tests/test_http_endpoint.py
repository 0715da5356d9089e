import contextlib
import socket
import urllib.error
from http.server import ThreadingHTTPServer
import urllib.request

import pytest
from prometheus_client import CONTENT_TYPE_LATEST

from swift_exporter.metrics.server import MetricsHTTPServer, parse_listen_address
from swift_exporter.metrics.spec import build_registry


@pytest.fixture
def served_registry(free_port):
    reg = build_registry()
    server = MetricsHTTPServer(reg, "127.0.0.1", free_port).start()
    try:
        yield reg, f"http://127.0.0.1:{free_port}"
    finally:
        server.shutdown()


def _get(url):
    with contextlib.closing(urllib.request.urlopen(url, timeout=5)) as resp:  # noqa: S310 - local test server
        return resp.status, resp.headers, resp.read().decode()


def test_metrics_served_fresh_on_every_scrape(served_registry):
    reg, base = served_registry
    reg.set("swift_log_file_size", {"FQDN": "a", "UUID": "u"}, 1)
    status, headers, body = _get(base + "/metrics")
    assert status == 200
    assert headers["Content-Type"] == CONTENT_TYPE_LATEST
    assert headers["Cache-Control"] == "no-store"
    assert 'swift_log_file_size{FQDN="a",UUID="u"} 1.0' in body

    reg.set("swift_log_file_size", {"FQDN": "a", "UUID": "u"}, 2)
    _, _, body = _get(base + "/metrics")
    assert 'swift_log_file_size{FQDN="a",UUID="u"} 2.0' in body


def test_unset_families_have_no_samples(served_registry):
    _, base = served_registry
    _, _, body = _get(base + "/metrics")
    assert "# HELP nic_mtu NIC MTU reading" in body
    assert "nic_mtu{" not in body


@pytest.mark.parametrize("path", ["/", "/metrics/extra", "/health"])
def test_other_paths_are_404(served_registry, path):
    _, base = served_registry
    with pytest.raises(urllib.error.HTTPError) as exc:
        _get(base + path)
    assert exc.value.code == 404


def test_query_string_is_ignored(served_registry):
    _, base = served_registry
    status, _, _ = _get(base + "/metrics?name[]=nic_mtu")
    assert status == 200


def test_server_address_and_shutdown_without_start(free_port):
    server = MetricsHTTPServer(build_registry(), "127.0.0.1", free_port)
    assert server.server_address == ("127.0.0.1", free_port)
    server.shutdown()


def test_server_leaves_stdlib_class_untouched(free_port):
    before = ThreadingHTTPServer.__dict__.get("allow_reuse_address")
    MetricsHTTPServer(build_registry(), "127.0.0.1", free_port).shutdown()
    assert ThreadingHTTPServer.__dict__.get("allow_reuse_address") == before


@pytest.mark.skipif(not socket.has_ipv6, reason="no IPv6 support")
def test_serves_on_ipv6_loopback(free_port):
    reg = build_registry()
    try:
        server = MetricsHTTPServer(reg, "::1", free_port)
    except OSError as e:
        pytest.skip(f"cannot bind ::1: {e}")
    server.start()
    try:
        reg.set("swift_log_file_size", {"FQDN": "a", "UUID": "u"}, 3)
        status, _, body = _get(f"http://[::1]:{free_port}/metrics")
    finally:
        server.shutdown()
    assert status == 200
    assert 'swift_log_file_size{FQDN="a",UUID="u"} 3.0' in body
    assert server.server_address == ("::1", free_port)


@pytest.mark.parametrize("address, expected", [
    (":53167", ("0.0.0.0", 53167)),
    ("127.0.0.1:9100", ("127.0.0.1", 9100)),
    ("[::1]:9100", ("::1", 9100)),
])
def test_parse_listen_address(address, expected):
    assert parse_listen_address(address) == expected


def test_parse_listen_address_rejects_garbage():
    with pytest.raises(ValueError):
        parse_listen_address("host:port")
