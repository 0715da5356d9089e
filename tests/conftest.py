"""Shared fixtures for the swift_exporter test-suite.

Collectors never touch the host directly; they go through a data-source
object. ``FakeSources`` implements the same surface as
``swift_exporter.collectors.sources.HostSources`` from canned values and
records every call so tests can assert which collaborators were hit.
"""
from __future__ import annotations

import contextlib
import socket
from collections import namedtuple
from types import SimpleNamespace

import pytest

from swift_exporter.collectors.context import CollectorContext
from swift_exporter.collectors.node import NodeIdentity
from swift_exporter.collectors.policies import StoragePolicies
from swift_exporter.collectors.sources import Connection, DiskUsage, Partition
from swift_exporter.config.loader import ExporterConfig
from swift_exporter.metrics.spec import build_registry
from swift_exporter.utils.exceptions import DataSourceError
from swift_exporter.utils.versions import SwiftVersion

FQDN = "storage-01.example.com"
UUID = "6d8a0b3e-node"

DiskIO = namedtuple(
    "DiskIO",
    "read_count write_count read_bytes write_bytes read_time write_time "
    "read_merged_count write_merged_count busy_time",
)
NicIO = namedtuple("NicIO", "bytes_sent bytes_recv packets_sent packets_recv errin errout dropin dropout")


def find_free_port() -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class FakeSources:
    """Canned host data. Missing entries raise DataSourceError like the real thing."""

    def __init__(self, **kw):
        self.partitions: list[Partition] = kw.get("partitions", [])
        self.drive_types: dict[str, str] = kw.get("drive_types", {})
        self.usage: dict[str, DiskUsage] = kw.get("usage", {})
        self.io: dict = kw.get("io", {})
        self.cpu: list[dict] = kw.get("cpu", [])
        self.nics: dict = kw.get("nics", {})
        self.macs: dict[str, str] = kw.get("macs", {})
        self.mtus: dict[str, int] = kw.get("mtus", {})
        self.connections: list[Connection] = kw.get("connections", [])
        self.texts: dict[str, str] = kw.get("texts", {})
        self.sizes: dict[str, float] = kw.get("sizes", {})
        self.dirs: dict[str, list[str]] = kw.get("dirs", {})
        self.du: dict[str, float] = kw.get("du", {})
        self.smart: dict[tuple[str, str], str] = kw.get("smart", {})
        self.smartctl_path: str | None = kw.get("smartctl_path", "/usr/sbin/smartctl")
        self.services: dict[str, bool] = kw.get("services", {})
        self.walk_entries: list = kw.get("walk_entries", [])
        self.hostname: str | None = kw.get("hostname", FQDN)
        self.calls: list[tuple] = []

    def _record(self, *call):
        self.calls.append(call)

    def calls_to(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def fqdn(self):
        self._record("fqdn")
        if self.hostname is None:
            raise DataSourceError("hostname -f: command not found")
        return self.hostname

    def which(self, name):
        self._record("which", name)
        return self.smartctl_path if name == "smartctl" else None

    def disk_partitions(self):
        self._record("disk_partitions")
        return list(self.partitions)

    def drive_type(self, device):
        return self.drive_types.get(device, "unknown")

    def disk_usage(self, path):
        self._record("disk_usage", path)
        try:
            return self.usage[path]
        except KeyError:
            raise DataSourceError(f"disk usage {path}: no such mount") from None

    def disk_io_counters(self):
        self._record("disk_io_counters")
        return dict(self.io)

    def cpu_times(self):
        self._record("cpu_times")
        return list(self.cpu)

    def net_io_counters(self):
        self._record("net_io_counters")
        return dict(self.nics)

    def mac_addresses(self):
        self._record("mac_addresses")
        return dict(self.macs)

    def nic_mtus(self):
        self._record("nic_mtus")
        return dict(self.mtus)

    def tcp_connections(self):
        self._record("tcp_connections")
        return list(self.connections)

    def read_text(self, path):
        # canned text first, then the real file (tests using tmp_path layouts)
        self._record("read_text", path)
        if path in self.texts:
            return self.texts[path]
        try:
            with open(path, encoding="utf-8") as fh:
                return fh.read()
        except OSError as e:
            raise DataSourceError(f"read {path}: {e}") from e

    def file_size(self, path):
        self._record("file_size", path)
        try:
            return self.sizes[path]
        except KeyError:
            raise DataSourceError(f"stat {path}: No such file or directory") from None

    def list_dir(self, path):
        self._record("list_dir", path)
        return list(self.dirs.get(path, []))

    def directory_size_kib(self, path):
        self._record("du", path)
        try:
            return self.du[path]
        except KeyError:
            raise DataSourceError(f"du -s {path} exited with status 1") from None

    def smartctl(self, binary, *args):
        self._record("smartctl", *args)
        try:
            return self.smart[(args[0], args[1])]
        except KeyError:
            raise DataSourceError(f"smartctl {' '.join(args)} failed with status 2") from None

    def service_active(self, unit):
        self._record("service_active", unit)
        return self.services.get(unit, False)

    def walk(self, root):
        self._record("walk", root)
        return iter(self.walk_entries)


class FakeCluster:
    def __init__(self, version: SwiftVersion | None = SwiftVersion(2, 20), error: Exception | None = None):
        self.version = version
        self.error = error
        self.calls = 0

    def swift_version(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.version


@pytest.fixture
def fake_sources():
    return FakeSources()


@pytest.fixture
def node():
    return NodeIdentity(fqdn=FQDN, uuid=UUID, api_ip="10.0.0.5", api_port="443")


@pytest.fixture
def make_ctx(node):
    """Build a CollectorContext over a fresh registry.

    make_ctx(sources=..., cluster=..., policies={0: "Gold"}, disabled=[...], **config_overrides)
    """
    def _make(sources=None, cluster=None, policies=None, disabled=(), **overrides):
        cfg = ExporterConfig().with_disabled(*disabled)
        if overrides:
            cfg = cfg.with_overrides(**overrides)
        return CollectorContext(
            registry=build_registry(),
            config=cfg,
            node=node,
            sources=sources if sources is not None else FakeSources(),
            policies=StoragePolicies(policies or {}),
            cluster=cluster if cluster is not None else FakeCluster(),
        )
    return _make


@pytest.fixture
def labels():
    """Node label helper: labels(extra=...) -> full label mapping."""
    def _labels(**extra):
        return {"FQDN": FQDN, "UUID": UUID, **extra}
    return _labels


@pytest.fixture
def free_port():
    return find_free_port()


@pytest.fixture
def swift_node_files(tmp_path):
    """A throwaway on-disk node layout with every file the default config expects."""
    paths = SimpleNamespace(
        account_recon=tmp_path / "account.recon",
        container_recon=tmp_path / "container.recon",
        object_recon=tmp_path / "object.recon",
        progress=tmp_path / "replication_progress.json",
        swift_log=tmp_path / "all.log",
        swift_conf=tmp_path / "swift.conf",
        node_conf=tmp_path / "ssnode.conf",
        drive_root=tmp_path / "node",
    )
    paths.account_recon.write_text('{"replication_stats": {"attempted": 10}, "replication_time": 5}')
    paths.container_recon.write_text('{"replication_stats": {"attempted": 20}, "replication_time": 10}')
    paths.object_recon.write_text('{"replication_stats": {"attempted": 120}, "object_replication_time": 2}')
    paths.progress.write_text("{}")
    paths.swift_log.write_text("x" * 128)
    paths.swift_conf.write_text("[storage-policy:0]\nname = Gold\n\n[storage-policy:1]\nname = Silver\n")
    paths.node_conf.write_text("node_uuid = file-uuid\napi_ip = 10.0.0.5\napi_port = 443\n")
    paths.drive_root.mkdir()
    paths.config = ExporterConfig(
        account_recon_file=str(paths.account_recon),
        container_recon_file=str(paths.container_recon),
        object_recon_file=str(paths.object_recon),
        replication_progress_file=str(paths.progress),
        swift_log_file=str(paths.swift_log),
        swift_config_file=str(paths.swift_conf),
        node_config_file=str(paths.node_conf),
        swift_drive_root=str(paths.drive_root),
    )
    return paths
