"""Host data sources.

`HostSources` is the one place the exporter touches the operating system:
psutil enumeration, ``/sys`` reads and subprocess calls (``du``, ``smartctl``,
``systemctl``, ``hostname``). Collectors only talk to this interface, so tests
substitute a fake object exposing the same methods.

Every failure surfaces as ``DataSourceError``; every subprocess call is bounded
by ``command_timeout``.
"""
from __future__ import annotations

import contextlib
import logging
import os
import re
import shutil
import subprocess
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import psutil

from swift_exporter.utils.exceptions import DataSourceError

logger = logging.getLogger(__name__)

_PARTITION_SUFFIX = re.compile(r"^((?:sd|hd|vd|xvd)[a-z]+)\d+$")
_NVME_PARTITION_SUFFIX = re.compile(r"^((?:nvme\d+n\d+|mmcblk\d+))p\d+$")


@dataclass(frozen=True)
class Partition:
    device: str
    mountpoint: str


@dataclass(frozen=True)
class DiskUsage:
    total: float
    used: float
    free: float
    inodes_total: float
    inodes_used: float
    inodes_free: float


@dataclass(frozen=True)
class Connection:
    local_port: int
    status: str


def block_device_name(device: str) -> str:
    """``/dev/sdb1`` -> ``sdb``; ``/dev/nvme0n1p2`` -> ``nvme0n1``; ``/dev/sdc`` -> ``sdc``."""
    base = os.path.basename(device)
    for pattern in (_PARTITION_SUFFIX, _NVME_PARTITION_SUFFIX):
        m = pattern.match(base)
        if m:
            return m.group(1)
    return base


@contextlib.contextmanager
def _source(what: str) -> Iterator[None]:
    try:
        yield
    except DataSourceError:
        raise
    except (OSError, psutil.Error, subprocess.SubprocessError) as e:
        raise DataSourceError(f"{what}: {e}") from e


class HostSources:
    def __init__(self, command_timeout: float = 60.0, sys_block_root: str = "/sys/block") -> None:
        self.command_timeout = command_timeout
        self.sys_block_root = sys_block_root

    # ------------------------------------------------------------------
    # Subprocess
    # ------------------------------------------------------------------
    def run_command(self, args: Sequence[str]) -> subprocess.CompletedProcess:
        """Run ``args`` with a timeout; non-zero exit status is returned, not raised."""
        logger.debug("running %s", " ".join(args))
        try:
            return subprocess.run(
                list(args), capture_output=True, text=True, timeout=self.command_timeout, check=False,
            )
        except FileNotFoundError as e:
            raise DataSourceError(f"{args[0]}: command not found") from e
        except subprocess.TimeoutExpired as e:
            raise DataSourceError(f"{args[0]}: timed out after {self.command_timeout}s") from e
        except OSError as e:
            raise DataSourceError(f"{args[0]}: {e}") from e

    def command_output(self, args: Sequence[str]) -> str:
        proc = self.run_command(args)
        if proc.returncode != 0:
            raise DataSourceError(
                f"{' '.join(args)} exited with status {proc.returncode}: {proc.stderr.strip()}"
            )
        return proc.stdout

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def fqdn(self) -> str:
        out = self.command_output(["hostname", "-f"]).strip()
        if not out:
            raise DataSourceError("hostname -f returned an empty name")
        return out

    def directory_size_kib(self, path: str) -> float:
        """``du -s`` of ``path`` in KiB blocks."""
        out = self.command_output(["du", "-s", path])
        try:
            return float(out.split("\t", 1)[0].split()[0])
        except (IndexError, ValueError) as e:
            raise DataSourceError(f"du -s {path}: unexpected output {out!r}") from e

    def smartctl(self, binary: str, *args: str) -> str:
        # smartctl encodes drive warnings in its exit status bits; only bits 0-1 mean the call failed
        proc = self.run_command([binary, *args])
        if proc.returncode & 0b11:
            raise DataSourceError(f"smartctl {' '.join(args)} failed with status {proc.returncode}")
        return proc.stdout

    def service_active(self, unit: str) -> bool:
        proc = self.run_command(["systemctl", "is-active", unit])
        return proc.stdout.strip() == "active"

    # ------------------------------------------------------------------
    # psutil / filesystem
    # ------------------------------------------------------------------
    def disk_partitions(self) -> list[Partition]:
        with _source("disk partitions"):
            return [Partition(p.device, p.mountpoint) for p in psutil.disk_partitions(all=False)]

    def disk_usage(self, path: str) -> DiskUsage:
        with _source(f"disk usage {path}"):
            usage = psutil.disk_usage(path)
            st = os.statvfs(path)
        return DiskUsage(
            total=float(usage.total),
            used=float(usage.used),
            free=float(usage.free),
            inodes_total=float(st.f_files),
            inodes_used=float(st.f_files - st.f_ffree),
            inodes_free=float(st.f_ffree),
        )

    def disk_io_counters(self) -> dict[str, Any]:
        with _source("disk io counters"):
            return dict(psutil.disk_io_counters(perdisk=True) or {})

    def cpu_times(self) -> list[dict[str, float]]:
        with _source("cpu times"):
            return [t._asdict() for t in psutil.cpu_times(percpu=True)]

    def net_io_counters(self) -> dict[str, Any]:
        with _source("nic io counters"):
            return dict(psutil.net_io_counters(pernic=True) or {})

    def mac_addresses(self) -> dict[str, str]:
        with _source("nic addresses"):
            addrs = psutil.net_if_addrs()
        macs: dict[str, str] = {}
        for name, entries in addrs.items():
            for entry in entries:
                if entry.family == psutil.AF_LINK:
                    macs[name] = entry.address
                    break
        return macs

    def nic_mtus(self) -> dict[str, int]:
        with _source("nic stats"):
            return {name: stats.mtu for name, stats in psutil.net_if_stats().items()}

    def tcp_connections(self) -> list[Connection]:
        with _source("tcp connections"):
            conns = psutil.net_connections(kind="tcp")
        return [Connection(c.laddr.port, c.status) for c in conns if c.laddr]

    def drive_type(self, device: str) -> str:
        """``HDD``/``SSD`` from the kernel rotational flag, ``unknown`` if unreadable."""
        path = os.path.join(self.sys_block_root, block_device_name(device), "queue", "rotational")
        try:
            with open(path, encoding="utf-8") as fh:
                flag = fh.read().strip()
        except OSError:
            logger.debug("cannot read %s", path)
            return "unknown"
        return {"1": "HDD", "0": "SSD"}.get(flag, "unknown")

    def read_text(self, path: str) -> str:
        with _source(f"read {path}"):
            with open(path, encoding="utf-8") as fh:
                return fh.read()

    def file_size(self, path: str) -> float:
        with _source(f"stat {path}"):
            return float(os.stat(path).st_size)

    def list_dir(self, path: str) -> list[str]:
        with _source(f"list {path}"):
            return sorted(os.listdir(path))

    def walk(self, root: str) -> Iterator[tuple[str, list[str], list[str]]]:
        """``os.walk`` of ``root``. Raises DataSourceError after the walk if any
        directory could not be listed.
        """
        if not os.path.isdir(root):
            raise DataSourceError(f"walk {root}: not a directory")
        errors: list[OSError] = []
        yield from os.walk(root, onerror=errors.append)
        if errors:
            first = errors[0]
            raise DataSourceError(
                f"walk {root}: cannot list {len(errors)} director(ies), first {first.filename}: {first.strerror}"
            )


__all__ = ["HostSources", "Partition", "DiskUsage", "Connection", "block_device_name"]
