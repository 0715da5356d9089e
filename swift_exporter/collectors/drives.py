"""Swift drive discovery.

A Swift drive is a mounted partition whose mount point sits directly under the
drive root (``/srv/node/d1`` -> label ``d1``).
"""
from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass

from .context import CollectorContext
from .sources import block_device_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwiftDrive:
    label: str
    mountpoint: str
    device: str
    drive_type: str

    @property
    def disk_device(self) -> str:
        """Whole-disk device node (``/dev/sdb1`` -> ``/dev/sdb``)."""
        return "/dev/" + block_device_name(self.device)


def drive_label(mountpoint: str, root: str) -> str | None:
    root = posixpath.normpath(root)
    mount = posixpath.normpath(mountpoint)
    if posixpath.dirname(mount) != root:
        return None
    return posixpath.basename(mount) or None


def list_swift_drives(ctx: CollectorContext) -> list[SwiftDrive]:
    """Mounted Swift drives, sorted by label. Raises DataSourceError."""
    root = ctx.config.swift_drive_root
    drives: list[SwiftDrive] = []
    seen: set[str] = set()
    for part in ctx.sources.disk_partitions():
        label = drive_label(part.mountpoint, root)
        if label is None or label in seen:
            continue
        seen.add(label)
        drives.append(SwiftDrive(label, part.mountpoint, part.device, ctx.sources.drive_type(part.device)))
    if not drives:
        logger.debug("no drives mounted under %s", root)
    return sorted(drives, key=lambda d: d.label)


__all__ = ["SwiftDrive", "drive_label", "list_swift_drives"]
