"""Drive-level collectors: space, inodes, IO counters, per-policy usage,
file counts and the Swift log size.
"""
from __future__ import annotations

import logging
import os

from swift_exporter.metrics.derived import ratio

from .context import CollectorContext, ItemErrors, module_gate
from .drives import list_swift_drives
from .policies import is_objects_dir

logger = logging.getLogger(__name__)

# psutil sdiskio attribute -> metric_name label
IO_FIELDS: tuple[tuple[str, str], ...] = (
    ("read_count", "readCount"),
    ("read_merged_count", "mergedReadCount"),
    ("write_count", "writeCount"),
    ("write_merged_count", "mergedWriteCount"),
    ("read_bytes", "readBytes"),
    ("write_bytes", "writeBytes"),
    ("read_time", "readTime"),
    ("write_time", "writeTime"),
    ("busy_time", "ioTime"),
)


@module_gate("SwiftDiskUsage")
def swift_disk_usage(ctx: CollectorContext) -> None:
    errors = ItemErrors("SwiftDiskUsage")
    for drive in list_swift_drives(ctx):
        with errors.guard(drive.label):
            usage = ctx.sources.disk_usage(drive.mountpoint)
            for state in ("total", "used", "free"):
                ctx.publish("swift_drive_usage_bytes", getattr(usage, state),
                            swift_drive_label=drive.label, drive_type=drive.drive_type, state=state)
                ctx.publish("swift_drive_inodes", getattr(usage, f"inodes_{state}"),
                            swift_drive_label=drive.label, drive_type=drive.drive_type, state=state)
            ctx.publish("swift_drive_percentage_used", ratio(usage.used, usage.total),
                        swift_drive_label=drive.label)
    errors.raise_if_any()


@module_gate("SwiftDriveIO")
def swift_drive_io(ctx: CollectorContext) -> None:
    drives = list_swift_drives(ctx)
    counters = ctx.sources.disk_io_counters()
    for drive in drives:
        name = os.path.basename(drive.device)
        stats = counters.get(name)
        if stats is None:
            logger.debug("no IO counters for %s (%s)", drive.label, name)
            continue
        for attr, metric in IO_FIELDS:
            # merged counts and busy_time are Linux-only in psutil
            value = getattr(stats, attr, None)
            if value is None:
                continue
            ctx.publish("swift_drive_io_stat", float(value),
                        swift_drive=name, metric_name=metric, drive_type=drive.drive_type)


@module_gate("GatherStoragePolicyUtilization")
def gather_storage_policy_utilization(ctx: CollectorContext) -> None:
    """``du -s`` every ``objects*`` directory of every Swift drive (KiB)."""
    errors = ItemErrors("GatherStoragePolicyUtilization")
    for drive in list_swift_drives(ctx):
        with errors.guard(drive.label):
            for entry in ctx.sources.list_dir(drive.mountpoint):
                if not is_objects_dir(entry):
                    continue
                path = os.path.join(drive.mountpoint, entry)
                with errors.guard(path):
                    size = ctx.sources.directory_size_kib(path)
                    ctx.publish("swift_storage_policy_usage", size,
                                swift_drive_mountpoint=drive.mountpoint, swift_drive_label=entry,
                                storage_policy_name=ctx.policies.name_for_dir(entry))
    errors.raise_if_any()


def count_swift_files(walk) -> dict[str, int]:
    """Count account/container DBs, pending DBs and object data files from an ``os.walk`` iterator."""
    counts = {"account_db": 0, "account_db_pending": 0, "container_db": 0,
              "container_db_pending": 0, "object_file": 0}
    for dirpath, _dirnames, filenames in walk:
        parts = dirpath.split(os.sep)
        if "accounts" in parts:
            prefix = "account"
        elif "containers" in parts:
            prefix = "container"
        elif any(is_objects_dir(p) for p in parts):
            counts["object_file"] += sum(1 for f in filenames if f.endswith(".data"))
            continue
        else:
            continue
        for f in filenames:
            if f.endswith(".db"):
                counts[f"{prefix}_db"] += 1
            elif f.endswith(".pending"):
                counts[f"{prefix}_db_pending"] += 1
    return counts


@module_gate("CountFilesPerSwiftDrive")
def count_files_per_swift_drive(ctx: CollectorContext) -> None:
    counts = count_swift_files(ctx.sources.walk(ctx.config.swift_drive_root))
    ctx.publish("swift_account_db", counts["account_db"])
    ctx.publish("swift_account_db_pending", counts["account_db_pending"])
    ctx.publish("swift_container_db", counts["container_db"])
    ctx.publish("swift_container_db_pending", counts["container_db_pending"])
    ctx.publish("swift_object_file_count", counts["object_file"])
    logger.info("Swift file counts under %s: %s", ctx.config.swift_drive_root, counts)


@module_gate("CheckSwiftLogSize")
def check_swift_log_size(ctx: CollectorContext) -> None:
    ctx.publish("swift_log_file_size", ctx.sources.file_size(ctx.config.swift_log_file))


__all__ = [
    "IO_FIELDS",
    "swift_disk_usage",
    "swift_drive_io",
    "gather_storage_policy_utilization",
    "count_swift_files",
    "count_files_per_swift_drive",
    "check_swift_log_size",
]
