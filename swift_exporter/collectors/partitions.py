"""Primary/handoff partition counts per drive.

Source is the replication progress JSON written by the node agent::

    {"d1": {"accounts": {"primary": 12, "handoff": 0},
            "containers": {...},
            "objects": {...}, "objects-1": {...}}}
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from swift_exporter.utils.exceptions import SnapshotParseError

from .context import CollectorContext, module_gate
from .drives import list_swift_drives
from .policies import is_objects_dir
from .recon import numeric

logger = logging.getLogger(__name__)

ACCOUNT_CONTAINER_POLICY = "Account & Container"

_DB_ROLE_DIRS = {"accounts": "account", "containers": "container"}


def parse_partition_counts(text: str) -> dict[str, Mapping[str, Any]]:
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise SnapshotParseError(f"replication progress: invalid JSON ({e})") from e
    if not isinstance(doc, dict):
        raise SnapshotParseError("replication progress: expected a JSON object keyed by drive")
    return {drive: dirs for drive, dirs in doc.items() if isinstance(dirs, Mapping)}


def _role_labels(ctx: CollectorContext, role_dir: str) -> tuple[str, str] | None:
    """(storage_policy, swift_role) for a role directory, None when not a Swift data dir."""
    if role_dir in _DB_ROLE_DIRS:
        return ACCOUNT_CONTAINER_POLICY, _DB_ROLE_DIRS[role_dir]
    if is_objects_dir(role_dir):
        return ctx.policies.name_for_dir(role_dir), role_dir
    return None


@module_gate("GrabSwiftPartition")
def grab_swift_partition(ctx: CollectorContext) -> None:
    counts = parse_partition_counts(ctx.sources.read_text(ctx.config.replication_progress_file))
    for drive in list_swift_drives(ctx):
        dirs = counts.get(drive.label)
        if dirs is None:
            logger.debug("no partition counts for drive %s", drive.label)
            continue
        for role_dir, entry in sorted(dirs.items()):
            labels = _role_labels(ctx, role_dir)
            if labels is None or not isinstance(entry, Mapping):
                continue
            policy, role = labels
            common = dict(swift_drive_label=drive.label, storage_policy=policy,
                          swift_role=role, drive_type=drive.drive_type)
            ctx.publish("swift_drive_primary_partitions", numeric(entry.get("primary")), **common)
            ctx.publish("swift_drive_handoff_partitions", numeric(entry.get("handoff")), **common)


__all__ = ["ACCOUNT_CONTAINER_POLICY", "parse_partition_counts", "grab_swift_partition"]
