"""Recon status snapshot collectors.

Swift daemons dump their progress into ``/var/cache/swift/<role>.recon`` JSON
files. One ``RoleSchema`` per role lists which keys become which gauge
samples. Sharding statistics (container) and the per-disk replication
breakdown (object) only exist in newer releases; those groups are read when
the cluster reports a Swift version at or above ``ShardingMinVersion``.

Keys renamed between releases are handled with alias tuples, first match
wins.
"""
from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from swift_exporter.metrics.derived import minutes_to_seconds, per_second, rate_per_second
from swift_exporter.utils.exceptions import DataSourceError, SnapshotParseError
from swift_exporter.utils.versions import SwiftVersion

from .context import CollectorContext, ItemErrors, module_gate

logger = logging.getLogger(__name__)

SHARDING = "sharding"
PER_DISK = "per_disk"


@dataclass(frozen=True)
class ReconField:
    service: str                  # service_name label
    metric: str                   # metrics_name label
    paths: tuple[str, ...]        # dotted key paths, aliases in order of preference


def _f(service: str, metric: str, *paths: str) -> ReconField:
    return ReconField(service, metric, paths or (metric,))


def _replicator(*names: str, prefix: str = "replication_stats") -> tuple[ReconField, ...]:
    return tuple(_f("replicator", n, f"{prefix}.{n}") for n in names)


@dataclass(frozen=True)
class RoleSchema:
    role: str
    gauge: str
    fields: tuple[ReconField, ...]
    gated: frozenset[str] = field(default_factory=frozenset)

    def capabilities(self, version: SwiftVersion | None, threshold: SwiftVersion) -> frozenset[str]:
        """Version-gated groups readable for ``version`` (none when unknown)."""
        if version is None or not version.at_least(threshold):
            return frozenset()
        return self.gated

    def validate(self, doc: Any) -> Mapping[str, Any]:
        if not isinstance(doc, dict):
            raise SnapshotParseError(f"{self.role}.recon: expected a JSON object, got {type(doc).__name__}")
        stats = doc.get("replication_stats")
        if stats is not None and not isinstance(stats, dict):
            raise SnapshotParseError(f"{self.role}.recon: replication_stats must be an object")
        return doc


_DB_REPLICATOR = _replicator(
    "remote_merge", "diff", "diff_capped", "no_change", "ts_repl",
    "rsync", "success", "failure", "attempted", "hashmatch",
)

ACCOUNT_SCHEMA = RoleSchema(
    role="account",
    gauge="swift_account_server",
    fields=(
        _f("auditor", "passed", "account_audits_passed"),
        _f("auditor", "failed", "account_audits_failed"),
        _f("auditor", "passed_completed", "account_auditor_pass_completed"),
        *_DB_REPLICATOR,
        _f("replicator", "replication_time", "replication_time"),
    ),
)

CONTAINER_SCHEMA = RoleSchema(
    role="container",
    gauge="swift_container_server",
    fields=(
        _f("auditor", "passed", "container_audits_passed"),
        _f("auditor", "failed", "container_audits_failed"),
        _f("auditor", "passed_completed", "container_auditor_pass_completed"),
        *_DB_REPLICATOR,
        _f("replicator", "replication_time", "replication_time"),
        _f("sharder", "sharding_last", "sharding_last"),
    ),
    gated=frozenset({SHARDING}),
)


OBJECT_REPLICATION_TIME = ("object_replication_time", "replication_time")


def _auditor(kind: str) -> tuple[ReconField, ...]:
    src = f"object_auditor_stats_{kind}"
    return (
        _f(f"auditor_{kind}", "audit_time", f"{src}.audit_time"),
        _f(f"auditor_{kind}", "byte_processed", f"{src}.bytes_processed"),
        _f(f"auditor_{kind}", "errors", f"{src}.errors"),
        _f(f"auditor_{kind}", "passes", f"{src}.passes"),
        _f(f"auditor_{kind}", "quarantined", f"{src}.quarantined"),
    )


OBJECT_SCHEMA = RoleSchema(
    role="object",
    gauge="swift_object_server",
    fields=(
        _f("server", "async_pending", "async_pending"),
        _f("server", "replication_last", "replication_last", "object_replication_last"),
        _f("replicator", "object_replication_time", *OBJECT_REPLICATION_TIME),
        *_replicator("rsync", "success", "failure", "attempted"),
        _f("replicator", "suffixes_checked", "replication_stats.hashmatch"),
        _f("replicator", "start", "replication_stats.start"),
        _f("reconstructor", "object_reconstruction_time", "object_reconstruction_time"),
        _f("reconstructor", "object_reconstruction_last", "object_reconstruction_last"),
        *_auditor("ALL"),
        *_auditor("ZBF"),
        _f("updater", "object_updater_sweep", "object_updater_sweep"),
        _f("expirer", "object_expiration_pass", "object_expiration_pass"),
        _f("expirer", "expired_last_pass", "expired_last_pass"),
    ),
    gated=frozenset({PER_DISK}),
)

SCHEMAS: dict[str, RoleSchema] = {s.role: s for s in (ACCOUNT_SCHEMA, CONTAINER_SCHEMA, OBJECT_SCHEMA)}

# sharding_stats top-level counters, published with metric_name=sharding_stats
SHARDING_COUNTERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("attempted", ("attempted",)),
    ("deferred", ("deferred", "deffered")),
    ("diff", ("diff",)),
    ("diff_capped", ("diff_capped",)),
    ("empty", ("empty",)),
    ("failure", ("failure",)),
    ("hashmatch", ("hashmatch",)),
    ("no_change", ("no_change",)),
    ("remote_merge", ("remote_merge",)),
    ("remove", ("remove",)),
    ("rsync", ("rsync",)),
)

# sharding_stats.sharding.<group> -> parameters
SHARDING_GROUPS: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("audit_root", ("audit_root",), ("attempted", "failure", "success")),
    ("audit_shard", ("audit_shard",), ("attempted", "failure", "success")),
    ("cleaved", ("cleaved",), ("attempted", "failure", "max_time", "min_time", "success")),
    ("created", ("created",), ("attempted", "failure", "success")),
    ("misplaced", ("misplaced",), ("attempted", "failure", "found", "max_time", "min_time", "success")),
    ("scanned", ("scanned",), ("attempted", "failure", "found", "max_time", "min_time", "success")),
    ("sharding_candidates", ("sharding_candidates",), ("found",)),
    ("visited", ("visited", "visitred"), ("attempted", "completed", "failure", "skipped", "success")),
)

PER_DISK_STATS: tuple[str, ...] = (
    "attempted", "failure", "hashmatch", "remove", "rsync", "success",
    "suffix_count", "suffix_hash", "suffix_sync",
)


# ----------------------------------------------------------------------
# Snapshot access
# ----------------------------------------------------------------------
def numeric(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    v = float(value)
    return v if math.isfinite(v) else None


def lookup(doc: Mapping[str, Any], *paths: str) -> Any:
    """Value at the first dotted path present in ``doc``, else None."""
    for path in paths:
        node: Any = doc
        for key in path.split("."):
            if not isinstance(node, Mapping) or key not in node:
                node = None
                break
            node = node[key]
        if node is not None:
            return node
    return None


def parse_recon(text: str, role: str) -> Mapping[str, Any]:
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise SnapshotParseError(f"{role}.recon: invalid JSON ({e})") from e
    return SCHEMAS[role].validate(doc)


def load_recon(ctx: CollectorContext, role: str, path: str | None = None) -> Mapping[str, Any]:
    return parse_recon(ctx.sources.read_text(path or ctx.config.recon_file(role)), role)


def _version_or_none(ctx: CollectorContext) -> SwiftVersion | None:
    try:
        return ctx.swift_version()
    except DataSourceError as e:
        logger.warning("Swift version unavailable (%s); version-gated recon metrics skipped", e)
        return None


# ----------------------------------------------------------------------
# ReadReconFile
# ----------------------------------------------------------------------
def _publish_sharding(ctx: CollectorContext, doc: Mapping[str, Any]) -> int:
    stats = doc.get("sharding_stats")
    if not isinstance(stats, Mapping):
        return 0
    written = 0
    for param, aliases in SHARDING_COUNTERS:
        if ctx.publish("swift_container_sharding", numeric(lookup(stats, *aliases)),
                       metric_name="sharding_stats", parameter=param):
            written += 1
    for group, aliases, params in SHARDING_GROUPS:
        node = lookup(stats, *(f"sharding.{a}" for a in aliases))
        if not isinstance(node, Mapping):
            continue
        for param in params:
            if ctx.publish("swift_container_sharding", numeric(node.get(param)),
                           metric_name=group, parameter=param):
                written += 1
    return written


def _per_disk(doc: Mapping[str, Any]) -> Mapping[str, Any]:
    per_disk = doc.get("object_replication_per_disk")
    if per_disk is None:
        return {}
    if not isinstance(per_disk, Mapping):
        raise SnapshotParseError("object.recon: object_replication_per_disk must be an object")
    return per_disk


def _publish_per_disk(ctx: CollectorContext, doc: Mapping[str, Any]) -> int:
    written = 0
    for disk, entry in sorted(_per_disk(doc).items()):
        if not isinstance(entry, Mapping):
            continue
        values = {name: lookup(entry, f"replication_stats.{name}") for name in PER_DISK_STATS}
        values["replication_last"] = entry.get("replication_last")
        values["replication_time"] = entry.get("replication_time")
        for metric, raw in values.items():
            if ctx.publish("swift_object_replication_per_disk", numeric(raw),
                           service_name="replicator_per_disk", metrics_type=metric, swift_disk=disk):
                written += 1
    return written


@module_gate("ReadReconFile")
def read_recon_file(ctx: CollectorContext, role: str, path: str | None = None) -> int:
    """Publish one role's recon snapshot; returns the number of samples written."""
    schema = SCHEMAS[role]
    doc = load_recon(ctx, role, path)
    written = 0
    for f in schema.fields:
        if ctx.publish(schema.gauge, numeric(lookup(doc, *f.paths)),
                       service_name=f.service, metrics_name=f.metric):
            written += 1
    if schema.gated:
        caps = schema.capabilities(_version_or_none(ctx), ctx.config.sharding_min_version)
        if SHARDING in caps:
            written += _publish_sharding(ctx, doc)
        if PER_DISK in caps:
            written += _publish_per_disk(ctx, doc)
        if not caps:
            logger.debug("%s.recon: version-gated groups %s not read", role, sorted(schema.gated))
    logger.debug("%s.recon: %d samples", role, written)
    return written


# ----------------------------------------------------------------------
# GatherReplicationEstimate
# ----------------------------------------------------------------------
def _estimate_db_role(ctx: CollectorContext, role: str) -> None:
    doc = load_recon(ctx, role)
    # account/container replicators report replication_time in seconds
    rate = per_second(numeric(lookup(doc, "replication_stats.attempted")),
                      numeric(doc.get("replication_time")))
    ctx.publish(f"swift_{role}_replication_estimate", rate, metrics_type="parts_per_second")


def _estimate_object(ctx: CollectorContext) -> None:
    doc = load_recon(ctx, "object")
    # the object replicator reports its times in minutes
    minutes = numeric(lookup(doc, *OBJECT_REPLICATION_TIME))
    attempted = numeric(lookup(doc, "replication_stats.attempted"))
    ctx.publish("swift_object_replication_estimate", rate_per_second(attempted, minutes),
                metrics_type="parts_per_second")
    ctx.publish("swift_object_replication_estimate", minutes_to_seconds(minutes), metrics_type="time_used")

    caps = OBJECT_SCHEMA.capabilities(_version_or_none(ctx), ctx.config.sharding_min_version)
    if PER_DISK not in caps:
        return
    for disk, entry in sorted(_per_disk(doc).items()):
        if not isinstance(entry, Mapping):
            continue
        disk_minutes = numeric(entry.get("replication_time"))
        disk_attempted = numeric(lookup(entry, "replication_stats.attempted"))
        ctx.publish("swift_object_replication_per_disk_estimate", rate_per_second(disk_attempted, disk_minutes),
                    metrics_type="parts_per_second_per_disk", swift_disk=disk)
        ctx.publish("swift_object_replication_per_disk_estimate", minutes_to_seconds(disk_minutes),
                    metrics_type="time_used_per_disk", swift_disk=disk)


@module_gate("GatherReplicationEstimate")
def gather_replication_estimate(ctx: CollectorContext) -> None:
    """Replication throughput estimates for all three roles.

    A role whose snapshot cannot be read keeps its previous estimate; the
    other roles are still updated.
    """
    errors = ItemErrors("GatherReplicationEstimate")
    for role in ("account", "container"):
        with errors.guard(role):
            _estimate_db_role(ctx, role)
    with errors.guard("object"):
        _estimate_object(ctx)
    errors.raise_if_any()


__all__ = [
    "ReconField",
    "RoleSchema",
    "SCHEMAS",
    "SHARDING",
    "PER_DISK",
    "numeric",
    "lookup",
    "parse_recon",
    "load_recon",
    "read_recon_file",
    "gather_replication_estimate",
]
