"""Declarative gauge catalogue.

Every gauge the exporter publishes is declared here once, together with the
module (config key) whose collector owns it. Ownership is exclusive: no two
modules write the same gauge name, which is what lets the differently-paced
collection tasks share one registry without coordinating.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .registry import MetricsRegistry

NODE_LABELS: tuple[str, ...] = ("FQDN", "UUID")

# Owner used for gauges published by bootstrap rather than a collector module
EXPORTER_OWNER = "exporter"


@dataclass(frozen=True)
class MetricDef:
    name: str                 # Prometheus metric name
    doc: str                  # Help text
    labels: Sequence[str]
    module: str               # Owning module / config key

    def register(self, registry: MetricsRegistry):
        return registry.register(self.name, self.doc, self.labels, owner=self.module)


def _role_server(role: str) -> MetricDef:
    return MetricDef(
        f"swift_{role}_server",
        f"Swift {role.capitalize()} Server metrics read from {role}.recon",
        ("service_name", "metrics_name", *NODE_LABELS),
        "ReadReconFile",
    )


def _estimate(role: str, doc: str) -> MetricDef:
    return MetricDef(
        f"swift_{role}_replication_estimate",
        doc,
        ("metrics_type", *NODE_LABELS),
        "GatherReplicationEstimate",
    )


_DRIVE_PARTITION_LABELS = (*NODE_LABELS, "swift_drive_label", "storage_policy", "swift_role", "drive_type")
_SMART_LABELS = ("drive_label", "drive_type", *NODE_LABELS)

METRIC_SPECS: list[MetricDef] = [
    MetricDef(
        "swift_exporter_version",
        "swift_exporter build version (value always 1)",
        ("script_version",),
        EXPORTER_OWNER,
    ),
    # ReadReconFile
    _role_server("account"),
    _role_server("container"),
    _role_server("object"),
    MetricDef(
        "swift_container_sharding",
        "Swift Container Sharding statistics (Swift >= sharding threshold)",
        ("metric_name", "parameter", *NODE_LABELS),
        "ReadReconFile",
    ),
    MetricDef(
        "swift_object_replication_per_disk",
        "Swift Object Replication Per Disk metrics (Swift >= per-disk threshold)",
        ("service_name", "metrics_type", "swift_disk", *NODE_LABELS),
        "ReadReconFile",
    ),
    # GatherReplicationEstimate
    _estimate("account", "Swift Account Server - replication estimate in parts/second"),
    _estimate("container", "Swift Container Server - replication estimate in parts/second"),
    _estimate("object", "Swift Object Server - replication estimate in seconds (time_used) and parts/second"),
    MetricDef(
        "swift_object_replication_per_disk_estimate",
        "Swift Object Server - per disk replication estimate in seconds (time_used_per_disk) and parts/second",
        ("metrics_type", "swift_disk", *NODE_LABELS),
        "GatherReplicationEstimate",
    ),
    # GrabSwiftPartition
    MetricDef(
        "swift_drive_primary_partitions",
        "Swift Drive Primary Partitions - the number of primary partitions, no specific unit",
        _DRIVE_PARTITION_LABELS,
        "GrabSwiftPartition",
    ),
    MetricDef(
        "swift_drive_handoff_partitions",
        "Swift Drive Handoff Partitions - the number of handoff partitions, no specific unit",
        _DRIVE_PARTITION_LABELS,
        "GrabSwiftPartition",
    ),
    # SwiftDiskUsage
    MetricDef(
        "swift_drive_usage_bytes",
        "Swift Drive space in bytes by state (total/used/free)",
        ("swift_drive_label", "drive_type", "state", *NODE_LABELS),
        "SwiftDiskUsage",
    ),
    MetricDef(
        "swift_drive_inodes",
        "Swift Drive inodes by state (total/used/free), no specific unit",
        ("swift_drive_label", "drive_type", "state", *NODE_LABELS),
        "SwiftDiskUsage",
    ),
    MetricDef(
        "swift_drive_percentage_used",
        "Swift Drive space used as a ratio (1 = 100%)",
        ("swift_drive_label", *NODE_LABELS),
        "SwiftDiskUsage",
    ),
    # SwiftDriveIO
    MetricDef(
        "swift_drive_io_stat",
        "Swift Drive IO counters (counts, bytes and milliseconds as reported by the kernel)",
        ("swift_drive", "metric_name", "drive_type", *NODE_LABELS),
        "SwiftDriveIO",
    ),
    # CheckObjectServerConnection
    MetricDef(
        "swift_object_server_connection",
        "Number of TCP connections on the object server port at this moment",
        NODE_LABELS,
        "CheckObjectServerConnection",
    ),
    # ExposePerCPUUsage
    MetricDef(
        "cpu_stat",
        "CPU Stat - share of cumulative CPU time per state (1 = 100%)",
        ("cpu_name", "metrics_name", *NODE_LABELS),
        "ExposePerCPUUsage",
    ),
    # ExposePerNICMetric
    MetricDef(
        "nic_stat",
        "NIC Stat - 'byte_*' metrics are bytes, 'pckt_*' and 'err_*' are packet counts",
        ("nic_name", "mac_address", "metrics_name", *NODE_LABELS),
        "ExposePerNICMetric",
    ),
    # GrabNICMTU
    MetricDef(
        "nic_mtu",
        "NIC MTU reading",
        ("nic_name", *NODE_LABELS),
        "GrabNICMTU",
    ),
    # GatherStoragePolicyUtilization
    MetricDef(
        "swift_storage_policy_usage",
        "Utilization per storage policy in KiB as reported by du -s",
        ("swift_drive_mountpoint", "swift_drive_label", "storage_policy_name", *NODE_LABELS),
        "GatherStoragePolicyUtilization",
    ),
    # RunSMARTCTL
    MetricDef(
        "swift_drive_reallocated_sector_count",
        "Reallocated sector count from smartctl; a rising value indicates a failing HDD",
        _SMART_LABELS,
        "RunSMARTCTL",
    ),
    MetricDef(
        "swift_drive_offline_uncorrectable_count",
        "Defective sectors found during the smartctl off-line scan",
        _SMART_LABELS,
        "RunSMARTCTL",
    ),
    MetricDef(
        "swift_drive_media_wearout_indicator_count",
        "Intel SSD Media Wearout Indicator; 100 is a brand new drive and the value decreases with wear",
        _SMART_LABELS,
        "RunSMARTCTL",
    ),
    MetricDef(
        "swift_drive_wear_leveling_count",
        "Samsung SSD Wear Leveling Count; 100 is a brand new drive and the value decreases with wear",
        _SMART_LABELS,
        "RunSMARTCTL",
    ),
    # CheckSwiftService
    MetricDef(
        "swift_service_status",
        "Swift main service status (1 active, 0 otherwise): proxy, account, container, object servers",
        (*NODE_LABELS, "swift_service_name"),
        "CheckSwiftService",
    ),
    MetricDef(
        "swift_sub_service_status",
        "Swift sub service status (1 active, 0 otherwise): auditors, replicators, updaters, expirer...",
        (*NODE_LABELS, "swift_sub_service_name"),
        "CheckSwiftService",
    ),
    # CheckSwiftLogSize
    MetricDef(
        "swift_log_file_size",
        "Size of the Swift log file in bytes",
        NODE_LABELS,
        "CheckSwiftLogSize",
    ),
    # CountFilesPerSwiftDrive
    MetricDef("swift_account_db", "Number of account DBs", NODE_LABELS, "CountFilesPerSwiftDrive"),
    MetricDef("swift_account_db_pending", "Number of pending account DBs", NODE_LABELS, "CountFilesPerSwiftDrive"),
    MetricDef("swift_container_db", "Number of container DBs", NODE_LABELS, "CountFilesPerSwiftDrive"),
    MetricDef("swift_container_db_pending", "Number of pending container DBs", NODE_LABELS, "CountFilesPerSwiftDrive"),
    MetricDef("swift_object_file_count", "Number of object data files", NODE_LABELS, "CountFilesPerSwiftDrive"),
]


def register_all(registry: MetricsRegistry, specs: Sequence[MetricDef] | None = None) -> MetricsRegistry:
    return registry.register_catalogue(METRIC_SPECS if specs is None else specs)


def build_registry() -> MetricsRegistry:
    """Fresh registry with the full catalogue declared."""
    return register_all(MetricsRegistry())


__all__ = ["MetricDef", "METRIC_SPECS", "NODE_LABELS", "EXPORTER_OWNER", "register_all", "build_registry"]
