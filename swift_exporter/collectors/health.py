"""Node health collectors: SMART attributes, systemd unit states and
object-server connection count.
"""
from __future__ import annotations

import logging
import re

from swift_exporter.utils.exceptions import DataSourceError

from .context import CollectorContext, ItemErrors, module_gate
from .drives import list_swift_drives

logger = logging.getLogger(__name__)

SWIFT_SERVICES: tuple[str, ...] = (
    "ssswift-proxy",
    "ssswift-account@server",
    "ssswift-container@server",
    "ssswift-object@server",
)

SWIFT_SUB_SERVICES: tuple[str, ...] = (
    "ssswift-object-replication@server",
    "ssswift-object-replication@reconstructor.service",
    "ssswift-object-replication@replicator",
    "ssswift-object@updater",
    "ssswift-object@auditor",
    "ssswift-container-replication@sharder",
    "ssswift-container-replication@replicator",
    "ssswift-container-replication@server",
    "ssswift-container@updater",
    "ssswift-container@auditor",
    "ssswift-account-replication@replicator",
    "ssswift-account-replication@server",
    "ssswift-account@reaper",
    "ssswift-account@auditor",
)

# smartctl -A attribute table row:
# ID# ATTRIBUTE_NAME FLAG VALUE WORST THRESH TYPE UPDATED WHEN_FAILED RAW_VALUE
_ATTR_ROW = re.compile(
    r"^\s*(?P<id>\d+)\s+(?P<name>\S+)\s+0x[0-9a-fA-F]+\s+(?P<value>\d+)\s+\d+\s+\S+\s+\S+\s+\S+\s+\S+\s+(?P<raw>\d+)"
)


def _norm(name: str) -> str:
    return name.replace(" ", "_").lower()


def parse_smart_attributes(text: str) -> dict[str, tuple[float, float]]:
    """``smartctl -A`` output -> {attribute_name_lower: (normalized, raw)}."""
    attrs: dict[str, tuple[float, float]] = {}
    for line in text.splitlines():
        m = _ATTR_ROW.match(line)
        if m:
            attrs[_norm(m.group("name"))] = (float(m.group("value")), float(m.group("raw")))
    return attrs


def detect_vendor(info_text: str) -> str | None:
    """Samsung/Intel from the ``smartctl -i`` identity block."""
    for line in info_text.splitlines():
        key, _, value = line.partition(":")
        if key.strip() not in ("Model Family", "Device Model", "Vendor", "Model Number"):
            continue
        lowered = value.lower()
        if "samsung" in lowered:
            return "samsung"
        if "intel" in lowered:
            return "intel"
    return None


@module_gate("RunSMARTCTL")
def run_smartctl(ctx: CollectorContext) -> None:
    binary = ctx.sources.which("smartctl")
    if binary is None:
        raise DataSourceError("smartctl is not installed")
    errors = ItemErrors("RunSMARTCTL")
    for drive in list_swift_drives(ctx):
        with errors.guard(drive.label):
            labels = dict(drive_label=drive.label, drive_type=drive.drive_type)
            attrs = parse_smart_attributes(ctx.sources.smartctl(binary, "-A", drive.disk_device))
            if drive.drive_type == "HDD":
                if "reallocated_sector_ct" in attrs:
                    ctx.publish("swift_drive_reallocated_sector_count", attrs["reallocated_sector_ct"][1], **labels)
                if "offline_uncorrectable" in attrs:
                    ctx.publish("swift_drive_offline_uncorrectable_count", attrs["offline_uncorrectable"][1], **labels)
            elif drive.drive_type == "SSD":
                vendor = detect_vendor(ctx.sources.smartctl(binary, "-i", drive.disk_device))
                if vendor == "samsung" and "wear_leveling_count" in attrs:
                    ctx.publish("swift_drive_wear_leveling_count", attrs["wear_leveling_count"][0], **labels)
                elif vendor == "intel" and "media_wearout_indicator" in attrs:
                    ctx.publish("swift_drive_media_wearout_indicator_count",
                                attrs["media_wearout_indicator"][0], **labels)
                else:
                    logger.debug("%s: no wear attribute for vendor %s", drive.label, vendor)
    errors.raise_if_any()


@module_gate("CheckSwiftService")
def check_swift_service(ctx: CollectorContext) -> None:
    errors = ItemErrors("CheckSwiftService")
    for gauge, label, units in (
        ("swift_service_status", "swift_service_name", SWIFT_SERVICES),
        ("swift_sub_service_status", "swift_sub_service_name", SWIFT_SUB_SERVICES),
    ):
        for unit in units:
            with errors.guard(unit):
                active = ctx.sources.service_active(unit)
                if not active:
                    logger.debug("%s is not active", unit)
                ctx.publish(gauge, 1.0 if active else 0.0, **{label: unit})
    errors.raise_if_any()


@module_gate("CheckObjectServerConnection")
def check_object_server_connection(ctx: CollectorContext) -> None:
    """Established TCP connections on the object server port (listener excluded)."""
    port = ctx.config.object_server_port
    count = sum(1 for c in ctx.sources.tcp_connections() if c.local_port == port and c.status == "ESTABLISHED")
    ctx.publish("swift_object_server_connection", float(count))


__all__ = [
    "SWIFT_SERVICES",
    "SWIFT_SUB_SERVICES",
    "parse_smart_attributes",
    "detect_vendor",
    "run_smartctl",
    "check_swift_service",
    "check_object_server_connection",
]
