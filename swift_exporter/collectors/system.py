"""Host CPU and NIC collectors (psutil backed)."""
from __future__ import annotations

import logging

from swift_exporter.metrics.derived import cpu_breakdown

from .context import CollectorContext, module_gate

logger = logging.getLogger(__name__)

# psutil cpu_times field -> metrics_name label used on existing dashboards
CPU_METRIC_NAMES: dict[str, str] = {
    "user": "usr",
    "system": "sys",
    "idle": "idle",
    "nice": "nice",
    "iowait": "iowait",
    "irq": "irq",
    "softirq": "softirq",
    "steal": "steal",
    "guest": "guest",
    "guest_nice": "guestnice",
}

# psutil snetio field -> metrics_name label
NIC_FIELDS: tuple[tuple[str, str], ...] = (
    ("bytes_sent", "byte_sent"),
    ("bytes_recv", "byte_recv"),
    ("packets_sent", "pckt_sent"),
    ("packets_recv", "pckt_recv"),
    ("errin", "err_in"),
    ("errout", "err_out"),
    ("dropin", "drop_in"),
    ("dropout", "drop_out"),
)


def _skip_nic(name: str) -> bool:
    return name == "lo" or name.startswith("docker")


@module_gate("ExposePerCPUUsage")
def expose_per_cpu_usage(ctx: CollectorContext) -> None:
    """Lifetime-average share of each CPU state, per logical CPU."""
    for index, times in enumerate(ctx.sources.cpu_times()):
        cpu_name = f"cpu{index}"
        shares = cpu_breakdown(times)
        if not shares:
            logger.debug("%s: no CPU time accumulated yet", cpu_name)
        for state, share in shares.items():
            ctx.publish("cpu_stat", share, cpu_name=cpu_name, metrics_name=CPU_METRIC_NAMES[state])


@module_gate("ExposePerNICMetric")
def expose_per_nic_metric(ctx: CollectorContext) -> None:
    counters = ctx.sources.net_io_counters()
    macs = ctx.sources.mac_addresses()
    for nic, stats in sorted(counters.items()):
        mac = macs.get(nic, "")
        for attr, metric in NIC_FIELDS:
            value = getattr(stats, attr, None)
            if value is None:
                continue
            ctx.publish("nic_stat", float(value), nic_name=nic, mac_address=mac, metrics_name=metric)


@module_gate("GrabNICMTU")
def grab_nic_mtu(ctx: CollectorContext) -> None:
    for nic, mtu in sorted(ctx.sources.nic_mtus().items()):
        if _skip_nic(nic):
            continue
        ctx.publish("nic_mtu", float(mtu), nic_name=nic)


__all__ = ["CPU_METRIC_NAMES", "NIC_FIELDS", "expose_per_cpu_usage", "expose_per_nic_metric", "grab_nic_mtu"]
