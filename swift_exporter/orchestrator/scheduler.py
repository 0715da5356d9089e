"""Collection-cycle scheduler.

One daemon thread per ``CollectionTask``. Each task loops
``run_once()`` -> ``stop_event.wait(period)`` until the shared stop event is
set, so a slow step in one task never delays another and shutdown only waits
for the step currently running.

Error handling: every step runs under its own try/except. A
``CollectionError`` is an expected, transient failure (warning, no
traceback); anything else is a defect and is logged with a traceback. Either
way the next step still runs and previously published values stay in the
registry.
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import partial

from swift_exporter.collectors import disk, health, partitions, recon, system
from swift_exporter.collectors.context import CollectorContext
from swift_exporter.config.sanity import RECON_ROLES
from swift_exporter.utils.exceptions import CollectionError

logger = logging.getLogger(__name__)

Step = tuple[str, Callable[[], object]]

DEFAULT_PERIODS: dict[str, float] = {
    "every-1m": 60.0,
    "every-5m": 300.0,
    "every-1h": 3600.0,
    "every-3h": 3 * 3600.0,
    "every-6h": 6 * 3600.0,
}


@dataclass
class CollectionTask:
    name: str
    period: float
    steps: Sequence[Step]
    cycles: int = field(default=0, init=False)
    failures: int = field(default=0, init=False)

    def run_once(self) -> int:
        """Run every step back-to-back; returns the number of failed steps."""
        failed = 0
        start = time.monotonic()
        for label, fn in self.steps:
            try:
                fn()
            except CollectionError as e:
                failed += 1
                logger.warning("[%s] %s failed: %s", self.name, label, e)
            except Exception:  # noqa: BLE001
                failed += 1
                logger.exception("[%s] %s raised unexpectedly", self.name, label)
        self.cycles += 1
        self.failures += failed
        logger.debug("[%s] cycle %d done in %.3fs (%d failed)", self.name, self.cycles,
                     time.monotonic() - start, failed)
        return failed

    def run_forever(self, stop_event: threading.Event, max_cycles: int | None = None) -> None:
        logger.info("[%s] started period=%ss steps=%s", self.name, self.period, [s[0] for s in self.steps])
        try:
            while not stop_event.is_set():
                self.run_once()
                if max_cycles is not None and self.cycles >= max_cycles:
                    logger.info("[%s] reached max cycles (%s)", self.name, max_cycles)
                    break
                if stop_event.wait(self.period):
                    break
        finally:
            logger.info("[%s] stopped after %d cycle(s)", self.name, self.cycles)


class CollectionScheduler:
    def __init__(self, tasks: Sequence[CollectionTask], stop_event: threading.Event | None = None) -> None:
        self.tasks = list(tasks)
        self.stop_event = stop_event or threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self, max_cycles: int | None = None) -> None:
        if self._threads:
            raise RuntimeError("scheduler already started")
        for task in self.tasks:
            t = threading.Thread(
                target=task.run_forever,
                args=(self.stop_event, max_cycles),
                name=f"swift-exporter-{task.name}",
                daemon=True,
            )
            t.start()
            self._threads.append(t)
        logger.info("Scheduler started %d task(s)", len(self._threads))

    def stop(self, timeout: float | None = 10.0) -> None:
        self.stop_event.set()
        self.join(timeout)

    def join(self, timeout: float | None = None) -> None:
        deadline = None if timeout is None else time.monotonic() + timeout
        for t in self._threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            t.join(remaining)
            if t.is_alive():
                logger.warning("Task thread %s still running after stop", t.name)


def build_default_tasks(ctx: CollectorContext, periods: dict[str, float] | None = None) -> list[CollectionTask]:
    p = {**DEFAULT_PERIODS, **(periods or {})}
    every_minute: list[Step] = [
        *((f"ReadReconFile[{role}]", partial(recon.read_recon_file, ctx, role)) for role in RECON_ROLES),
        ("GrabSwiftPartition", partial(partitions.grab_swift_partition, ctx)),
        ("SwiftDiskUsage", partial(disk.swift_disk_usage, ctx)),
        ("SwiftDriveIO", partial(disk.swift_drive_io, ctx)),
        ("CheckObjectServerConnection", partial(health.check_object_server_connection, ctx)),
        ("ExposePerCPUUsage", partial(system.expose_per_cpu_usage, ctx)),
        ("ExposePerNICMetric", partial(system.expose_per_nic_metric, ctx)),
        ("GrabNICMTU", partial(system.grab_nic_mtu, ctx)),
    ]
    return [
        CollectionTask("every-1m", p["every-1m"], every_minute),
        CollectionTask("every-5m", p["every-5m"], [
            ("GatherReplicationEstimate", partial(recon.gather_replication_estimate, ctx)),
            ("CheckSwiftService", partial(health.check_swift_service, ctx)),
        ]),
        CollectionTask("every-1h", p["every-1h"], [
            ("RunSMARTCTL", partial(health.run_smartctl, ctx)),
        ]),
        CollectionTask("every-3h", p["every-3h"], [
            ("CheckSwiftLogSize", partial(disk.check_swift_log_size, ctx)),
            ("CountFilesPerSwiftDrive", partial(disk.count_files_per_swift_drive, ctx)),
        ]),
        CollectionTask("every-6h", p["every-6h"], [
            ("GatherStoragePolicyUtilization", partial(disk.gather_storage_policy_utilization, ctx)),
        ]),
    ]


__all__ = ["DEFAULT_PERIODS", "CollectionTask", "CollectionScheduler", "build_default_tasks"]
