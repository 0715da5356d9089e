"""Bootstrap helpers wiring config, registry, data sources and scheduler.

Order matters: prerequisites are checked and the gauge catalogue registered
before any thread starts, so a registration defect is fatal at startup rather
than a collector error later, and the frozen context handed to every task is
complete.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from swift_exporter.collectors.context import CollectorContext, VersionSource
from swift_exporter.collectors.node import ClusterInfoClient, load_node_identity
from swift_exporter.collectors.policies import load_storage_policies
from swift_exporter.collectors.sources import HostSources
from swift_exporter.config.loader import ExporterConfig
from swift_exporter.config.sanity import check_prerequisites
from swift_exporter.metrics.registry import MetricsRegistry
from swift_exporter.metrics.spec import build_registry
from swift_exporter.version import get_version

from .scheduler import CollectionScheduler, build_default_tasks

logger = logging.getLogger(__name__)


def publish_version(registry: MetricsRegistry, version: str | None = None) -> None:
    registry.set("swift_exporter_version", {"script_version": version or get_version()}, 1)


def build_context(
    cfg: ExporterConfig,
    *,
    registry: MetricsRegistry | None = None,
    sources: object | None = None,
    cluster: VersionSource | None = None,
) -> CollectorContext:
    """Everything the collectors share; built once, read-only afterwards."""
    cfg = check_prerequisites(cfg)
    if registry is None:
        registry = build_registry()
    publish_version(registry)
    if sources is None:
        sources = HostSources(command_timeout=cfg.command_timeout)
    node = load_node_identity(cfg.node_config_file, sources)  # type: ignore[arg-type]
    policies = load_storage_policies(cfg.swift_config_file)
    if cluster is None:
        cluster = ClusterInfoClient(node.info_url, timeout=cfg.info_timeout)
    return CollectorContext(
        registry=registry, config=cfg, node=node, sources=sources, policies=policies, cluster=cluster,
    )


@dataclass
class Runtime:
    context: CollectorContext
    scheduler: CollectionScheduler

    @property
    def registry(self) -> MetricsRegistry:
        return self.context.registry


def bootstrap(cfg: ExporterConfig, *, periods: dict[str, float] | None = None, **context_kwargs) -> Runtime:
    ctx = build_context(cfg, **context_kwargs)
    enabled = [m for m, on in ctx.config.modules.items() if on]
    logger.info("swift_exporter %s: %d module(s) enabled: %s", get_version(), len(enabled), ", ".join(enabled))
    return Runtime(ctx, CollectionScheduler(build_default_tasks(ctx, periods)))


__all__ = ["Runtime", "bootstrap", "build_context", "publish_version"]
