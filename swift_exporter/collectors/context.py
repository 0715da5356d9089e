"""Shared collector plumbing.

`CollectorContext` bundles everything a collector needs (registry, config,
node identity, data sources, storage policies, cluster info) and is built
once by bootstrap before any task thread starts; nothing in it is mutated
afterwards.

`module_gate` turns a plain collector function into a no-op while its module
is disabled in the config.
"""
from __future__ import annotations

import contextlib
import functools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from swift_exporter.config.loader import ExporterConfig
from swift_exporter.metrics.registry import MetricsRegistry
from swift_exporter.utils.exceptions import CollectionError
from swift_exporter.utils.versions import SwiftVersion

from .node import NodeIdentity
from .policies import StoragePolicies

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class VersionSource(Protocol):
    def swift_version(self) -> SwiftVersion | None: ...


@dataclass(frozen=True)
class CollectorContext:
    registry: MetricsRegistry
    config: ExporterConfig
    node: NodeIdentity
    sources: Any                      # HostSources or a test double
    policies: StoragePolicies = field(default_factory=StoragePolicies)
    cluster: VersionSource | None = None

    def labels(self, **extra: object) -> dict[str, object]:
        """Node labels plus ``extra``."""
        return {**self.node.labels(), **extra}

    def publish(self, name: str, value: float | None, **labels: object) -> bool:
        """Set ``name`` unless ``value`` is None (omitted this cycle)."""
        if value is None:
            return False
        return self.registry.set(name, self.labels(**labels), value)

    def swift_version(self) -> SwiftVersion | None:
        if self.cluster is None:
            return None
        return self.cluster.swift_version()


def module_gate(module: str) -> Callable[[F], F]:
    """Skip the wrapped collector (no I/O, no writes) while ``module`` is disabled."""
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(ctx: CollectorContext, *args: Any, **kwargs: Any) -> Any:
            if not ctx.config.enabled(module):
                logger.debug("%s module is disabled; skipping %s", module, func.__name__)
                return None
            return func(ctx, *args, **kwargs)
        wrapper.module = module  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]
    return decorator


class ItemErrors:
    """Collects per-item failures so one bad drive does not hide the others.

    Usage::

        errors = ItemErrors("SwiftDiskUsage")
        for drive in drives:
            with errors.guard(drive.label):
                ...
        errors.raise_if_any()
    """

    def __init__(self, module: str) -> None:
        self.module = module
        self.failures: list[str] = []

    @contextlib.contextmanager
    def guard(self, item: str) -> Iterator[None]:
        try:
            yield
        except CollectionError as e:
            logger.debug("%s: %s failed: %s", self.module, item, e)
            self.failures.append(f"{item}: {e}")

    def raise_if_any(self) -> None:
        if self.failures:
            raise CollectionError(
                f"{self.module}: {len(self.failures)} item(s) failed: " + "; ".join(self.failures)
            )


__all__ = ["CollectorContext", "VersionSource", "ItemErrors", "module_gate"]
