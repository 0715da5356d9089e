"""Metrics registry.

`MetricsRegistry` is an explicitly constructed, per-process collection of
gauge families (labelled or plain) backed by its own ``prometheus_client``
``CollectorRegistry`` (never the library's global default), so tests can build
as many independent instances as they like.

Concurrency model:
  * registration happens once at startup under a registry-local lock;
  * ``set`` goes straight to the ``prometheus_client`` child, which holds a
    per-family lock only while resolving the label child and a per-value lock
    while writing, so writers of unrelated families never contend;
  * ``snapshot``/``exposition`` iterate a copy of each family's children, so a
    reader never observes a partially written (name, labels) entry.

Families declared without labels are only attached to the
``CollectorRegistry`` on their first ``set``, so they too contribute nothing
to the exposition until a value exists.

Value policy: non-finite values (NaN, +/-Inf) are never published. ``set``
returns False and leaves the previous value in place.
"""
from __future__ import annotations

import logging
import math
import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from swift_exporter.utils.exceptions import MetricRegistrationError

logger = logging.getLogger(__name__)

LabelValues = Mapping[str, object] | Sequence[object]


@dataclass(frozen=True)
class FamilySnapshot:
    name: str
    doc: str
    labels: tuple[str, ...]
    samples: dict[tuple[str, ...], float] = field(default_factory=dict)

    def value(self, **labels: object) -> float | None:
        key = tuple(str(labels[k]) for k in self.labels)
        return self.samples.get(key)


class MetricsRegistry:
    def __init__(self, collector_registry: CollectorRegistry | None = None) -> None:
        self._registry = collector_registry if collector_registry is not None else CollectorRegistry()
        self._families: dict[str, Gauge] = {}
        self._labels: dict[str, tuple[str, ...]] = {}
        self._docs: dict[str, str] = {}
        self._owners: dict[str, str | None] = {}
        self._unexposed: set[str] = set()  # unlabelled families not set yet
        self._lock = threading.Lock()

    @property
    def collector_registry(self) -> CollectorRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(self, name: str, doc: str, labels: Iterable[str], owner: str | None = None) -> Gauge:
        """Declare a gauge family. A second declaration of ``name`` is fatal."""
        label_names = tuple(labels)
        with self._lock:
            if name in self._families:
                raise MetricRegistrationError(
                    f"{name}: already registered (owner={self._owners.get(name)!r}, new owner={owner!r})"
                )
            try:
                if label_names:
                    gauge = Gauge(name, doc, list(label_names), registry=self._registry)
                else:
                    gauge = Gauge(name, doc, registry=None)
                    self._unexposed.add(name)
            except ValueError as e:
                raise MetricRegistrationError(f"{name}: {e}") from e
            self._families[name] = gauge
            self._labels[name] = label_names
            self._docs[name] = doc
            self._owners[name] = owner
        logger.debug("registered gauge %s labels=%s owner=%s", name, label_names, owner)
        return gauge

    def register_catalogue(self, defs: Iterable) -> MetricsRegistry:
        """Register every ``MetricDef`` of ``defs`` (see ``metrics.spec``)."""
        for d in defs:
            self.register(d.name, d.doc, d.labels, owner=d.module)
        return self

    def names(self) -> list[str]:
        return sorted(self._families)

    def labelnames(self, name: str) -> tuple[str, ...]:
        return self._labels[name]

    def owner(self, name: str) -> str | None:
        return self._owners[name]

    def names_owned_by(self, owner: str) -> list[str]:
        return sorted(n for n, o in self._owners.items() if o == owner)

    def __contains__(self, name: object) -> bool:
        return name in self._families

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _label_values(self, name: str, labels: LabelValues) -> tuple[str, ...]:
        expected = self._labels[name]
        if isinstance(labels, Mapping):
            if set(labels) != set(expected):
                raise ValueError(f"{name}: expected labels {expected}, got {tuple(labels)}")
            return tuple(str(labels[k]) for k in expected)
        values = tuple(str(v) for v in labels)
        if len(values) != len(expected):
            raise ValueError(f"{name}: expected {len(expected)} label values, got {len(values)}")
        return values

    def set(self, name: str, labels: LabelValues, value: float) -> bool:
        """Upsert the value of one (name, labels) series.

        Returns False (and publishes nothing) when ``value`` is not finite.
        """
        gauge = self._families[name]
        values = self._label_values(name, labels)
        v = float(value)
        if not math.isfinite(v):
            logger.debug("refusing non-finite value %r for %s%s", v, name, values)
            return False
        if values:
            gauge.labels(*values).set(v)
        else:
            gauge.set(v)
            self._expose(name)
        return True

    def _expose(self, name: str) -> None:
        with self._lock:
            if name not in self._unexposed:
                return
            try:
                self._registry.register(self._families[name])
            except ValueError as e:
                raise MetricRegistrationError(f"{name}: {e}") from e
            self._unexposed.discard(name)

    def _hide(self, name: str) -> None:
        with self._lock:
            if name in self._unexposed:
                return
            self._registry.unregister(self._families[name])
            self._unexposed.add(name)

    def remove(self, name: str, labels: LabelValues) -> None:
        gauge = self._families[name]
        values = self._label_values(name, labels)
        if not values:
            self._hide(name)
            return
        try:
            gauge.remove(*values)
        except KeyError:
            pass

    def clear(self, name: str) -> None:
        if not self._labels[name]:
            self._hide(name)
            return
        self._families[name].clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _family_snapshot(self, name: str) -> FamilySnapshot:
        gauge = self._families[name]
        label_names = self._labels[name]
        samples: dict[tuple[str, ...], float] = {}
        if name in self._unexposed:
            return FamilySnapshot(name, self._docs[name], label_names, samples)
        for metric in gauge.collect():
            for sample in metric.samples:
                samples[tuple(sample.labels[k] for k in label_names)] = sample.value
        return FamilySnapshot(name, self._docs[name], label_names, samples)

    def get(self, name: str, labels: LabelValues) -> float | None:
        values = self._label_values(name, labels)
        return self._family_snapshot(name).samples.get(values)

    def snapshot(self) -> dict[str, FamilySnapshot]:
        """Point-in-time view of every registered family."""
        return {name: self._family_snapshot(name) for name in list(self._families)}

    def exposition(self) -> bytes:
        """Prometheus text exposition of the current state."""
        return generate_latest(self._registry)


__all__ = ["MetricsRegistry", "FamilySnapshot"]
