"""Metrics facade.

    from swift_exporter.metrics import MetricsRegistry, build_registry, MetricsHTTPServer
"""
from __future__ import annotations

from .registry import FamilySnapshot, MetricsRegistry
from .server import MetricsHTTPServer, parse_listen_address
from .spec import METRIC_SPECS, MetricDef, build_registry, register_all

__all__ = [
    "FamilySnapshot",
    "MetricsRegistry",
    "MetricsHTTPServer",
    "parse_listen_address",
    "METRIC_SPECS",
    "MetricDef",
    "build_registry",
    "register_all",
]
