"""swift_exporter exception hierarchy.

Small, explicit tree used to separate failures that must stop the process
(configuration, metric registration) from failures that only affect one
collector for one cycle (collection errors).

  SwiftExporterError
    ConfigError                 startup fatal
    MetricRegistrationError     startup fatal
    MissingPrerequisiteError    module disabled for the process lifetime
    CollectionError             transient, skip this collector this cycle
      DataSourceError           file / subprocess / HTTP failure
      SnapshotParseError        malformed status snapshot
"""
from __future__ import annotations


class SwiftExporterError(Exception):
    """Base class for all swift_exporter exceptions."""


class ConfigError(SwiftExporterError):
    """Missing or invalid configuration file, unparseable YAML, bad value types."""


class MetricRegistrationError(SwiftExporterError):
    """A gauge family was declared twice or with an invalid shape."""


class MissingPrerequisiteError(SwiftExporterError):
    """A file required by an enabled module is absent."""

    def __init__(self, module: str, path: str) -> None:
        super().__init__(f"{module}: required file {path!r} does not exist")
        self.module = module
        self.path = path


class CollectionError(SwiftExporterError):
    """Transient per-cycle failure inside a collector."""


class DataSourceError(CollectionError):
    """An external collaborator (file, subprocess, HTTP endpoint) failed."""


class SnapshotParseError(CollectionError):
    """A status snapshot was not valid JSON or did not match the expected schema."""


__all__ = [
    "SwiftExporterError",
    "ConfigError",
    "MetricRegistrationError",
    "MissingPrerequisiteError",
    "CollectionError",
    "DataSourceError",
    "SnapshotParseError",
]
