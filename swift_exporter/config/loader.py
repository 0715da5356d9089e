"""Config loading & normalization entrypoint.

Responsibilities:
  * Load the optional YAML file (PyYAML ``safe_load``).
  * Validate value types; unknown keys are logged and ignored.
  * Normalize into a frozen ``ExporterConfig`` that is read-only for the rest
    of the process (no hot reload).

Any problem with an explicitly given file is fatal (``ConfigError``): the
exporter never runs with an indeterminate module set.

Public API:
  load_config(path: str | None) -> ExporterConfig
"""
from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import yaml

from swift_exporter.utils.exceptions import ConfigError
from swift_exporter.utils.versions import SwiftVersion, parse_version

logger = logging.getLogger(__name__)

# Module enable flags, all default to True.
MODULE_NAMES: tuple[str, ...] = (
    "ReadReconFile",
    "GrabSwiftPartition",
    "SwiftDiskUsage",
    "SwiftDriveIO",
    "GatherReplicationEstimate",
    "GatherStoragePolicyUtilization",
    "CheckObjectServerConnection",
    "ExposePerCPUUsage",
    "ExposePerNICMetric",
    "GrabNICMTU",
    "RunSMARTCTL",
    "CheckSwiftService",
    "CheckSwiftLogSize",
    "CountFilesPerSwiftDrive",
)

# YAML key -> (ExporterConfig attribute, default)
PATH_KEYS: dict[str, tuple[str, str]] = {
    "SwiftLogFile": ("swift_log_file", "/var/log/swift/all.log"),
    "SwiftConfigFile": ("swift_config_file", "/etc/swift/swift.conf"),
    "ReplicationProgressFile": ("replication_progress_file", "/opt/ss/var/lib/replication_progress.json"),
    "ObjectReconFile": ("object_recon_file", "/var/cache/swift/object.recon"),
    "ContainerReconFile": ("container_recon_file", "/var/cache/swift/container.recon"),
    "AccountReconFile": ("account_recon_file", "/var/cache/swift/account.recon"),
    "NodeConfigFile": ("node_config_file", "/etc/ssnode.conf"),
    "SwiftDriveRoot": ("swift_drive_root", "/srv/node"),
}

DEFAULT_SHARDING_MIN_VERSION = "2.15"
DEFAULT_LISTEN_ADDRESS = ":53167"


@dataclass(frozen=True)
class ExporterConfig:
    modules: Mapping[str, bool] = field(default_factory=lambda: {m: True for m in MODULE_NAMES})
    swift_log_file: str = PATH_KEYS["SwiftLogFile"][1]
    swift_config_file: str = PATH_KEYS["SwiftConfigFile"][1]
    replication_progress_file: str = PATH_KEYS["ReplicationProgressFile"][1]
    object_recon_file: str = PATH_KEYS["ObjectReconFile"][1]
    container_recon_file: str = PATH_KEYS["ContainerReconFile"][1]
    account_recon_file: str = PATH_KEYS["AccountReconFile"][1]
    node_config_file: str = PATH_KEYS["NodeConfigFile"][1]
    swift_drive_root: str = PATH_KEYS["SwiftDriveRoot"][1]
    sharding_min_version: SwiftVersion = SwiftVersion(2, 15)
    object_server_port: int = 6000
    command_timeout: float = 60.0
    info_timeout: float = 5.0
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    source: str | None = None

    def enabled(self, module: str) -> bool:
        return bool(self.modules.get(module, False))

    def recon_file(self, role: str) -> str:
        return getattr(self, f"{role}_recon_file")

    def with_disabled(self, *modules: str) -> ExporterConfig:
        flags = dict(self.modules)
        for m in modules:
            flags[m] = False
        return dataclasses.replace(self, modules=flags)

    def with_overrides(self, **changes: Any) -> ExporterConfig:
        return dataclasses.replace(self, **changes)


def _coerce_flag(key: str, value: Any) -> bool:
    # First releases wrote flags as single-element lists ("ReadReconFile: [true]")
    if isinstance(value, list) and len(value) == 1:
        logger.debug("config key %s uses legacy list form", key)
        value = value[0]
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be a boolean, got {value!r}")
    return value


def _coerce_path(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty path string, got {value!r}")
    return value.strip()


def _coerce_positive(key: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{key} must be a positive number, got {value!r}")
    return float(value)


def build_config(raw: Mapping[str, Any], source: str | None = None) -> ExporterConfig:
    """Normalize a parsed YAML mapping into an ExporterConfig."""
    modules = {m: True for m in MODULE_NAMES}
    changes: dict[str, Any] = {"source": source}
    for key, value in raw.items():
        if key in modules:
            modules[key] = _coerce_flag(key, value)
        elif key in PATH_KEYS:
            changes[PATH_KEYS[key][0]] = _coerce_path(key, value)
        elif key == "ShardingMinVersion":
            if not isinstance(value, str):
                raise ConfigError(f"ShardingMinVersion must be a quoted string such as '2.15', got {value!r}")
            parsed = parse_version(value)
            if parsed is None:
                raise ConfigError(f"ShardingMinVersion {value!r} is not a major.minor version")
            changes["sharding_min_version"] = parsed
        elif key == "ObjectServerPort":
            if isinstance(value, bool) or not isinstance(value, int) or not 0 < value < 65536:
                raise ConfigError(f"ObjectServerPort must be a TCP port number, got {value!r}")
            changes["object_server_port"] = value
        elif key == "CommandTimeout":
            changes["command_timeout"] = _coerce_positive(key, value)
        elif key == "InfoTimeout":
            changes["info_timeout"] = _coerce_positive(key, value)
        elif key == "ListenAddress":
            changes["listen_address"] = _coerce_path(key, value)
        else:
            logger.warning("Ignoring unknown config key %r", key)
    changes["modules"] = modules
    return ExporterConfig(**changes)


def load_config(path: str | os.PathLike[str] | None) -> ExporterConfig:
    if path is None:
        logger.info("No config file given; using built-in defaults (all modules enabled)")
        return ExporterConfig()
    path = os.fspath(path)
    try:
        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except FileNotFoundError as e:
        raise ConfigError(f"config file {path!r} does not exist") from e
    except OSError as e:
        raise ConfigError(f"cannot read config file {path!r}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse config file {path!r}: {e}") from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config file {path!r} must contain a mapping at top level")
    cfg = build_config(raw, source=path)
    logger.info("Loaded config from %s (enabled modules: %s)", path,
                ", ".join(m for m in MODULE_NAMES if cfg.enabled(m)) or "none")
    return cfg


__all__ = [
    "MODULE_NAMES",
    "PATH_KEYS",
    "DEFAULT_LISTEN_ADDRESS",
    "DEFAULT_SHARDING_MIN_VERSION",
    "ExporterConfig",
    "build_config",
    "load_config",
]
