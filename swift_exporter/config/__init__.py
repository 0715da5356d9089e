"""Configuration: YAML loading, normalization and startup prerequisite checks."""
from __future__ import annotations

from .loader import MODULE_NAMES, ExporterConfig, build_config, load_config
from .sanity import check_prerequisites

__all__ = ["MODULE_NAMES", "ExporterConfig", "build_config", "load_config", "check_prerequisites"]
