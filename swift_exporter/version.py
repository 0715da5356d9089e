"""Central version metadata for swift_exporter.

Resolution order for get_version():
1. Env override SWIFT_EXPORTER_VERSION (e.g., injected by packaging)
2. __version__ constant below
"""
from __future__ import annotations

import os

__version__ = "0.9.0"


def get_version() -> str:
    return os.environ.get("SWIFT_EXPORTER_VERSION", __version__)


__all__ = ["__version__", "get_version"]
