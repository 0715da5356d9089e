"""Environment variable helpers.

All exporter environment overrides share the ``SWIFT_EXPORTER_`` prefix and
the canonical truthy set {"1","true","yes","on"} (case-insensitive).

    from swift_exporter.utils.env_flags import env_str, is_truthy_env
    if is_truthy_env('SWIFT_EXPORTER_JSON_LOGS'):
        ...
"""
from __future__ import annotations

import os

ENV_PREFIX = "SWIFT_EXPORTER_"
TRUTHY_SET: set[str] = {"1", "true", "yes", "on"}


def is_truthy(value: str | None) -> bool:
    if not value:
        return False
    return value.strip().lower() in TRUTHY_SET


def is_truthy_env(name: str, default: str | None = None) -> bool:
    return is_truthy(os.getenv(name, default or ''))


def env_str(name: str, default: str | None = None) -> str | None:
    """Return a stripped env value, or ``default`` when unset or blank."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


__all__ = ["ENV_PREFIX", "TRUTHY_SET", "is_truthy", "is_truthy_env", "env_str"]
