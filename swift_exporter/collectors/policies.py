"""Storage policy resolution from ``swift.conf``.

Each ``[storage-policy:N]`` section maps index ``N`` to its ``name``. On disk,
object data for policy 0 lives in ``objects`` and for policy N in
``objects-N``.
"""
from __future__ import annotations

import configparser
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

UNKNOWN_POLICY = "unknown"

_SECTION_RE = re.compile(r"^storage-policy:(\d+)$")
_OBJECTS_DIR_RE = re.compile(r"^objects(?:-(\d+))?$")


def parse_storage_policies(text: str) -> dict[int, str]:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read_string(text)
    except configparser.Error as e:
        logger.warning("Cannot parse swift config: %s", e)
        return {}
    policies: dict[int, str] = {}
    for section in parser.sections():
        m = _SECTION_RE.match(section.strip())
        if not m:
            continue
        name = parser.get(section, "name", fallback="").strip()
        if name:
            policies[int(m.group(1))] = name
    return policies


def policy_index_for_dir(dirname: str) -> int | None:
    """``objects`` -> 0, ``objects-3`` -> 3, anything else -> None."""
    m = _OBJECTS_DIR_RE.match(dirname)
    if not m:
        return None
    return int(m.group(1)) if m.group(1) else 0


def is_objects_dir(dirname: str) -> bool:
    return _OBJECTS_DIR_RE.match(dirname) is not None


@dataclass(frozen=True)
class StoragePolicies:
    names: Mapping[int, str] = field(default_factory=dict)

    def name_for(self, index: int | None) -> str:
        if index is None:
            return UNKNOWN_POLICY
        return self.names.get(index, UNKNOWN_POLICY)

    def name_for_dir(self, dirname: str) -> str:
        return self.name_for(policy_index_for_dir(dirname))


def load_storage_policies(path: str) -> StoragePolicies:
    """Parse ``path`` once; a missing or unreadable file yields no names."""
    try:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    except OSError as e:
        logger.warning("Cannot read swift config %s (%s); storage policies will be reported as %s",
                       path, e, UNKNOWN_POLICY)
        return StoragePolicies()
    policies = StoragePolicies(parse_storage_policies(text))
    logger.info("Storage policies: %s", dict(policies.names) or "none")
    return policies


__all__ = [
    "UNKNOWN_POLICY",
    "StoragePolicies",
    "parse_storage_policies",
    "policy_index_for_dir",
    "is_objects_dir",
    "load_storage_policies",
]
