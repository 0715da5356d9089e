"""Swift release version parsing and comparison."""
from __future__ import annotations

import re
from typing import NamedTuple

_VERSION_RE = re.compile(r"^\s*v?(\d+)\.(\d+)")


class SwiftVersion(NamedTuple):
    major: int
    minor: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    def at_least(self, threshold: SwiftVersion) -> bool:
        # tuple ordering: 3.0 >= 2.15 holds
        return (self.major, self.minor) >= (threshold.major, threshold.minor)


def parse_version(text: object) -> SwiftVersion | None:
    """Parse ``major.minor`` from strings such as ``2.20.1`` or ``2.15.2.dev4``."""
    if not isinstance(text, str):
        return None
    m = _VERSION_RE.match(text)
    if not m:
        return None
    return SwiftVersion(int(m.group(1)), int(m.group(2)))


__all__ = ["SwiftVersion", "parse_version"]
