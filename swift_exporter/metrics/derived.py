"""Derived metric calculations.

Pure helpers turning raw counters into rates, ratios and percentages.

Omission policy: whenever a result would be undefined (zero, negative or
missing denominator, non-finite input) the helper returns ``None`` and the
caller skips publishing that gauge for the cycle. No helper ever returns NaN
or Inf.
"""
from __future__ import annotations

import math
from collections.abc import Mapping

CPU_STATES: tuple[str, ...] = (
    "user", "system", "idle", "nice", "iowait", "irq", "softirq", "steal", "guest", "guest_nice",
)


def _finite(value: float | None) -> float | None:
    if value is None:
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def per_second(counter: float | None, elapsed_seconds: float | None) -> float | None:
    """``counter / elapsed_seconds``; None when elapsed is not a positive finite number."""
    c = _finite(counter)
    t = _finite(elapsed_seconds)
    if c is None or t is None or t <= 0:
        return None
    return c / t


def rate_per_second(counter: float | None, elapsed_minutes: float | None) -> float | None:
    """``counter / (elapsed_minutes * 60)``.

    >>> rate_per_second(120, 2)
    1.0
    >>> rate_per_second(120, 0) is None
    True
    """
    t = _finite(elapsed_minutes)
    if t is None:
        return None
    return per_second(counter, t * 60.0)


def minutes_to_seconds(elapsed_minutes: float | None) -> float | None:
    t = _finite(elapsed_minutes)
    return None if t is None else t * 60.0


def ratio(part: float | None, total: float | None) -> float | None:
    p = _finite(part)
    t = _finite(total)
    if p is None or t is None or t <= 0:
        return None
    return p / t


def cpu_breakdown(times: Mapping[str, float]) -> dict[str, float]:
    """Share of each CPU state in the sum of all states for one CPU.

    The inputs are cumulative counters since boot, so the result is a
    lifetime-average breakdown rather than current load. Missing states count
    as zero; an all-zero sample yields an empty dict.
    """
    values = {state: _finite(times.get(state)) or 0.0 for state in CPU_STATES}
    total = sum(values.values())
    if total <= 0:
        return {}
    return {state: v / total for state, v in values.items()}


__all__ = ["CPU_STATES", "per_second", "rate_per_second", "minutes_to_seconds", "ratio", "cpu_breakdown"]
