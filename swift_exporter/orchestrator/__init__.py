"""Scheduling and process wiring."""
from __future__ import annotations

from .bootstrap import Runtime, bootstrap, build_context
from .scheduler import DEFAULT_PERIODS, CollectionScheduler, CollectionTask, build_default_tasks

__all__ = [
    "Runtime",
    "bootstrap",
    "build_context",
    "DEFAULT_PERIODS",
    "CollectionScheduler",
    "CollectionTask",
    "build_default_tasks",
]
