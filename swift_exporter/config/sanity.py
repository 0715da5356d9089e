"""Startup prerequisite checks.

An enabled module whose input file is missing is switched off for the rest of
the process and a warning is logged; the exporter keeps running with the
remaining modules. Only runs once, before any collection task starts.
"""
from __future__ import annotations

import logging
import os

from swift_exporter.utils.exceptions import MissingPrerequisiteError

from .loader import ExporterConfig

logger = logging.getLogger(__name__)

RECON_ROLES: tuple[str, ...] = ("account", "container", "object")


def _required_files(cfg: ExporterConfig) -> dict[str, list[str]]:
    recon_files = [cfg.recon_file(role) for role in RECON_ROLES]
    return {
        # all three recon files are needed for the recon-backed modules
        "ReadReconFile": recon_files,
        "GatherReplicationEstimate": recon_files,
        "GrabSwiftPartition": [cfg.replication_progress_file],
        "CheckSwiftLogSize": [cfg.swift_log_file],
        "CountFilesPerSwiftDrive": [cfg.swift_drive_root],
    }


def find_missing_prerequisites(cfg: ExporterConfig) -> list[MissingPrerequisiteError]:
    problems: list[MissingPrerequisiteError] = []
    for module, paths in _required_files(cfg).items():
        if not cfg.enabled(module):
            logger.debug("%s module is disabled. Skip this check.", module)
            continue
        for path in paths:
            if not os.path.exists(path):
                problems.append(MissingPrerequisiteError(module, path))
                break
    return problems


def check_prerequisites(cfg: ExporterConfig) -> ExporterConfig:
    """Return ``cfg`` with every module lacking its input files disabled."""
    problems = find_missing_prerequisites(cfg)
    for problem in problems:
        logger.warning("%s; disabling the module", problem)
    if not os.path.exists(cfg.swift_config_file):
        logger.warning(
            "Swift config %s does not exist; storage policy names will be reported as unknown",
            cfg.swift_config_file,
        )
    if not problems:
        logger.info("All prerequisite checks passed")
        return cfg
    return cfg.with_disabled(*(p.module for p in problems))


__all__ = ["RECON_ROLES", "find_missing_prerequisites", "check_prerequisites"]
