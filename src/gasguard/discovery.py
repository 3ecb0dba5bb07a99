"""Managed project discovery."""

from __future__ import annotations

import logging
from pathlib import Path

from .constants import MARKER_FILENAME

logger = logging.getLogger(__name__)


def find_projects(base_dir: Path, exclude: Path | None = None) -> list[Path]:
    """Find clasp projects directly under a base directory.

    Only immediate subdirectories are considered. A subdirectory is a project
    when it contains the marker file.

    Args:
        base_dir: Directory to scan
        exclude: Directory to skip even if it holds a marker (the tool's home)

    Returns:
        Absolute project paths in name order; empty if base_dir is missing
    """
    base = Path(base_dir).resolve()
    if not base.is_dir():
        logger.debug("Scan base %s does not exist", base)
        return []

    skip = Path(exclude).resolve() if exclude is not None else None

    projects = []
    for child in sorted(base.iterdir()):
        if not child.is_dir():
            continue
        if skip is not None and child.resolve() == skip:
            continue
        if (child / MARKER_FILENAME).is_file():
            projects.append(child.resolve())

    return projects
