"""Protection audit over discovered projects."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .constants import (
    CLINE_RULES_FILENAME,
    CURSOR_RULES_FILENAME,
    IDENTIFIER_DISPLAY_LENGTH,
    IDENTIFIER_MISSING,
    IDENTIFIER_UNKNOWN,
    MARKER_FILENAME,
    MARKER_ID_FIELD,
    RULE_SURFACE_FILENAMES,
)
from .discovery import find_projects
from .exceptions import InvalidSelectionError, MarkerParseError
from .injector import inject_governance
from .models import InjectionFailure, Project, RemediationReport, RuleSource

logger = logging.getLogger(__name__)

PREVIEW_FILENAMES = (CLINE_RULES_FILENAME, CURSOR_RULES_FILENAME)


def read_marker(project_dir: Path) -> dict[str, Any]:
    """Read and parse a project's .clasp.json.

    Raises:
        MarkerParseError: If the file is missing, unreadable or not a JSON object
    """
    marker_path = Path(project_dir) / MARKER_FILENAME
    try:
        with marker_path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        msg = f"Failed to parse {marker_path}: {e}"
        raise MarkerParseError(msg, details={"path": str(marker_path)}) from e

    if not isinstance(data, dict):
        msg = f"{marker_path} does not contain a JSON object"
        raise MarkerParseError(msg, details={"path": str(marker_path)})

    return data


def display_identifier(project_dir: Path) -> str:
    """Script id prefix for display, 'N/A' if absent, 'unknown' if unreadable."""
    try:
        marker = read_marker(project_dir)
    except MarkerParseError as e:
        logger.debug("%s", e)
        return IDENTIFIER_UNKNOWN

    script_id = marker.get(MARKER_ID_FIELD)
    if not isinstance(script_id, str) or not script_id:
        return IDENTIFIER_MISSING
    if len(script_id) > IDENTIFIER_DISPLAY_LENGTH:
        return script_id[:IDENTIFIER_DISPLAY_LENGTH] + "..."
    return script_id


def is_protected(project_dir: Path) -> bool:
    """Whether either rule-surface file exists.

    This checks presence only; a project injected with an older rule source
    still counts as protected.
    """
    return any((Path(project_dir) / name).is_file() for name in RULE_SURFACE_FILENAMES)


class AuditSession:
    """One audit report, built once and updated in memory by remediation."""

    def __init__(self, base_dir: Path, projects: list[Project]) -> None:
        self.base_dir = Path(base_dir)
        self.projects = projects

    @classmethod
    def scan(cls, base_dir: Path, exclude: Path | None = None) -> AuditSession:
        """Discover projects under base_dir and build the report.

        Args:
            base_dir: Directory whose immediate children are scanned
            exclude: Directory never reported (the tool's home)

        Returns:
            A session holding the fresh report
        """
        base = Path(base_dir).resolve()
        projects = [
            Project(
                index=position,
                path=path,
                name=path.name,
                identifier=display_identifier(path),
                protected=is_protected(path),
            )
            for position, path in enumerate(find_projects(base, exclude=exclude), start=1)
        ]
        logger.info("Audited %d projects under %s", len(projects), base)
        return cls(base, projects)

    @property
    def unprotected(self) -> list[Project]:
        """Report entries without rule-surface files, in report order."""
        return [p for p in self.projects if not p.protected]

    def get(self, index: int) -> Project:
        """Return the report entry at a 1-based index.

        Raises:
            InvalidSelectionError: If index is out of range
        """
        if not 1 <= index <= len(self.projects):
            msg = f"Project index {index} is out of range (1-{len(self.projects)})"
            raise InvalidSelectionError(msg, details={"index": index})
        return self.projects[index - 1]

    def preview(self, index: int) -> str | None:
        """Read the injected rules of one project.

        Args:
            index: 1-based report index

        Returns:
            Rule file text, or None if the project has no rule-surface file

        Raises:
            InvalidSelectionError: If index is out of range
        """
        project = self.get(index)
        for filename in PREVIEW_FILENAMES:
            rule_path = project.path / filename
            if rule_path.is_file():
                return rule_path.read_text(encoding="utf-8", errors="replace")
        return None

    def remediate_all(self, source: RuleSource) -> RemediationReport:
        """Inject the rule source into every unprotected project.

        Projects are processed in report order. A project whose injection
        raises OSError or UnicodeError is recorded as failed and the batch
        continues. The report is updated in memory only; nothing is re-scanned.
        """
        report = RemediationReport()

        for project in self.unprotected:
            try:
                inject_governance(project.path, source)
            except (OSError, UnicodeError) as e:
                logger.warning("Remediation of %s failed: %s", project.name, e)
                report.failed.append(InjectionFailure(path=project.path, error=str(e)))
                continue

            project.protected = True
            report.repaired.append(project)

        return report
