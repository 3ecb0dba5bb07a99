"""Governance injection into project directories."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .constants import GITIGNORE_FILENAME, REQUIRED_IGNORES, RULE_SURFACE_FILENAMES
from .models import InjectionFailure, InjectionResult, RuleSource

logger = logging.getLogger(__name__)


def inject_governance(target_dir: Path, source: RuleSource) -> InjectionResult:
    """Write the rule source into a project and harden its .gitignore.

    Both rule-surface files are fully replaced; any local edits are lost.
    The steps are not transactional: a failure part way leaves the files
    written so far in place.

    Args:
        target_dir: Project directory (must exist)
        source: Rule source whose content is written

    Returns:
        Files written and ignore patterns appended

    Raises:
        OSError: If any file cannot be written
    """
    target = Path(target_dir)

    written = []
    for filename in RULE_SURFACE_FILENAMES:
        rule_path = target / filename
        rule_path.write_text(source.content, encoding="utf-8", newline="")
        written.append(rule_path)

    added = merge_ignore_patterns(target)
    logger.debug("Injected %s into %s (+%d ignores)", source.display_name, target, len(added))

    return InjectionResult(path=target, written_files=written, added_patterns=added)


def merge_ignore_patterns(
    target_dir: Path,
    required: Iterable[str] = REQUIRED_IGNORES,
) -> list[str]:
    """Append missing required patterns to a project's .gitignore.

    Existing lines are never removed, reordered or deduplicated. Patterns are
    compared against existing lines after trimming whitespace.

    Args:
        target_dir: Project directory
        required: Patterns the ignore list must contain

    Returns:
        Patterns appended by this call, in required order
    """
    ignore_path = Path(target_dir) / GITIGNORE_FILENAME

    # The file is only appended to, so undecodable bytes pass through untouched
    current = ""
    if ignore_path.exists():
        with ignore_path.open(encoding="utf-8", errors="surrogateescape", newline="") as f:
            current = f.read()

    present = {line.strip() for line in current.split("\n")}
    added: list[str] = []
    for pattern in required:
        if pattern not in present:
            added.append(pattern)
            present.add(pattern)

    prefix = "\n" if current and not current.endswith("\n") else ""
    if prefix or added:
        with ignore_path.open("a", encoding="utf-8", newline="") as f:
            f.write(prefix + "".join(f"{pattern}\n" for pattern in added))

    return added


def inject_many(
    targets: Iterable[Path],
    source: RuleSource,
) -> tuple[list[InjectionResult], list[InjectionFailure]]:
    """Inject into several projects in order, continuing past failures.

    Returns:
        Successful results and per-project failures
    """
    results: list[InjectionResult] = []
    failures: list[InjectionFailure] = []

    for target in targets:
        try:
            results.append(inject_governance(target, source))
        except (OSError, UnicodeError) as e:
            logger.warning("Injection into %s failed: %s", target, e)
            failures.append(InjectionFailure(path=Path(target), error=str(e)))

    return results, failures
