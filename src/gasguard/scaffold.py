"""Environment preflight and clasp project scaffolding."""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Protocol

from .constants import MARKER_FILENAME, SCAFFOLD_SYSTEM_FILES
from .exceptions import ScaffoldError
from .injector import inject_governance
from .models import RuleSource

logger = logging.getLogger(__name__)

SOURCE_DIRNAME = "src"
INITIAL_COMMIT_MESSAGE = "Init by GasGuard"


class CommandRunner(Protocol):
    """Protocol for running external commands."""

    def run(self, args: list[str], cwd: Path, capture: bool = False) -> str:
        """Run a command to completion.

        Args:
            args: Program and arguments
            cwd: Working directory for the command
            capture: Return stdout instead of streaming it

        Returns:
            Captured stdout, or an empty string when not capturing

        Raises:
            ScaffoldError: If the program is missing or exits non-zero
        """
        ...


class SubprocessRunner:
    """Runs commands with subprocess."""

    def run(self, args: list[str], cwd: Path, capture: bool = False) -> str:
        logger.debug("Running %s in %s", " ".join(args), cwd)
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                check=True,
                text=True,
                capture_output=capture,
            )
        except FileNotFoundError as e:
            msg = f"Command not found: {args[0]}"
            raise ScaffoldError(msg, details={"args": args}) from e
        except subprocess.CalledProcessError as e:
            msg = f"Command failed with exit code {e.returncode}: {' '.join(args)}"
            raise ScaffoldError(msg, details={"args": args, "stderr": e.stderr}) from e

        return completed.stdout.strip() if capture and completed.stdout else ""


def check_preflight(runner: CommandRunner, cwd: Path | None = None) -> str:
    """Verify git is available.

    clasp is not checked: it is installed per project as a dev dependency.

    Returns:
        The git version string

    Raises:
        ScaffoldError: If git cannot be run
    """
    try:
        return runner.run(["git", "--version"], cwd=cwd or Path.cwd(), capture=True)
    except ScaffoldError as e:
        msg = "git is not installed. Install it from https://git-scm.com"
        raise ScaffoldError(msg, details=e.details) from e


class ProjectScaffolder:
    """Creates or clones clasp projects with governance already injected."""

    def __init__(self, runner: CommandRunner) -> None:
        """Initialize scaffolder.

        Args:
            runner: Executes npm, npx and git
        """
        self.runner = runner

    def create(
        self,
        parent_dir: Path,
        name: str,
        source: RuleSource,
        script_id: str | None = None,
    ) -> Path:
        """Scaffold a new project, or clone one when script_id is given.

        Args:
            parent_dir: Directory that will contain the project
            name: Project directory name (also the clasp title)
            source: Rule source injected into the new project
            script_id: Existing Apps Script id to clone

        Returns:
            Path to the new project

        Raises:
            ScaffoldError: If the name is invalid or a setup command fails
        """
        name = name.strip()
        if not name or Path(name).name != name:
            msg = f"Invalid project name: {name!r}"
            raise ScaffoldError(msg)

        project_dir = Path(parent_dir).resolve() / name
        if project_dir.exists():
            msg = f"Project already exists: {project_dir}"
            raise ScaffoldError(msg, details={"path": str(project_dir)})

        project_dir.mkdir()
        logger.info("Scaffolding %s", project_dir)

        self.runner.run(["npm", "init", "-y"], cwd=project_dir, capture=True)
        self.runner.run(["npm", "install", "@google/clasp", "-D"], cwd=project_dir)

        if script_id:
            self.runner.run(["npx", "clasp", "clone", script_id], cwd=project_dir)
        else:
            self.runner.run(
                ["npx", "clasp", "create", "--title", name, "--type", "sheets"],
                cwd=project_dir,
            )

        isolate_sources(project_dir)
        set_root_dir(project_dir)
        inject_governance(project_dir, source)
        self._init_git(project_dir)

        return project_dir

    def _init_git(self, project_dir: Path) -> None:
        """Create the first commit; a git failure leaves the project usable."""
        try:
            self.runner.run(["git", "init"], cwd=project_dir, capture=True)
            self.runner.run(["git", "add", "."], cwd=project_dir)
            self.runner.run(
                ["git", "commit", "-m", INITIAL_COMMIT_MESSAGE],
                cwd=project_dir,
            )
        except ScaffoldError as e:
            logger.warning("Git initialization skipped for %s: %s", project_dir.name, e)


def isolate_sources(project_dir: Path) -> list[Path]:
    """Move script files from the project root into src/.

    Returns:
        New locations of the moved entries
    """
    source_dir = Path(project_dir) / SOURCE_DIRNAME
    source_dir.mkdir(exist_ok=True)

    moved = []
    for entry in sorted(Path(project_dir).iterdir()):
        if entry.name in SCAFFOLD_SYSTEM_FILES:
            continue
        try:
            moved.append(entry.rename(source_dir / entry.name))
        except OSError as e:
            logger.warning("Could not move %s into %s/: %s", entry.name, SOURCE_DIRNAME, e)

    return moved


def set_root_dir(project_dir: Path) -> None:
    """Point clasp at src/ by rewriting rootDir in .clasp.json."""
    marker_path = Path(project_dir) / MARKER_FILENAME
    if not marker_path.exists():
        return

    try:
        config = json.loads(marker_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        msg = f"Failed to parse {marker_path}: {e}"
        raise ScaffoldError(msg) from e

    config["rootDir"] = f"./{SOURCE_DIRNAME}"
    marker_path.write_text(json.dumps(config, indent=2), encoding="utf-8")
