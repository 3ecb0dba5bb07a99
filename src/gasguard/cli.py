"""GasGuard command-line interface."""

from __future__ import annotations

import logging
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .audit import AuditSession
from .catalog import find_template, load_templates
from .config import GuardSettings, load_settings
from .discovery import find_projects
from .exceptions import GasGuardError, ScaffoldError
from .injector import inject_governance, inject_many
from .models import TemplateOrigin
from .scaffold import ProjectScaffolder, SubprocessRunner, check_preflight
from .shell import GuardShell, render_audit, render_failures, render_remediation, render_templates
from .state import RuleSourceState

app = typer.Typer(
    name="gasguard",
    help="GasGuard: AI rule governance for Google Apps Script projects",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

TEMPLATE_OPTION = typer.Option(
    None,
    "--template",
    "-t",
    help="Template id to inject (defaults to the first catalog entry)",
)
RULES_FILE_OPTION = typer.Option(
    None,
    "--rules-file",
    help="Inject the contents of this file instead of a template",
)
SCOPE_OPTION = typer.Option(
    None,
    "--scope",
    "-s",
    help="Scan scope relative to the tool home: '.' or '..'",
)


def _get_version_string() -> str:
    """Get version string from package metadata or pyproject.toml."""
    try:
        return get_version("gasguard")
    except PackageNotFoundError:
        pass

    # Try to read version from pyproject.toml for development installs
    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text()
        match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
        if match:
            return f"{match.group(1)} (development)"

    return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"GasGuard version {_get_version_string()}")
        raise typer.Exit


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("gasguard")
    package_logger.handlers = [RichHandler(console=err_console, show_path=False)]
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def _settings(ctx: typer.Context) -> GuardSettings:
    return ctx.obj


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


def _build_state(
    settings: GuardSettings,
    template: str | None,
    rules_file: Path | None,
) -> RuleSourceState:
    """Load the catalog and apply a template or rule file selection."""
    state = RuleSourceState(load_templates(settings.template_dir))
    if rules_file is not None:
        state.load_from_file(rules_file)
    elif template is not None:
        selected = find_template(state.templates, template)
        state.select_from_catalog(state.templates.index(selected))
    return state


def _scan_path(settings: GuardSettings, scope: str | None) -> Path:
    if scope not in (None, ".", ".."):
        raise _fail(f"Invalid scope {scope!r}: use '.' or '..'")
    return settings.scan_path(scope)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    home: Path | None = typer.Option(
        None,
        "--home",
        envvar="GASGUARD_HOME",
        file_okay=False,
        help="Tool home holding templates/, my-rules.md and gasguard.yaml",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
    skip_preflight: bool = typer.Option(
        False,
        "--skip-preflight",
        help="Do not check for git before starting the interactive menu",
    ),
) -> None:
    """GasGuard: AI rule governance for Google Apps Script projects.

    Without a command, starts the interactive menu.
    """
    _configure_logging(verbose)

    try:
        settings = load_settings(home)
    except GasGuardError as e:
        raise _fail(str(e)) from e

    ctx.obj = settings
    if ctx.invoked_subcommand is None:
        _run_shell(settings, skip_preflight)


def _run_shell(settings: GuardSettings, skip_preflight: bool) -> None:
    runner = SubprocessRunner()

    if not skip_preflight:
        console.print("Checking development environment...")
        try:
            git_version = check_preflight(runner, cwd=settings.home)
        except ScaffoldError as e:
            console.print(f"  [red]✗[/red] {escape(str(e))}")
            console.print("Install the missing tools and run gasguard again.")
            raise typer.Exit(1) from e
        console.print(f"  [green]✓[/green] {escape(git_version)}")
        console.print("  clasp is installed per project when a project is created")

    templates = load_templates(settings.template_dir)
    if templates[0].origin == TemplateOrigin.EXTERNAL:
        console.print(f"Loaded {len(templates)} templates from {settings.template_dir.name}/")
    else:
        console.print("Using built-in templates (add templates/*.md to customize)")

    shell = GuardShell(
        settings,
        RuleSourceState(templates),
        console,
        scaffolder=ProjectScaffolder(runner),
    )
    shell.run()


@app.command()
def templates(ctx: typer.Context) -> None:
    """List the available rule templates."""
    settings = _settings(ctx)
    render_templates(console, RuleSourceState(load_templates(settings.template_dir)))


@app.command()
def inject(
    ctx: typer.Context,
    target: Path = typer.Argument(
        Path("."),
        help="Project directory to inject into",
    ),
    template: str | None = TEMPLATE_OPTION,
    rules_file: Path | None = RULES_FILE_OPTION,
) -> None:
    """Write rules into one directory and harden its .gitignore."""
    if not target.is_dir():
        raise _fail(f"Directory not found: {target}")

    try:
        state = _build_state(_settings(ctx), template, rules_file)
        result = inject_governance(target, state.active)
    except (GasGuardError, OSError, UnicodeError) as e:
        raise _fail(str(e)) from e

    console.print(f"[green]✓[/green] Injected {escape(state.active.display_name)} into {target}")
    if result.ignore_updated:
        console.print(f"  .gitignore: added {escape(', '.join(result.added_patterns))}")
    else:
        console.print("  .gitignore: up to date")


@app.command()
def batch(
    ctx: typer.Context,
    scope: str | None = SCOPE_OPTION,
    template: str | None = TEMPLATE_OPTION,
    rules_file: Path | None = RULES_FILE_OPTION,
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Inject rules into every project found under the scan scope."""
    settings = _settings(ctx)
    projects = find_projects(_scan_path(settings, scope), exclude=settings.home)
    if not projects:
        console.print("[yellow]No projects found.[/yellow]")
        return

    try:
        state = _build_state(settings, template, rules_file)
    except (GasGuardError, OSError, UnicodeError) as e:
        raise _fail(str(e)) from e

    console.print(f"Found {len(projects)} projects.")
    console.print(f"Rules to inject: {escape(state.active.display_name)}")
    if not yes and not typer.confirm("Proceed?", default=False):
        console.print("Cancelled.")
        return

    results, failures = inject_many(projects, state.active)
    for result in results:
        console.print(f"[green]✓[/green] \\[{escape(result.path.name)}] done")
    render_failures(console, failures)
    if failures:
        raise typer.Exit(1)


@app.command()
def audit(
    ctx: typer.Context,
    scope: str | None = SCOPE_OPTION,
    fix: bool = typer.Option(
        False,
        "--fix",
        help="Inject rules into every unprotected project",
    ),
    template: str | None = TEMPLATE_OPTION,
    rules_file: Path | None = RULES_FILE_OPTION,
) -> None:
    """Report which projects carry rules, optionally fixing the rest."""
    settings = _settings(ctx)
    session = AuditSession.scan(_scan_path(settings, scope), exclude=settings.home)
    if not session.projects:
        console.print("[yellow]No projects found.[/yellow]")
        return

    render_audit(console, session)
    if not fix:
        return

    if not session.unprotected:
        console.print("Nothing to fix.")
        return

    try:
        state = _build_state(settings, template, rules_file)
    except (GasGuardError, OSError, UnicodeError) as e:
        raise _fail(str(e)) from e

    console.print(f"Fixing {len(session.unprotected)} projects with {escape(state.active.display_name)}")
    report = session.remediate_all(state.active)
    render_remediation(console, report)
    if not report.succeeded:
        raise typer.Exit(1)


@app.command()
def export(
    ctx: typer.Context,
    template: str | None = TEMPLATE_OPTION,
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="File to write (defaults to my-rules.md in the tool home)",
    ),
) -> None:
    """Write a template to the editable rule file."""
    settings = _settings(ctx)
    try:
        state = _build_state(settings, template, None)
        path = state.export_to_file(output or settings.custom_rules_file)
    except (GasGuardError, OSError, UnicodeError) as e:
        raise _fail(str(e)) from e

    console.print(f"[green]✓[/green] Wrote {escape(state.active.display_name)} to {path}")


@app.command()
def new(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Project directory name"),
    script_id: str | None = typer.Option(
        None,
        "--script-id",
        help="Clone this existing Apps Script project instead of creating one",
    ),
    template: str | None = TEMPLATE_OPTION,
    rules_file: Path | None = RULES_FILE_OPTION,
) -> None:
    """Create (or clone) a clasp project with rules injected."""
    settings = _settings(ctx)
    try:
        state = _build_state(settings, template, rules_file)
        project_dir = ProjectScaffolder(SubprocessRunner()).create(
            settings.home,
            name,
            state.active,
            script_id=script_id,
        )
    except (GasGuardError, OSError, UnicodeError) as e:
        raise _fail(str(e)) from e

    console.print(f"[green]✓[/green] Project ready at {project_dir}")


@app.command()
def version() -> None:
    """Show GasGuard version information."""
    console.print(f"GasGuard version {_get_version_string()}")


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
