"""Interactive command loop."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from .audit import AuditSession
from .config import GuardSettings
from .constants import CLINE_RULES_FILENAME, MARKER_FILENAME
from .discovery import find_projects
from .exceptions import GasGuardError, InvalidSelectionError, RuleFileNotFoundError
from .injector import inject_governance, inject_many
from .models import InjectionFailure, RemediationReport
from .scaffold import ProjectScaffolder
from .state import RuleSourceState

HELP_TEXT = f"""\
[bold]\\[1] New project[/bold]
    npm init, install clasp, clasp create, move script files into src/,
    inject the active rules, then git init and a first commit.

[bold]\\[2] Clone project[/bold]
    Same as [1], but runs clasp clone for an existing Script ID.

[bold]\\[3] Inject single project[/bold]
    Write the active rules to .cursorrules and .clinerules in one
    directory and add missing entries to its .gitignore.

[bold]\\[4] Batch scan and inject[/bold]
    Inject into every directory holding a {MARKER_FILENAME} under the
    chosen scan scope.

[bold]\\[5] Audit dashboard[/bold]
    List every project and whether it carries rules. Enter a number to
    preview its rules, or fix to inject into every unprotected project.

[bold]\\[6] Settings[/bold]
    Switch between templates, load my-rules.md, or export the active
    rules to my-rules.md for editing.

Templates in templates/*.md replace the built-in set at startup.
Switching the rule source applies to every later injection."""


def render_templates(console: Console, state: RuleSourceState) -> None:
    """Print the template catalog with the active entry marked."""
    table = Table(title="Rule Templates")
    table.add_column("No.", style="cyan", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Origin", style="dim")

    for position, template in enumerate(state.templates, start=1):
        name = escape(template.display_name)
        if state.is_active(template):
            name += " [yellow]<- current[/yellow]"
        table.add_row(str(position), template.id, name, template.origin.value)

    console.print(table)


def render_audit(console: Console, session: AuditSession) -> None:
    """Print the protection report of an audit session."""
    table = Table(title=f"Audit: {escape(str(session.base_dir))}")
    table.add_column("No.", style="cyan", justify="right")
    table.add_column("Project")
    table.add_column("Script ID")
    table.add_column("Status")

    for project in session.projects:
        status = "[green]protected[/green]" if project.protected else "[red]unprotected[/red]"
        table.add_row(
            str(project.index),
            escape(project.name),
            escape(project.identifier),
            status,
        )

    console.print(table)


def render_remediation(console: Console, report: RemediationReport) -> None:
    """Print the outcome of a remediation batch."""
    for project in report.repaired:
        console.print(f"[green]✓[/green] \\[{escape(project.name)}] injected")
    render_failures(console, report.failed)


def render_failures(console: Console, failures: list[InjectionFailure]) -> None:
    """Print per-project injection failures."""
    for failure in failures:
        console.print(
            f"[red]✗[/red] \\[{escape(failure.path.name)}] {escape(failure.error)}",
        )


class GuardShell:
    """Menu-driven loop handling one request per iteration."""

    def __init__(
        self,
        settings: GuardSettings,
        state: RuleSourceState,
        console: Console,
        scaffolder: ProjectScaffolder | None = None,
    ) -> None:
        self.settings = settings
        self.state = state
        self.console = console
        self.scaffolder = scaffolder

    def ask(self, text: str) -> str:
        """Read one line of input."""
        return typer.prompt(text, default="", show_default=False).strip()

    def run(self) -> None:
        """Serve the main menu until the user quits."""
        actions = {
            "1": self.new_project,
            "2": self.clone_project,
            "3": self.inject_single,
            "4": self.batch_inject,
            "5": self.audit_dashboard,
            "6": self.settings_menu,
            "h": self.show_help,
        }

        while True:
            self._print_main_menu()
            choice = self.ask("Select").lower()

            if choice == "q":
                self.console.print("Bye!")
                return

            action = actions.get(choice)
            if action is None:
                self.console.print("[red]Invalid selection.[/red]")
                continue

            try:
                action()
            except (OSError, ValueError, GasGuardError) as e:
                self.console.print(f"[red]Error:[/red] {escape(str(e))}")

    def _print_main_menu(self) -> None:
        self.console.print(Rule("GasGuard"))
        self.console.print(
            f"Active rule source: [yellow]{escape(self.state.active.display_name)}[/yellow]",
        )
        self.console.print(
            "  \\[1] New project\n"
            "  \\[2] Clone project\n"
            "  \\[3] Inject single project\n"
            "  \\[4] Batch scan and inject\n"
            "  \\[5] Audit dashboard\n"
            "  \\[6] Settings\n"
            "  \\[h] Help\n"
            "  \\[q] Quit",
        )

    def show_help(self) -> None:
        self.console.print(HELP_TEXT)

    def _ask_scan_path(self) -> Path:
        scope = self.ask("Scan scope: [1] current directory (.)  [2] parent directory (..)")
        return self.settings.scan_path(".." if scope == "2" else ".")

    def settings_menu(self) -> None:
        """Select a template, load the custom rule file, or export to it."""
        render_templates(self.console, self.state)

        rules_file = self.settings.custom_rules_file
        load_choice = len(self.state.templates) + 1
        export_choice = len(self.state.templates) + 2
        self.console.print(f"  \\[{load_choice}] Load external file ({rules_file.name})")
        self.console.print(
            f"  \\[{export_choice}] Export active rules to {rules_file.name} for editing",
        )

        raw = self.ask("Choice")
        try:
            choice = int(raw)
        except ValueError:
            self.console.print("[red]Invalid selection.[/red]")
            return

        try:
            if choice == load_choice:
                self.state.load_from_file(rules_file)
            elif choice == export_choice:
                self.state.export_to_file(rules_file)
                self.console.print(
                    f"[green]✓[/green] Wrote {escape(self.state.active.display_name)} "
                    f"to {rules_file.name}. Edit it, then load it from this menu.",
                )
                return
            else:
                self.state.select_from_catalog(choice - 1)
        except RuleFileNotFoundError:
            self.console.print(
                f"[red]{rules_file.name} not found.[/red] "
                f"Export a template with \\[{export_choice}] or create it yourself.",
            )
            return
        except InvalidSelectionError:
            self.console.print("[red]Invalid selection.[/red]")
            return

        self.console.print(
            f"[green]✓[/green] Rule source: {escape(self.state.active.display_name)}",
        )

    def inject_single(self) -> None:
        target = Path(self.ask("Target directory (default .)") or ".")
        if not target.is_dir():
            self.console.print(f"[red]Directory not found:[/red] {escape(str(target))}")
            return

        result = inject_governance(target, self.state.active)
        ignores = ", ".join(result.added_patterns) if result.ignore_updated else "up to date"
        self.console.print(f"[green]✓[/green] Injected | .gitignore: {escape(ignores)}")

    def batch_inject(self) -> None:
        projects = find_projects(self._ask_scan_path(), exclude=self.settings.home)
        if not projects:
            self.console.print("[yellow]No projects found.[/yellow]")
            return

        self.console.print(f"Found {len(projects)} projects.")
        self.console.print(f"Rules to inject: {escape(self.state.active.display_name)}")
        if not typer.confirm("Proceed?", default=False):
            self.console.print("Cancelled.")
            return

        results, failures = inject_many(projects, self.state.active)
        for result in results:
            self.console.print(f"[green]✓[/green] \\[{escape(result.path.name)}] done")
        render_failures(self.console, failures)

    def audit_dashboard(self) -> None:
        """Scan once, then preview or remediate against that report."""
        session = AuditSession.scan(self._ask_scan_path(), exclude=self.settings.home)
        if not session.projects:
            self.console.print("[yellow]No projects found.[/yellow]")
            return

        while True:
            render_audit(self.console, session)
            command = self.ask("Number to preview, fix to protect all, q to leave").lower()

            if command == "q":
                return

            if command == "fix":
                self._fix_all(session)
                continue

            try:
                index = int(command)
                content = session.preview(index)
            except (ValueError, InvalidSelectionError):
                self.console.print("[red]Invalid command.[/red]")
                continue

            name = session.get(index).name
            self.console.print(Rule(f"{escape(name)}: {CLINE_RULES_FILENAME}"))
            if content is None:
                self.console.print("[red]This project has no rule file yet.[/red]")
            else:
                self.console.print(content, markup=False, highlight=False)
            self.console.print(Rule())

    def _fix_all(self, session: AuditSession) -> None:
        if not session.unprotected:
            self.console.print("Nothing to fix.")
            return

        self.console.print(f"Fixing {len(session.unprotected)} projects...")
        self.console.print(f"Rules: {escape(self.state.active.display_name)}")
        report = session.remediate_all(self.state.active)
        render_remediation(self.console, report)
        if report.succeeded:
            self.console.print("[green]All projects protected.[/green]")

    def new_project(self) -> None:
        self._scaffold(clone=False)

    def clone_project(self) -> None:
        self._scaffold(clone=True)

    def _scaffold(self, clone: bool) -> None:
        if self.scaffolder is None:
            self.console.print("[red]Project scaffolding is unavailable.[/red]")
            return

        name = self.ask("New project name")
        script_id = None
        if clone:
            script_id = self.ask("Script ID")
            if not script_id:
                self.console.print("[red]A Script ID is required to clone.[/red]")
                return

        project_dir = self.scaffolder.create(
            self.settings.home,
            name,
            self.state.active,
            script_id=script_id,
        )
        self.console.print(f"[green]✓[/green] Project ready at {escape(str(project_dir))}")
