"""drupal-updater CLI - Main entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from drupal_updater import __version__
from drupal_updater.config import configure_logging, get_settings
from drupal_updater.errors import InvalidAuthor, PreflightError, UpdaterError
from drupal_updater.models import RunConfiguration, UpdateStatus, validate_author
from drupal_updater.session import SessionController

app = typer.Typer(
    name="drupal-updater",
    help="Apply drush module updates one git commit at a time",
    add_completion=False,
)
console = Console()

INTERRUPTED_EXIT_CODE = 130

STATUS_STYLES = {
    UpdateStatus.NOT_SECURE: "bold red",
    UpdateStatus.REVOKED: "red",
    UpdateStatus.NOT_SUPPORTED: "yellow",
    UpdateStatus.NOT_CURRENT: "cyan",
}


def check_author(value: Optional[str]) -> Optional[str]:
    """Reject a malformed --author before any work starts."""
    if value is None:
        return None
    try:
        return validate_author(value)
    except InvalidAuthor as e:
        raise typer.BadParameter(str(e))


def get_controller(config: RunConfiguration, path: Optional[Path]) -> SessionController:
    """Build a session controller from the environment settings."""
    settings = get_settings()
    configure_logging(level=settings.log_level, format=settings.log_format)
    return SessionController(config, settings=settings, console=console, cwd=path)


def report_error(error: UpdaterError) -> None:
    if isinstance(error, PreflightError):
        for problem in error.problems:
            console.print(f"[red]✗[/red] {problem}", highlight=False)
        if error.hint:
            console.print(error.hint, highlight=False)
    else:
        console.print(f"[red]Error:[/red] {error}", highlight=False)


def path_option():
    return typer.Option(
        None,
        "--path", "-p",
        help="Drupal root to operate on (default: current directory)",
        exists=True,
        file_okay=False,
        resolve_path=True,
    )


@app.command()
def run(
    blind: bool = typer.Option(
        False,
        "--blind",
        help="Apply every update without pausing; verify once at the end",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be done without changing anything",
    ),
    no_db: bool = typer.Option(
        False,
        "--no-db",
        help="Skip 'drush updatedb' after updates",
    ),
    core_only: bool = typer.Option(
        False,
        "--core-only",
        help="Only update Drupal core",
    ),
    security_only: bool = typer.Option(
        False,
        "--security-only",
        help="Only apply security updates",
    ),
    enabled_only: bool = typer.Option(
        False,
        "--enabled-only",
        help="Only update enabled modules",
    ),
    notify_email: Optional[str] = typer.Option(
        None,
        "--notify-email", "-e",
        help="Comma-separated addresses to mail the run log to",
    ),
    keep_log: bool = typer.Option(
        False,
        "--keep-log",
        help="Keep the run log after the run",
    ),
    author: Optional[str] = typer.Option(
        None,
        "--author",
        help="Commit author, as 'Name <user@domain>'",
        callback=check_author,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show drush output while updating",
    ),
    path: Optional[Path] = path_option(),
):
    """Update modules, committing each update separately."""
    config = RunConfiguration(
        blind=blind,
        dry_run=dry_run,
        skip_database=no_db,
        core_only=core_only,
        security_only=security_only,
        enabled_only=enabled_only,
        notify_emails=notify_email or (),
        keep_log=keep_log,
        commit_author=author,
        verbose=verbose,
    )
    controller = get_controller(config, path)

    try:
        controller.run()
    except KeyboardInterrupt:
        raise typer.Exit(INTERRUPTED_EXIT_CODE)
    except UpdaterError as e:
        report_error(e)
        raise typer.Exit(1)


@app.command()
def plan(
    core_only: bool = typer.Option(False, "--core-only", help="Only Drupal core"),
    security_only: bool = typer.Option(False, "--security-only", help="Only security updates"),
    enabled_only: bool = typer.Option(False, "--enabled-only", help="Only enabled modules"),
    path: Optional[Path] = path_option(),
):
    """Show the updates a run would apply, in order. Changes nothing."""
    config = RunConfiguration(
        core_only=core_only,
        security_only=security_only,
        enabled_only=enabled_only,
        dry_run=True,
    )
    controller = get_controller(config, path)

    try:
        controller.preflight(require_clean=False)
        with console.status("Getting drush update status..."):
            update_plan = controller.build_plan()
    except KeyboardInterrupt:
        raise typer.Exit(INTERRUPTED_EXIT_CODE)
    except UpdaterError as e:
        report_error(e)
        raise typer.Exit(1)

    if update_plan.is_empty:
        console.print("[green]Everything is up to date.[/green]")
        return

    table = Table(title=f"{len(update_plan)} pending update(s)")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Module", style="cyan")
    table.add_column("Installed")
    table.add_column("Available")
    table.add_column("Status")

    for entry in update_plan:
        candidate = entry.candidate
        style = STATUS_STYLES.get(candidate.status_code, "")
        table.add_row(
            str(entry.priority + 1),
            candidate.human_name,
            candidate.current_version,
            candidate.new_version,
            Text(candidate.status_message, style=style),
        )

    console.print(table)


@app.command()
def version():
    """Show drupal-updater version."""
    console.print(f"[bold]drupal-updater[/bold] v{__version__}")
    console.print("[dim]drush module updates, one commit at a time[/dim]")


@app.callback()
def main():
    """
    drupal-updater - apply drush module updates one git commit at a time.

    Run 'drupal-updater --help' for available commands.
    """
    pass


if __name__ == "__main__":
    app()
