"""Session controller: one complete update run from preflight to cleanup."""

from __future__ import annotations

import getpass
import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console

from .collector import StatusCollector
from .config.settings import Settings, get_settings
from .errors import MalformedResponse, PreflightError, ToolUnavailable, UpdaterError
from .executor import UpdateExecutor
from .gate import VerificationGate, effective_blind
from .locks import LockFilter
from .models import OrderedUpdatePlan, PlannedUpdate, RunConfiguration, SessionState
from .notifications import EventType, NotificationEvent, Notifier, build_notifier
from .prioritizer import UpdatePrioritizer
from .recorder import CommitRecorder
from .runlog import RunLog
from .tools import CommandResult, CommandRunner, DrushClient, GitClient, ToolPaths

logger = logging.getLogger(__name__)

CLEAN_TREE_HINT = "Please commit, remove, or stash them."
PAUSE_PROMPT = "press any key to continue, or CTRL-C to quit."


def join_modules(names: list[str]) -> str:
    """``a``, ``a or b``, ``a, b, or c``."""
    if len(names) <= 1:
        return "".join(names)
    if len(names) == 2:
        return f"{names[0]} or {names[1]}"
    return f"{', '.join(names[:-1])}, or {names[-1]}"


def default_wait_for_key() -> None:
    """Block until the operator presses a key.

    CTRL-C arrives from ``getchar`` as ``KeyboardInterrupt``; CTRL-D is
    treated the same way.
    """
    typer.echo(PAUSE_PROMPT, nl=False)
    try:
        typer.getchar()
    except EOFError:
        raise KeyboardInterrupt from None
    finally:
        typer.echo()


def current_operator() -> str:
    """Login of the person running the updater, seen through sudo."""
    return os.environ.get("SUDO_USER") or getpass.getuser()


class SessionController:
    """Runs preflight checks, then plans, applies and commits every update.

    Collaborators are created from ``settings`` unless injected, which is
    how tests substitute scripted drush and git clients.

    Usage:
        controller = SessionController(RunConfiguration(blind=True))
        state = controller.run()
    """

    def __init__(
        self,
        config: RunConfiguration,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        runner: Optional[CommandRunner] = None,
        drush: Optional[DrushClient] = None,
        git: Optional[GitClient] = None,
        wait_for_key: Optional[Callable[[], None]] = None,
        notifier: Optional[Notifier] = None,
        operator: Optional[str] = None,
        cwd: Optional[Path] = None,
    ):
        self.config = config
        self.settings = settings or get_settings()
        self.console = console or Console()
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self.runner = runner or CommandRunner(
            cwd=self.cwd, timeout=self.settings.command_timeout_seconds
        )
        self.drush = drush
        self.git = git
        self.wait_for_key = wait_for_key or default_wait_for_key
        self._notifier = notifier
        self.operator = operator or current_operator()

        self.state = SessionState()
        self.run_log = RunLog(self.settings.log_dir)
        self.lock_filter: Optional[LockFilter] = None
        self.executor: Optional[UpdateExecutor] = None
        self.recorder: Optional[CommitRecorder] = None

    # ------------------------------------------------------------------
    # Preflight
    # ------------------------------------------------------------------

    def ensure_tools(self) -> None:
        """Create the drush and git clients if they were not injected.

        Raises:
            PreflightError: if drush or git cannot be found
        """
        if self.drush is not None and self.git is not None:
            return
        try:
            paths = ToolPaths.resolve(self.settings.drush_bin, self.settings.git_bin)
        except ToolUnavailable as e:
            raise PreflightError(
                [str(e)],
                hint="Install it or point DRUPAL_UPDATER_DRUSH_BIN / DRUPAL_UPDATER_GIT_BIN at it.",
            ) from e
        if self.drush is None:
            self.drush = DrushClient(paths.drush, self.runner, self.settings.cache_clear_args)
        if self.git is None:
            self.git = GitClient(paths.git, self.runner)

    def preflight(self, require_clean: bool = True) -> None:
        """Check that it is safe to start updating.

        Raises:
            PreflightError: on the first failed check
        """
        self.ensure_tools()
        self._ok("Drush is installed")
        self._ok("Git is installed")

        try:
            version = self.drush.drush_major_version()
        except MalformedResponse as e:
            raise PreflightError([f"Could not determine the drush version: {e}"]) from e
        minimum = self.settings.min_drush_version
        if version is None or version < minimum:
            found = "unknown" if version is None else str(version)
            raise PreflightError(
                [f"drush {minimum} or later is required, found {found}."],
                hint="Upgrade drush, or set DRUPAL_UPDATER_STATUS_FORMAT=pipe for older releases.",
            )
        self._ok(f"Drush version {version}")

        if not self.drush.is_drupal():
            raise PreflightError(
                ["This is not a Drupal site."],
                hint="Run drupal-updater from inside a Drupal installation, or pass --path.",
            )
        self._ok("This is a Drupal site")

        if not self.git.is_work_tree():
            raise PreflightError(["This site is not controlled by git."])
        self._ok("This site is controlled by git")
        self.console.print(f"The current branch is: [cyan]{self.git.current_branch()}[/cyan]")

        if require_clean:
            problems = self.git.working_tree_problems()
            if problems:
                raise PreflightError(problems, hint=CLEAN_TREE_HINT)
            self._ok("The working tree is clean")

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def build_plan(self) -> OrderedUpdatePlan:
        """Collect update status and turn it into an ordered plan.

        Raises:
            ToolUnavailable: if drush cannot be executed
            MalformedResponse: if drush output cannot be used
        """
        self.ensure_tools()
        self.lock_filter = LockFilter(
            self.drush,
            lock_file_name=self.settings.lock_file_name,
            fail_closed=self.settings.lock_fail_closed,
        )
        candidates = StatusCollector(self.drush, self.settings.status_format).collect()
        return UpdatePrioritizer(self.config, self.lock_filter.is_locked).plan(candidates)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> SessionState:
        """Run every planned update.

        Raises:
            PreflightError: if a preflight check fails (nothing is logged)
            ToolUnavailable, MalformedResponse: if update status cannot be
                collected; no update is attempted
            KeyboardInterrupt: re-raised after cleanup, with the log kept
        """
        self.preflight()

        self.state = SessionState()
        self.run_log.open()
        self.run_log.write_header(
            dry_run=self.config.dry_run,
            operator=self.operator,
            site=self.drush.site_name(),
            cwd=self.cwd,
        )
        if self.config.dry_run:
            self.console.print("[yellow]Dry run: no changes will be made.[/yellow]")

        event_type = EventType.RUN_FAILED
        try:
            self._run_updates()
            event_type = EventType.RUN_COMPLETED
        except KeyboardInterrupt:
            self.state.interrupted = True
            event_type = EventType.RUN_INTERRUPTED
            self.console.print()
            self._say("Interrupted. There may be more updates remaining.", style="yellow")
            raise
        except UpdaterError as e:
            self.run_log.write(f"Aborted: {e}")
            raise
        finally:
            self._cleanup(event_type)
        return self.state

    def _run_updates(self) -> None:
        self.console.print("Getting drush update status...", end=" ")
        started = time.monotonic()
        plan = self.build_plan()
        took = round(time.monotonic() - started)
        self.console.print(f"took {took} seconds.")
        self.run_log.write(f"Getting drush update status... took {took} seconds.")

        self.state.total = len(plan)
        if len(plan) == 1:
            self._say("There is 1 update.")
        else:
            self._say(f"There are {len(plan)} updates.")

        if self.config.blind:
            self._say("Updating all modules blindly.")
        elif effective_blind(plan, self.config.blind):
            logger.info("Single update, running without verification pauses")
            self.config = self.config.with_blind()

        self.executor = UpdateExecutor(
            self.drush,
            self.config,
            self.console,
            locate=self.lock_filter.module_directory,
            banner_blank_lines=self.settings.banner_blank_lines,
        )
        self.recorder = CommitRecorder(self.git, self.config, self.console)

        VerificationGate(
            plan,
            blind=self.config.blind,
            apply=self._apply,
            commit=self._commit,
            post_verify=self._post_verify,
        ).run()

        self._summary()

    def _apply(self, entry: PlannedUpdate) -> None:
        self.console.print()
        self._say(entry.message, style="bold")
        outcome = self.executor.apply(entry.candidate)
        if not outcome.success:
            detail = f"drush exited with status {outcome.result.returncode}"
            self.state.record_failure(entry.machine_name, "update", detail)
            self.run_log.write(f"FAILED to update {entry.machine_name}: {detail}")

    def _commit(self, entry: PlannedUpdate) -> None:
        outcome = self.recorder.record(entry.message)
        if outcome.success:
            self.state.record_applied(entry.machine_name)
            return
        failed = outcome.results[-1] if outcome.results else None
        detail = failed.output.strip() if failed else "nothing was run"
        self.state.record_failure(entry.machine_name, "commit", detail)
        self.run_log.write(f"FAILED to commit {entry.machine_name}: {detail}")

    def _post_verify(self, modules: list[str], pause: bool) -> None:
        if self.config.dry_run:
            if not self.config.skip_database:
                self._would_run(self.drush.updatedb_command())
            self._would_run(self.drush.cache_clear_command())
        else:
            if not self.config.skip_database:
                self._say("Updating database...")
                self._check(self.drush.updatedb(), "drush updatedb")
            self._say("Clearing cache...")
            self._check(self.drush.cache_clear(), "drush cache-clear")

        self._say(
            "Please verify that nothing broke, especially anything related to: "
            f"{join_modules(modules)}",
            style="bold yellow",
        )
        if pause:
            self.wait_for_key()

    def _summary(self) -> None:
        self.console.print()
        self._say("All done!", style="bold green")
        self._say(f"Overall, {round(self.state.elapsed)} seconds")

        if self.state.failures:
            self._say(f"{len(self.state.failures)} step(s) failed:", style="red")
            for failure in self.state.failures:
                self._say(f"  {failure.machine_name}: {failure.stage} - {failure.detail}", style="red")

        if not self.config.dry_run and self.state.applied > 0:
            result = self.git.log(self.state.applied)
            if result.success:
                self.console.print(result.stdout.rstrip(), markup=False, highlight=False)
                self.run_log.write(result.stdout.rstrip())

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def _cleanup(self, event_type: EventType) -> None:
        body = self.run_log.read_text()
        self.run_log.close()

        if self.config.notify_emails:
            notifier = self._notifier or build_notifier(
                self.settings, self.config.notify_emails, self.runner
            )
            results = notifier.notify(
                NotificationEvent(
                    event_type=event_type,
                    site_name=self._site_name(),
                    message=self._outcome_message(event_type),
                    body=body,
                    dry_run=self.config.dry_run,
                    details={"applied": self.state.applied, "failures": len(self.state.failures)},
                )
            )
            if results and not any(results.values()):
                self.console.print("[yellow]Could not mail the run log.[/yellow]")

        kept = self.run_log.finish(keep=self.config.keep_log or self.state.interrupted)
        if kept is not None:
            self.console.print(f"[dim]Run log kept at {kept}[/dim]")

    def _outcome_message(self, event_type: EventType) -> str:
        if event_type == EventType.RUN_INTERRUPTED:
            return f"interrupted after {self.state.applied} of {self.state.total} updates"
        if event_type == EventType.RUN_FAILED:
            return "run aborted"
        message = f"{self.state.applied} of {self.state.total} updates applied"
        if self.state.failures:
            message += f", {len(self.state.failures)} failed step(s)"
        return message

    def _site_name(self) -> str:
        try:
            return self.drush.site_name()
        except UpdaterError:
            return "unknown"

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def _say(self, text: str, style: Optional[str] = None) -> None:
        """Print a line for the operator and record it in the run log."""
        self.console.print(text, style=style, markup=False, highlight=False)
        self.run_log.write(text)

    def _ok(self, text: str) -> None:
        self.console.print(f"[green]✓[/green] {text}")

    def _would_run(self, command: list[str]) -> None:
        self.console.print(
            f"[dim]Would run:[/dim] {CommandResult.dry(command).display}", highlight=False
        )

    def _check(self, result: CommandResult, step: str) -> None:
        if result.success:
            return
        logger.error("%s failed (exit %d): %s", step, result.returncode, result.output.strip())
        self._say(f"{step} failed with status {result.returncode}", style="red")
