"""Update executor: applies one module update through drush."""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Union

from rich.console import Console

from .models import RunConfiguration, UpdateCandidate
from .tools.drush import DrushClient
from .tools.runner import CommandResult

logger = logging.getLogger(__name__)

ARCHIVE_PATTERNS = ("{name}-*.tar.gz", "{name}-*.tgz", "{name}-*.zip")

DirectoryLocator = Callable[[str, Optional[str]], Optional[Path]]


# ----------------------------------------------------------------------
# Banner suppression
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class CountingBlanks:
    """Still inside the banner; ``seen`` consecutive blank lines so far."""

    seen: int = 0


@dataclass(frozen=True)
class Streaming:
    """Past the banner; every line is shown."""


ScannerState = Union[CountingBlanks, Streaming]


class BannerScanner:
    """Hides drush's banner from a stream of output lines.

    The banner ends at the ``threshold``-th consecutive blank line. That
    line and everything after it are shown; a non-blank line before the
    threshold restarts the count.
    """

    def __init__(self, threshold: int = 3):
        self.threshold = threshold
        self.state: ScannerState = CountingBlanks()

    def feed(self, line: str) -> bool:
        """Advance over one line; return True if it should be shown."""
        if isinstance(self.state, Streaming):
            return True
        if line.strip():
            self.state = CountingBlanks()
            return False
        seen = self.state.seen + 1
        if seen >= self.threshold:
            self.state = Streaming()
            return True
        self.state = CountingBlanks(seen)
        return False


# ----------------------------------------------------------------------
# Executor
# ----------------------------------------------------------------------


@dataclass
class UpdateOutcome:
    """Result of applying one update."""

    machine_name: str
    result: CommandResult
    removed_archives: list[Path] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.result.success


class UpdateExecutor:
    """Runs ``drush pm-updatecode`` for a single module.

    A failing drush run is reported in the outcome and never raised: the
    verification step after the commit is what catches a broken update.
    """

    def __init__(
        self,
        drush: DrushClient,
        config: RunConfiguration,
        console: Console,
        locate: Optional[DirectoryLocator] = None,
        banner_blank_lines: int = 3,
    ):
        self.drush = drush
        self.config = config
        self.console = console
        self.locate = locate
        self.banner_blank_lines = banner_blank_lines

    def apply(self, candidate: UpdateCandidate) -> UpdateOutcome:
        name = candidate.machine_name
        command = self.drush.update_command(name)

        if self.config.dry_run:
            self.console.print(f"[dim]Would run:[/dim] {shlex.join(command)}", highlight=False)
            for pattern in self._archive_globs(candidate):
                self.console.print(f"[dim]Would remove:[/dim] {pattern}", highlight=False)
            return UpdateOutcome(name, CommandResult.dry(command))

        scanner = BannerScanner(self.banner_blank_lines)

        def on_line(line: str) -> None:
            logger.debug("drush: %s", line, extra={"project": name})
            if self.config.verbose and scanner.feed(line):
                self.console.print(line, markup=False, highlight=False)

        result = self.drush.update(name, on_line)
        if not result.success:
            logger.error(
                "drush failed to update %s (exit %d)",
                name,
                result.returncode,
                extra={"project": name, "returncode": result.returncode},
            )
            self.console.print(f"[red]drush exited with status {result.returncode} while updating {name}[/red]")

        return UpdateOutcome(name, result, self.remove_archives(candidate))

    def remove_archives(self, candidate: UpdateCandidate) -> list[Path]:
        """Delete downloaded archives drush left next to the module. Best effort."""
        removed = []
        for pattern in self._archive_globs(candidate):
            for archive in sorted(pattern.parent.glob(pattern.name)):
                try:
                    archive.unlink()
                except OSError as e:
                    logger.warning("Could not remove %s: %s", archive, e)
                    continue
                logger.info("Removed leftover archive %s", archive)
                removed.append(archive)
        return removed

    def _archive_globs(self, candidate: UpdateCandidate) -> list[Path]:
        if self.locate is None:
            return []
        directory = self.locate(candidate.machine_name, candidate.path)
        if directory is None:
            logger.debug("No install path for %s, skipping archive cleanup", candidate.machine_name)
            return []
        globs = []
        for base in (directory, directory.parent):
            for pattern in ARCHIVE_PATTERNS:
                globs.append(base / pattern.format(name=candidate.machine_name))
        return globs
