"""Commit recorder: one git commit per applied update."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from rich.console import Console

from .errors import MissingCommitMessage
from .models import RunConfiguration
from .tools.git import GitClient
from .tools.runner import CommandResult

logger = logging.getLogger(__name__)

ROOT_GITCONFIG = Path("/root/.gitconfig")


def invoking_user_home(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Home directory of the person running the updater, even under sudo."""
    environ = os.environ if environ is None else environ
    sudo_user = environ.get("SUDO_USER")
    if sudo_user:
        home = os.path.expanduser(f"~{sudo_user}")
        if not home.startswith("~"):
            return Path(home)
    return Path.home()


def resolve_author(
    git: GitClient,
    override: Optional[str] = None,
    user_config: Optional[Path] = None,
    root_config: Path = ROOT_GITCONFIG,
) -> Optional[str]:
    """Work out the ``Name <email>`` to commit as.

    Order: explicit override, the invoking user's ``~/.gitconfig``, root's
    ``.gitconfig``, then whatever git resolves on its own. Returns None when
    no source has both a name and an email.
    """
    if override:
        return override

    if user_config is None:
        user_config = invoking_user_home() / ".gitconfig"

    for config_file in (user_config, root_config):
        if not config_file.is_file():
            continue
        author = _author_from(git, config_file)
        if author:
            logger.debug("Commit author %s from %s", author, config_file)
            return author

    return _author_from(git, None)


def _author_from(git: GitClient, config_file: Optional[Path]) -> Optional[str]:
    name = git.config_value("user.name", config_file)
    email = git.config_value("user.email", config_file)
    if name and email:
        return f"{name} <{email}>"
    return None


@dataclass
class CommitOutcome:
    """Result of recording one commit."""

    message: str
    author: Optional[str]
    results: list[CommandResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.results) and all(r.success for r in self.results)


class CommitRecorder:
    """Stages the whole repository and commits it with the update message."""

    def __init__(
        self,
        git: GitClient,
        config: RunConfiguration,
        console: Console,
        author: Optional[str] = None,
    ):
        self.git = git
        self.config = config
        self.console = console
        self._author = author
        self._author_resolved = author is not None
        self._root: Optional[Path] = None

    @property
    def author(self) -> Optional[str]:
        if not self._author_resolved:
            self._author = resolve_author(self.git, self.config.commit_author)
            self._author_resolved = True
        return self._author

    def repository_root(self) -> Path:
        if self._root is None:
            self._root = self.git.toplevel() or Path.cwd()
        return self._root

    def record(self, message: str) -> CommitOutcome:
        """Commit every change in the working tree.

        Raises:
            MissingCommitMessage: if ``message`` is empty
        """
        if not message:
            raise MissingCommitMessage("No message passed to git commit")

        root = self.repository_root()
        author = self.author
        outcome = CommitOutcome(message=message, author=author)

        if self.config.dry_run:
            for command in (
                self.git.add_all_command(root),
                self.git.commit_command(message, author),
            ):
                result = CommandResult.dry(command)
                self.console.print(f"[dim]Would run:[/dim] {result.display}", highlight=False)
                outcome.results.append(result)
            return outcome

        add = self.git.add_all(root)
        outcome.results.append(add)
        if not add.success:
            self._report_failure("git add", add)
            return outcome

        commit = self.git.commit(message, author)
        outcome.results.append(commit)
        if not commit.success:
            self._report_failure("git commit", commit)
        return outcome

    def _report_failure(self, step: str, result: CommandResult) -> None:
        logger.error(
            "%s failed (exit %d): %s",
            step,
            result.returncode,
            result.output.strip(),
            extra={"returncode": result.returncode},
        )
        self.console.print(f"[red]{step} failed:[/red] {result.output.strip()}", highlight=False)
