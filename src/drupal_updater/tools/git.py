"""git invocations used by the updater."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class GitClient:
    """Thin wrapper over the git commands the updater needs."""

    def __init__(self, binary: str, runner: CommandRunner):
        self.binary = binary
        self.runner = runner

    def command(self, *args: str) -> list[str]:
        return [self.binary, *args]

    def _run(self, *args: str) -> CommandResult:
        return self.runner.run(self.command(*args))

    def is_work_tree(self) -> bool:
        result = self._run("rev-parse", "--is-inside-work-tree")
        return result.success and result.stdout.strip() == "true"

    def current_branch(self) -> str:
        result = self._run("rev-parse", "--abbrev-ref", "HEAD")
        return result.stdout.strip() if result.success else ""

    def toplevel(self) -> Optional[Path]:
        result = self._run("rev-parse", "--show-toplevel")
        if not result.success or not result.stdout.strip():
            return None
        return Path(result.stdout.strip())

    def working_tree_problems(self) -> list[str]:
        """Reasons the working tree is not clean, empty when it is.

        Mirrors git's own ``require_clean_work_tree`` and additionally
        rejects untracked files, since every update is committed with
        ``git add -A``.
        """
        if not self._run("rev-parse", "--verify", "HEAD").success:
            return ["The repository has no commits yet."]
        self._run("update-index", "-q", "--ignore-submodules", "--refresh")

        problems = []
        if not self._run("diff-files", "--quiet", "--ignore-submodules").success:
            problems.append("You have unstaged changes.")
        if not self._run(
            "diff-index", "--cached", "--quiet", "--ignore-submodules", "HEAD", "--"
        ).success:
            problems.append("Your index contains uncommitted changes.")
        # --error-unmatch exits 0 only when at least one untracked file exists
        if self._run(
            "ls-files", "--exclude-standard", "--others", "--error-unmatch", "."
        ).success:
            problems.append("You have untracked files.")
        return problems

    def config_value(self, key: str, config_file: Optional[Path] = None) -> Optional[str]:
        """Read one config key, from a specific file or git's usual lookup."""
        if config_file is not None:
            result = self._run("config", "--file", str(config_file), "--get", key)
        else:
            result = self._run("config", "--get", key)
        value = result.stdout.strip()
        return value if result.success and value else None

    def add_all_command(self, root: Path) -> list[str]:
        return self.command("-C", str(root), "add", "-A", ".")

    def add_all(self, root: Path) -> CommandResult:
        return self.runner.run(self.add_all_command(root))

    def commit_command(self, message: str, author: Optional[str] = None) -> list[str]:
        args = ["commit", "-m", message]
        if author:
            args[1:1] = ["--author", author]
        return self.command(*args)

    def commit(self, message: str, author: Optional[str] = None) -> CommandResult:
        return self.runner.run(self.commit_command(message, author))

    def log(self, count: int) -> CommandResult:
        return self._run("log", f"-n{count}")
