"""Subprocess boundary for drush and git.

Every external invocation goes through ``CommandRunner`` and comes back as a
``CommandResult``. A non-zero exit is data for the caller to inspect, not an
exception; only a binary that cannot be started raises ``ToolUnavailable``.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

from ..errors import ToolUnavailable

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    skipped: bool = False  # dry-run: the command was reported, not executed

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def display(self) -> str:
        """The command as an operator would type it."""
        return shlex.join(self.command)

    @property
    def output(self) -> str:
        """stdout and stderr combined, stdout first."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    @classmethod
    def dry(cls, command: list[str]) -> "CommandResult":
        """A command that was only reported, never run."""
        return cls(command=list(command), returncode=0, skipped=True)


class CommandRunner:
    """Runs external commands, one at a time."""

    def __init__(self, cwd: Optional[Path] = None, timeout: Optional[int] = None):
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout

    def run(
        self,
        cmd: list[str],
        cwd: Optional[Path] = None,
        input: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """Run a command to completion and capture its output.

        Args:
            cmd: Command and arguments as list
            cwd: Working directory (default: the runner's)
            input: Text fed to the command's stdin
            env: Complete environment for the command (default: inherited)

        Returns:
            CommandResult with return code and captured output
        """
        logger.debug("Running %s", shlex.join(cmd), extra={"command": cmd[0]})
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                input=input,
                timeout=self.timeout,
                cwd=cwd or self.cwd,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError as e:
            raise ToolUnavailable(cmd[0], str(e)) from e
        except subprocess.TimeoutExpired:
            logger.error("Command timed out: %s", shlex.join(cmd))
            return CommandResult(
                command=list(cmd),
                returncode=-1,
                stderr=f"Command timed out after {self.timeout} seconds",
            )

        if proc.returncode != 0:
            logger.debug(
                "%s exited with %d",
                shlex.join(cmd),
                proc.returncode,
                extra={"returncode": proc.returncode},
            )
        return CommandResult(
            command=list(cmd),
            returncode=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )

    def stream(
        self,
        cmd: list[str],
        on_line: Callable[[str], None],
        cwd: Optional[Path] = None,
    ) -> CommandResult:
        """Run a command, handing each output line to ``on_line`` as it arrives.

        stderr is merged into stdout. The full output is also kept in the
        returned result. No timeout applies.
        """
        logger.debug("Streaming %s", shlex.join(cmd), extra={"command": cmd[0]})
        lines: list[str] = []
        try:
            with subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                cwd=cwd or self.cwd,
            ) as proc:
                assert proc.stdout is not None
                for raw in proc.stdout:
                    line = raw.rstrip("\n")
                    lines.append(line)
                    on_line(line)
                returncode = proc.wait()
        except FileNotFoundError as e:
            raise ToolUnavailable(cmd[0], str(e)) from e

        return CommandResult(
            command=list(cmd), returncode=returncode, stdout="\n".join(lines)
        )


@dataclass(frozen=True)
class ToolPaths:
    """Resolved locations of the external tools, fixed for the whole run."""

    drush: str
    git: str

    @classmethod
    def resolve(
        cls, drush_bin: Optional[str] = None, git_bin: Optional[str] = None
    ) -> "ToolPaths":
        """Locate drush and git.

        Explicit paths win over ``PATH`` lookup.

        Raises:
            ToolUnavailable: if either tool cannot be found
        """
        drush = locate_tool("drush", drush_bin)
        git = locate_tool("git", git_bin)
        return cls(drush=drush, git=git)


def locate_tool(name: str, explicit: Optional[str]) -> str:
    candidate = explicit or name
    found = shutil.which(candidate)
    if not found:
        raise ToolUnavailable(name, f"{candidate} is not executable or not on PATH")
    return found
