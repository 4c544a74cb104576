"""Tests for the subprocess boundary and the git client."""

import os
import sys

import pytest

from drupal_updater.errors import ToolUnavailable
from drupal_updater.tools import CommandResult, CommandRunner, ToolPaths, locate_tool


class TestCommandResult:
    """Tests for CommandResult."""

    def test_display_quotes_arguments(self):
        result = CommandResult(["git", "commit", "-m", "Update Views"], 0)
        assert result.display == "git commit -m 'Update Views'"

    def test_output_combines_streams(self):
        result = CommandResult(["x"], 1, stdout="out", stderr="err")
        assert result.output == "out\nerr"
        assert not result.success

    def test_dry(self):
        result = CommandResult.dry(["drush", "updatedb", "-y"])
        assert result.success
        assert result.skipped


class TestCommandRunner:
    """Tests for CommandRunner against real processes."""

    def test_run_captures_output(self):
        result = CommandRunner().run([sys.executable, "-c", "print('hello')"])
        assert result.success
        assert result.stdout.strip() == "hello"

    def test_non_zero_exit_is_not_raised(self):
        result = CommandRunner().run([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert result.returncode == 3

    def test_input(self):
        result = CommandRunner().run(
            [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
            input="log body",
        )
        assert "LOG BODY" in result.stdout

    def test_timeout(self):
        result = CommandRunner(timeout=1).run([sys.executable, "-c", "import time; time.sleep(5)"])
        assert result.returncode == -1
        assert "timed out" in result.stderr

    def test_env(self):
        result = CommandRunner().run(
            [sys.executable, "-c", "import os; print(os.environ['COLUMNS'])"],
            env={**os.environ, "COLUMNS": "1000"},
        )
        assert result.stdout.strip() == "1000"

    def test_missing_binary(self):
        with pytest.raises(ToolUnavailable):
            CommandRunner().run(["definitely-not-a-real-tool-xyz"])

    def test_stream_merges_stderr(self):
        lines = []
        script = "import sys; print('one'); sys.stdout.flush(); print('two', file=sys.stderr)"
        result = CommandRunner().stream([sys.executable, "-c", script], lines.append)

        assert result.success
        assert sorted(lines) == ["one", "two"]
        assert "one" in result.stdout

    def test_cwd(self, tmp_path):
        result = CommandRunner(cwd=tmp_path).run([sys.executable, "-c", "import os; print(os.getcwd())"])
        assert result.stdout.strip() == str(tmp_path.resolve())


class TestToolPaths:
    """Tests for tool location."""

    def test_explicit_path(self):
        assert locate_tool("python", sys.executable) == sys.executable

    def test_missing(self, tmp_path):
        with pytest.raises(ToolUnavailable, match="Could not find drush"):
            ToolPaths.resolve(drush_bin=str(tmp_path / "drush"), git_bin=sys.executable)


class TestGitClient:
    """Tests for GitClient command building."""

    def test_commit_command_with_author(self, git):
        assert git.commit_command("msg", "Jane <jane@example.com>") == [
            "git", "commit", "--author", "Jane <jane@example.com>", "-m", "msg",
        ]

    def test_commit_command_without_author(self, git):
        assert git.commit_command("msg") == ["git", "commit", "-m", "msg"]

    def test_clean_tree(self, git, runner):
        runner.on("ls-files", returncode=1)
        assert git.working_tree_problems() == []

    def test_current_branch(self, git, runner):
        runner.on("rev-parse", "--abbrev-ref", "HEAD", stdout="7.x-prod\n")
        assert git.current_branch() == "7.x-prod"

    def test_config_value_missing(self, git, runner):
        runner.on("config", returncode=1)
        assert git.config_value("user.name") is None
