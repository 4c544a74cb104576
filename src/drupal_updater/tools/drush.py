"""drush invocations used by the updater."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Callable, Optional

from ..errors import MalformedResponse
from .runner import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class DrushClient:
    """Thin wrapper over the drush commands the updater needs.

    Query methods raise ``MalformedResponse`` when drush fails or answers
    with something unparseable. Mutating methods return the raw
    ``CommandResult``.
    """

    def __init__(self, binary: str, runner: CommandRunner, cache_clear_args: Optional[list[str]] = None):
        self.binary = binary
        self.runner = runner
        self.cache_clear_args = cache_clear_args or ["cache-clear", "all"]
        self._status: Optional[dict[str, Any]] = None

    def command(self, *args: str) -> list[str]:
        return [self.binary, *args]

    # ------------------------------------------------------------------
    # Site status
    # ------------------------------------------------------------------

    def status(self, refresh: bool = False) -> dict[str, Any]:
        """``drush status`` as a dict, with keys normalized to snake_case."""
        if self._status is None or refresh:
            result = self.runner.run(self.command("status", "--format=json"))
            data = self._load_json(result, "drush status")
            if isinstance(data, list):
                data = {} if not data else data[0]
            if not isinstance(data, dict):
                raise MalformedResponse("drush status", "expected a JSON object")
            self._status = {
                key.lower().replace("-", "_").replace(" ", "_"): value
                for key, value in data.items()
            }
        return self._status

    def is_drupal(self) -> bool:
        """Whether the working directory belongs to a bootstrappable Drupal site."""
        try:
            return bool(self.status().get("drupal_version"))
        except MalformedResponse:
            return False

    def drush_major_version(self) -> Optional[int]:
        version = str(self.status().get("drush_version", ""))
        match = re.match(r"\s*(\d+)", version)
        return int(match.group(1)) if match else None

    def drupal_root(self) -> Optional[str]:
        root = self.status().get("root") or self.status().get("drupal_root")
        return str(root) if root else None

    def site_name(self) -> str:
        status = self.status()
        for key in ("site_name", "uri", "site"):
            if status.get(key):
                return str(status[key])
        return "unknown"

    # ------------------------------------------------------------------
    # Raw update data (parsed by drupal_updater.collector.parsers)
    # ------------------------------------------------------------------

    def update_status_json(self) -> str:
        result = self.runner.run(self.command("pm-updatestatus", "--format=json"))
        if not result.success:
            raise MalformedResponse("drush pm-updatestatus", result.output or "no output")
        return result.stdout

    def update_status_pipe(self) -> str:
        result = self.runner.run(self.command("pm-update", "--cache", "--pipe", "-n"))
        if not result.success and not result.stdout.strip():
            raise MalformedResponse("drush pm-update --pipe", result.output or "no output")
        return result.stdout

    def module_list_json(self) -> str:
        result = self.runner.run(self.command("pm-list", "--format=json"))
        if not result.success:
            raise MalformedResponse("drush pm-list", result.output or "no output")
        return result.stdout

    def module_list_table(self) -> str:
        # A wide terminal keeps drush from wrapping the table columns
        result = self.runner.run(self.command("pm-list"), env={**os.environ, "COLUMNS": "1000"})
        if not result.success:
            raise MalformedResponse("drush pm-list", result.output or "no output")
        return result.stdout

    def module_path(self, machine_name: str) -> Optional[str]:
        """Installation path of a module relative to the Drupal root."""
        result = self.runner.run(self.command("pm-info", machine_name, "--format=json"))
        if not result.success:
            logger.debug("pm-info failed for %s", machine_name, extra={"project": machine_name})
            return None
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.warning("Unparseable pm-info output for %s", machine_name)
            return None
        if isinstance(data, dict) and machine_name in data and isinstance(data[machine_name], dict):
            data = data[machine_name]
        if not isinstance(data, dict):
            return None
        path = data.get("path")
        return str(path) if path else None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_command(self, machine_name: str) -> list[str]:
        return self.command("pm-updatecode", "-y", "--cache", machine_name)

    def update(self, machine_name: str, on_line: Callable[[str], None]) -> CommandResult:
        return self.runner.stream(self.update_command(machine_name), on_line)

    def updatedb_command(self) -> list[str]:
        return self.command("updatedb", "-y")

    def updatedb(self) -> CommandResult:
        return self.runner.run(self.updatedb_command())

    def cache_clear_command(self) -> list[str]:
        return self.command(*self.cache_clear_args)

    def cache_clear(self) -> CommandResult:
        return self.runner.run(self.cache_clear_command())

    @staticmethod
    def _load_json(result: CommandResult, source: str) -> Any:
        if not result.success:
            raise MalformedResponse(source, result.output or f"exit status {result.returncode}")
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise MalformedResponse(source, f"invalid JSON ({e})") from e
