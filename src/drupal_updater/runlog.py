"""Per-run log file.

The run log records what a run did (header, one line per update, failures
and the summary) so it can be kept or mailed after the run. It is written
through a dedicated, non-propagating logger so its content never mixes
with diagnostic logging.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAME = "drupal_updater.runlog"


def run_log_path(log_dir: Path, started: datetime, prefix: str = "drupal-updater") -> Path:
    """Timestamped log file name; ``:`` is replaced so the name is portable."""
    stamp = started.isoformat(timespec="seconds").replace(":", "-")
    return Path(log_dir) / f"{prefix}-{stamp}.log"


class RunLog:
    """A run log file that is deleted at the end of the run unless kept."""

    def __init__(self, log_dir: Path, started: Optional[datetime] = None):
        self.started = started or datetime.now()
        self.path = run_log_path(log_dir, self.started)
        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        self._handler: Optional[logging.FileHandler] = None

    @property
    def is_open(self) -> bool:
        return self._handler is not None

    def open(self) -> "RunLog":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = logging.FileHandler(self.path, mode="w", encoding="utf-8")
        self._handler.setFormatter(logging.Formatter("%(message)s"))
        self._logger.addHandler(self._handler)
        return self

    def write_header(self, dry_run: bool, operator: str, site: str, cwd: Path) -> None:
        if dry_run:
            self.write("*** DRY RUN: no changes were made ***")
        self.write(f"drupal-updater run started {self.started.isoformat(timespec='seconds')}")
        self.write(f"Operator: {operator}")
        self.write(f"Site: {site}")
        self.write(f"Working directory: {cwd}")
        self.write("")

    def write(self, line: str) -> None:
        if self._handler is None:
            return
        self._logger.info(line)

    def read_text(self) -> str:
        if self._handler is not None:
            self._handler.flush()
        try:
            return self.path.read_text(encoding="utf-8")
        except OSError:
            return ""

    def close(self) -> None:
        if self._handler is None:
            return
        self._logger.removeHandler(self._handler)
        self._handler.close()
        self._handler = None

    def finish(self, keep: bool) -> Optional[Path]:
        """Close the log; delete it unless ``keep``. Returns the kept path."""
        self.close()
        if keep:
            return self.path
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        return None
