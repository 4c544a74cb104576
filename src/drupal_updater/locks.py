"""Lock filter: modules frozen with drush's lock marker file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .models import CORE_MACHINE_NAME
from .tools.drush import DrushClient

logger = logging.getLogger(__name__)

DEFAULT_LOCK_FILE = ".drush-lock-update"


class LockFilter:
    """Decides whether a module's updates are administratively locked.

    A module is locked when ``<drupal root>/<module path>/.drush-lock-update``
    exists. Core is never lockable. When the root or the module path cannot
    be determined the module is treated as unlocked, unless ``fail_closed``
    is set.
    """

    def __init__(
        self,
        drush: DrushClient,
        lock_file_name: str = DEFAULT_LOCK_FILE,
        fail_closed: bool = False,
    ):
        self.drush = drush
        self.lock_file_name = lock_file_name
        self.fail_closed = fail_closed
        self._root: Optional[Path] = None
        self._root_resolved = False

    def drupal_root(self) -> Optional[Path]:
        """Installation root reported by drush, looked up once."""
        if not self._root_resolved:
            root = self.drush.drupal_root()
            self._root = Path(root) if root else None
            self._root_resolved = True
        return self._root

    def module_directory(self, machine_name: str, known_path: Optional[str] = None) -> Optional[Path]:
        """Absolute installation directory of a module, if drush knows it."""
        root = self.drupal_root()
        if root is None:
            return None
        path = known_path or self.drush.module_path(machine_name)
        if not path:
            return None
        return root / path

    def is_locked(self, machine_name: str, known_path: Optional[str] = None) -> bool:
        if machine_name == CORE_MACHINE_NAME:
            return False

        directory = self.module_directory(machine_name, known_path)
        if directory is None:
            logger.warning(
                "Cannot locate %s to check for %s; treating it as %s",
                machine_name,
                self.lock_file_name,
                "locked" if self.fail_closed else "unlocked",
                extra={"project": machine_name},
            )
            return self.fail_closed

        locked = (directory / self.lock_file_name).exists()
        if locked:
            logger.info("%s is locked, skipping", machine_name, extra={"project": machine_name})
        return locked
