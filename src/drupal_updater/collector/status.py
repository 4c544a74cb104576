"""Status collector: merges drush update status with module metadata."""

from __future__ import annotations

import dataclasses
import logging
from typing import Literal

from ..models import UpdateCandidate
from ..tools.drush import DrushClient
from .parsers import (
    parse_module_list_json,
    parse_module_list_table,
    parse_status_json,
    parse_status_pipe,
)

logger = logging.getLogger(__name__)


class StatusCollector:
    """Gathers one ``UpdateCandidate`` per project drush knows about.

    No filtering happens here beyond what drush itself marks as locked;
    severity, lock-file and policy filtering belong to the prioritizer.
    """

    def __init__(self, drush: DrushClient, status_format: Literal["json", "pipe"] = "json"):
        self.drush = drush
        self.status_format = status_format

    def collect(self) -> dict[str, UpdateCandidate]:
        """Query drush and return candidates keyed by machine name.

        Raises:
            ToolUnavailable: if drush cannot be executed
            MalformedResponse: if drush fails or its output cannot be parsed
        """
        if self.status_format == "pipe":
            candidates = parse_status_pipe(self.drush.update_status_pipe())
            modules = parse_module_list_table(self.drush.module_list_table())
        else:
            candidates = parse_status_json(self.drush.update_status_json())
            modules = parse_module_list_json(self.drush.module_list_json())

        merged: dict[str, UpdateCandidate] = {}
        for machine_name, candidate in candidates.items():
            info = modules.get(machine_name)
            if info is None:
                merged[machine_name] = candidate
                continue
            merged[machine_name] = dataclasses.replace(
                candidate,
                human_name=info.human_name or candidate.human_name,
                package=info.package,
                project_type=info.project_type,
                install_status=info.install_status,
            )

        logger.info("Collected update status for %d projects", len(merged))
        return merged
