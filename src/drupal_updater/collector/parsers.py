"""Adapters from raw drush output to updater records.

All knowledge of drush's output formats lives here, so the filtering and
ordering code only ever sees ``UpdateCandidate`` and ``ModuleInfo``.
Two generations are supported: the JSON emitted by ``--format=json`` and
the older whitespace-separated ``--pipe`` / column-table text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from ..errors import MalformedResponse
from ..models import UpdateCandidate, UpdateStatus

logger = logging.getLogger(__name__)

_NAME_WITH_MACHINE = re.compile(r"^(.*)\(([^)]+)\)\s*$")
_COLUMN_SPLIT = re.compile(r"\s{2,}")


@dataclass
class ModuleInfo:
    """Installed-module metadata from ``drush pm-list``."""

    machine_name: str
    human_name: str
    package: str = ""
    project_type: str = ""
    install_status: str = ""
    version: str = ""


# ----------------------------------------------------------------------
# Update status
# ----------------------------------------------------------------------


def parse_status_json(text: str) -> dict[str, UpdateCandidate]:
    """Parse ``drush pm-updatestatus --format=json``.

    Projects drush itself reports as locked are skipped.

    Raises:
        MalformedResponse: if the document is not a mapping of project records
    """
    data = _load(text, "drush pm-updatestatus")
    if data in (None, [], ""):
        return {}
    if not isinstance(data, dict):
        raise MalformedResponse("drush pm-updatestatus", "expected a JSON object")

    candidates: dict[str, UpdateCandidate] = {}
    for key, record in data.items():
        if not isinstance(record, dict):
            raise MalformedResponse("drush pm-updatestatus", f"record for {key!r} is not an object")
        if record.get("locked"):
            logger.info("Skipping %s: locked by drush", key, extra={"project": key})
            continue

        machine_name = str(record.get("name") or key)
        current = record.get("existing_version")
        if current is None:
            raise MalformedResponse(
                "drush pm-updatestatus", f"record for {machine_name!r} has no existing_version"
            )
        new = (
            record.get("candidate_version")
            or record.get("recommended")
            or record.get("latest_version")
            or ""
        )
        candidates[machine_name] = UpdateCandidate(
            machine_name=machine_name,
            human_name=str(record.get("label") or record.get("title") or ""),
            current_version=str(current),
            new_version=str(new),
            status_code=_status_code(record.get("status"), machine_name),
            status_message=str(record.get("status_msg") or ""),
            path=record.get("path") or None,
        )
    return candidates


def parse_status_pipe(text: str) -> dict[str, UpdateCandidate]:
    """Parse the legacy ``drush pm-update --pipe`` listing.

    Each line reads ``name current-version new-version Status-text``, with
    dashes standing in for spaces in the status text. Blank lines, PHP
    notices and lines with extra columns (drush's lock marker) are skipped.
    """
    candidates: dict[str, UpdateCandidate] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        fields = line.split()
        if "PHP" in fields[0] or len(fields) > 5:
            continue
        if len(fields) < 4:
            logger.warning("Ignoring unrecognized drush status line: %r", line)
            continue

        machine_name, current, new, status_text = fields[:4]
        status_message = status_text.replace("-", " ")
        candidates[machine_name] = UpdateCandidate(
            machine_name=machine_name,
            current_version=current,
            new_version=new,
            status_code=UpdateStatus.from_text(status_text),
            status_message=status_message,
            status_from_text=True,
        )
    return candidates


# ----------------------------------------------------------------------
# Module list
# ----------------------------------------------------------------------


def parse_module_list_json(text: str) -> dict[str, ModuleInfo]:
    """Parse ``drush pm-list --format=json``."""
    data = _load(text, "drush pm-list")
    if data in (None, [], ""):
        return {}
    if not isinstance(data, dict):
        raise MalformedResponse("drush pm-list", "expected a JSON object")

    modules: dict[str, ModuleInfo] = {}
    for machine_name, record in data.items():
        if not isinstance(record, dict):
            raise MalformedResponse("drush pm-list", f"record for {machine_name!r} is not an object")
        modules[machine_name] = ModuleInfo(
            machine_name=machine_name,
            human_name=_strip_machine_suffix(str(record.get("name") or machine_name)),
            package=str(record.get("package") or ""),
            project_type=str(record.get("type") or ""),
            install_status=str(record.get("status") or ""),
            version=str(record.get("version") or "None"),
        )
    return modules


def parse_module_list_table(text: str) -> dict[str, ModuleInfo]:
    """Parse the column-aligned table printed by plain ``drush pm-list``.

    Columns are separated by two or more spaces:
    ``Package  Name (machine_name)  Type  Status  Version``.
    """
    modules: dict[str, ModuleInfo] = {}
    for line in text.splitlines():
        columns = [c.strip() for c in _COLUMN_SPLIT.split(line.strip())]
        if len(columns) < 2 or not columns[0] or not columns[1]:
            continue
        if "Package" in columns[0] and "Name" in columns[1]:
            continue
        match = _NAME_WITH_MACHINE.match(columns[1])
        if not match:
            continue
        human_name, machine_name = match.group(1).strip(), match.group(2).strip()
        modules[machine_name] = ModuleInfo(
            machine_name=machine_name,
            human_name=human_name,
            package=columns[0],
            project_type=columns[2] if len(columns) > 2 else "",
            install_status=columns[3] if len(columns) > 3 else "",
            version=columns[4] if len(columns) > 4 else "None",
        )
    return modules


def _strip_machine_suffix(name: str) -> str:
    match = _NAME_WITH_MACHINE.match(name)
    return match.group(1).strip() if match else name


def _status_code(raw: Any, machine_name: str) -> UpdateStatus:
    try:
        code = int(raw)
    except (TypeError, ValueError):
        raise MalformedResponse(
            "drush pm-updatestatus", f"status {raw!r} for {machine_name!r} is not a number"
        )
    try:
        return UpdateStatus(code)
    except ValueError:
        logger.warning("Unknown update status %d for %s", code, machine_name)
        return UpdateStatus.UNKNOWN


def _load(text: str, source: str) -> Any:
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(source, f"invalid JSON ({e})") from e
