"""Core data structures shared by the collector, prioritizer and session."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidAuthor

CORE_MACHINE_NAME = "drupal"
CORE_DISPLAY_NAME = "Drupal core"

AUTHOR_PATTERN = re.compile(r"^[^<>@]+ <[^<>@\s]+@[^<>@\s]+>$")


class UpdateStatus(IntEnum):
    """drush update-status codes.

    Positive codes rank pending updates, 1 being the most urgent. Negative
    codes mean the status could not be determined.
    """

    NOT_SECURE = 1
    REVOKED = 2
    NOT_SUPPORTED = 3
    NOT_CURRENT = 4
    CURRENT = 5
    NOT_CHECKED = -1
    UNKNOWN = -2
    NOT_FETCHED = -3
    FETCH_PENDING = -4

    @property
    def description(self) -> str:
        return _STATUS_DESCRIPTIONS[self]

    @property
    def is_actionable(self) -> bool:
        """True for statuses that call for an update."""
        return self >= UpdateStatus.NOT_SECURE and self != UpdateStatus.CURRENT

    @classmethod
    def from_text(cls, text: str) -> "UpdateStatus":
        """Map a textual drush status back to its code.

        Legacy ``--pipe`` output only carries the message, with dashes in
        place of spaces. Anything unrecognized is treated as a regular
        update.
        """
        normalized = " ".join(text.replace("-", " ").split()).lower()
        for status, description in _STATUS_DESCRIPTIONS.items():
            if normalized == description.lower():
                return status
        if "security" in normalized:
            return cls.NOT_SECURE
        if "revoked" in normalized:
            return cls.REVOKED
        if "not supported" in normalized:
            return cls.NOT_SUPPORTED
        return cls.NOT_CURRENT


_STATUS_DESCRIPTIONS = {
    UpdateStatus.NOT_SECURE: "SECURITY UPDATE available",
    UpdateStatus.REVOKED: "Installed version REVOKED",
    UpdateStatus.NOT_SUPPORTED: "Installed version not supported",
    UpdateStatus.NOT_CURRENT: "Update available",
    UpdateStatus.CURRENT: "Up to date",
    UpdateStatus.NOT_CHECKED: "Unable to check status",
    UpdateStatus.UNKNOWN: "Unknown release status",
    UpdateStatus.NOT_FETCHED: "Failed to fetch available update data",
    UpdateStatus.FETCH_PENDING: "Update data fetch pending",
}


@dataclass
class UpdateCandidate:
    """One pending module update, as reported by drush."""

    machine_name: str
    current_version: str
    new_version: str
    status_code: UpdateStatus
    status_message: str = ""
    human_name: str = ""
    status_from_text: bool = False  # True when only the status message was available
    package: str = ""
    project_type: str = ""
    install_status: str = ""
    path: Optional[str] = None

    def __post_init__(self):
        if self.is_core:
            self.human_name = CORE_DISPLAY_NAME
        elif not self.human_name:
            self.human_name = self.machine_name
        if not self.status_message:
            self.status_message = self.status_code.description

    @property
    def is_core(self) -> bool:
        return self.machine_name == CORE_MACHINE_NAME

    @property
    def is_enabled(self) -> bool:
        return self.install_status.strip().lower() == "enabled"

    @property
    def is_security_update(self) -> bool:
        """Whether this update fixes a security advisory."""
        if self.status_from_text:
            return "SECURITY" in self.status_message
        return self.status_code == UpdateStatus.NOT_SECURE

    @property
    def message(self) -> str:
        """Commit message and console line for this update."""
        return (
            f"Update {self.human_name} from {self.current_version} "
            f"to {self.new_version} - {self.status_message}"
        )


def validate_author(author: str) -> str:
    """Return ``author`` stripped, or raise InvalidAuthor."""
    author = author.strip()
    if not AUTHOR_PATTERN.match(author):
        raise InvalidAuthor(author)
    return author


class RunConfiguration(BaseModel):
    """Options for one run. Built once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    blind: bool = False
    dry_run: bool = False
    skip_database: bool = False
    core_only: bool = False
    security_only: bool = False
    enabled_only: bool = False
    notify_emails: tuple[str, ...] = Field(default_factory=tuple)
    keep_log: bool = False
    commit_author: Optional[str] = None
    verbose: bool = False

    @field_validator("commit_author")
    @classmethod
    def _check_author(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return validate_author(value)

    @field_validator("notify_emails", mode="before")
    @classmethod
    def _split_emails(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            value = value.split(",")
        return tuple(addr.strip() for addr in value if addr and addr.strip())

    def with_blind(self) -> "RunConfiguration":
        """Copy of this configuration with blind mode forced on."""
        return self.model_copy(update={"blind": True})


@dataclass(frozen=True)
class PlannedUpdate:
    """An update candidate with its position in the plan."""

    priority: int
    candidate: UpdateCandidate

    @property
    def machine_name(self) -> str:
        return self.candidate.machine_name

    @property
    def message(self) -> str:
        return self.candidate.message


class OrderedUpdatePlan:
    """Updates in the order they will be applied. Immutable once built."""

    def __init__(self, candidates: list[UpdateCandidate]):
        self._entries = tuple(
            PlannedUpdate(priority=index, candidate=candidate)
            for index, candidate in enumerate(candidates)
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PlannedUpdate]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> PlannedUpdate:
        return self._entries[index]

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def machine_names(self) -> list[str]:
        return [entry.machine_name for entry in self._entries]

    def render(self) -> str:
        """Stable text form, one ``priority<TAB>module<TAB>message`` per line."""
        return "\n".join(
            f"{entry.priority}\t{entry.machine_name}\t{entry.message}"
            for entry in self._entries
        )


@dataclass
class UpdateFailure:
    """A recoverable failure recorded during a run."""

    machine_name: str
    stage: str  # "update" or "commit"
    detail: str = ""


@dataclass
class SessionState:
    """Progress of the current run. Mutated only by the session controller."""

    applied: int = 0
    committed: list[str] = field(default_factory=list)
    failures: list[UpdateFailure] = field(default_factory=list)
    total: int = 0
    started_at: float = field(default_factory=time.monotonic)
    interrupted: bool = False

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def record_applied(self, machine_name: str) -> None:
        self.applied += 1
        self.committed.append(machine_name)

    def record_failure(self, machine_name: str, stage: str, detail: str = "") -> None:
        self.failures.append(UpdateFailure(machine_name, stage, detail))
