"""drupal-updater - apply drush module updates one commit at a time."""

__version__ = "0.3.0"

from .config import Settings, get_settings
from .errors import (
    UpdaterError,
    ToolUnavailable,
    MalformedResponse,
    PreflightError,
    InvalidAuthor,
    MissingCommitMessage,
)
from .models import (
    UpdateStatus,
    UpdateCandidate,
    RunConfiguration,
    PlannedUpdate,
    OrderedUpdatePlan,
    SessionState,
)
from .session import SessionController

__all__ = [
    "Settings",
    "get_settings",
    "UpdaterError",
    "ToolUnavailable",
    "MalformedResponse",
    "PreflightError",
    "InvalidAuthor",
    "MissingCommitMessage",
    "UpdateStatus",
    "UpdateCandidate",
    "RunConfiguration",
    "PlannedUpdate",
    "OrderedUpdatePlan",
    "SessionState",
    "SessionController",
]
