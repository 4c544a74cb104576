"""Update prioritizer: turns collected candidates into an ordered plan."""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional

from .models import OrderedUpdatePlan, RunConfiguration, UpdateCandidate

logger = logging.getLogger(__name__)

LockPredicate = Callable[[str, Optional[str]], bool]


def _never_locked(machine_name: str, path: Optional[str] = None) -> bool:
    return False


class UpdatePrioritizer:
    """Filters and orders update candidates for one run.

    Filters, in order:
    1. statuses that need no action (undeterminable, or already current)
    2. modules the lock filter reports as locked
    3. ``security_only``: anything that is not a security update
    4. ``core_only``: anything that is not core
    5. ``enabled_only``: modules that are not enabled (core always passes)

    Survivors are sorted most urgent first, then by machine name.
    """

    def __init__(self, config: RunConfiguration, is_locked: Optional[LockPredicate] = None):
        self.config = config
        self.is_locked = is_locked or _never_locked

    def plan(self, candidates: Mapping[str, UpdateCandidate]) -> OrderedUpdatePlan:
        selected = [c for c in candidates.values() if self._keep(c)]
        selected.sort(key=lambda c: (int(c.status_code), c.machine_name))
        plan = OrderedUpdatePlan(selected)
        logger.info(
            "Planned %d of %d candidates: %s",
            len(plan),
            len(candidates),
            ", ".join(plan.machine_names) or "none",
        )
        return plan

    def _keep(self, candidate: UpdateCandidate) -> bool:
        if not candidate.status_code.is_actionable:
            return False
        if self.is_locked(candidate.machine_name, candidate.path):
            return False
        if self.config.security_only and not candidate.is_security_update:
            logger.debug("Skipping %s: not a security update", candidate.machine_name)
            return False
        if self.config.core_only and not candidate.is_core:
            return False
        if self.config.enabled_only and not (candidate.is_core or candidate.is_enabled):
            logger.debug("Skipping %s: not enabled", candidate.machine_name)
            return False
        return True
