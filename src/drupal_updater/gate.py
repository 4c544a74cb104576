"""Verification gate: the per-update apply/commit/verify state machine."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from .models import OrderedUpdatePlan, PlannedUpdate

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    """States of the verification gate."""

    AWAITING_NEXT = "awaiting_next"
    APPLYING = "applying"
    COMMITTING = "committing"
    POST_VERIFY = "post_verify"
    DONE = "done"


def effective_blind(plan: OrderedUpdatePlan, requested: bool) -> bool:
    """Blind mode actually used for a plan.

    A single update has nothing to batch, so it always runs blind.
    """
    return requested or len(plan) == 1


class VerificationGate:
    """Walks an update plan one entry at a time.

    Interactive runs verify after every commit. Blind runs defer
    verification and do a single pass over every updated module once the
    plan is exhausted, without waiting for a key press.

    Handlers:
        apply: called with the PlannedUpdate to install it
        commit: called with the PlannedUpdate after ``apply`` returns,
            whatever the outcome of the install
        post_verify: called with the module names to check and whether to
            pause for the operator
    """

    def __init__(
        self,
        plan: OrderedUpdatePlan,
        blind: bool,
        apply: Callable[[PlannedUpdate], Any],
        commit: Callable[[PlannedUpdate], Any],
        post_verify: Callable[[list[str], bool], Any],
    ):
        self.plan = plan
        self.blind = effective_blind(plan, blind)
        self._apply = apply
        self._commit = commit
        self._post_verify = post_verify

        self._state = GateState.AWAITING_NEXT
        self._index = 0
        self._current: Optional[PlannedUpdate] = None
        self._deferred: list[str] = []
        self._final_pass = False
        self.history: list[GateState] = [self._state]

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def current(self) -> Optional[PlannedUpdate]:
        return self._current

    def step(self) -> GateState:
        """Perform the work of the current state and move to the next one."""
        state = self._state

        if state == GateState.AWAITING_NEXT:
            if self._index < len(self.plan):
                self._current = self.plan[self._index]
                self._index += 1
                self._move(GateState.APPLYING)
            elif self.blind and self._deferred:
                self._final_pass = True
                self._move(GateState.POST_VERIFY)
            else:
                self._move(GateState.DONE)

        elif state == GateState.APPLYING:
            self._apply(self._current)
            self._move(GateState.COMMITTING)

        elif state == GateState.COMMITTING:
            self._commit(self._current)
            if self.blind:
                self._deferred.append(self._current.machine_name)
                self._move(GateState.AWAITING_NEXT)
            else:
                self._move(GateState.POST_VERIFY)

        elif state == GateState.POST_VERIFY:
            if self._final_pass:
                modules, self._deferred = self._deferred, []
                self._post_verify(modules, False)
                self._move(GateState.DONE)
            else:
                self._post_verify([self._current.machine_name], True)
                self._move(GateState.AWAITING_NEXT)

        return self._state

    def run(self) -> None:
        """Step until the plan is exhausted."""
        while self._state != GateState.DONE:
            self.step()

    def _move(self, state: GateState) -> None:
        logger.debug("Gate %s -> %s", self._state.value, state.value)
        self._state = state
        self.history.append(state)
