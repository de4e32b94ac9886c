"""Per-attempt deletion workflow.

``IDLE -> PREVIEW_REQUESTED -> PREVIEW_READY -> CONFIRMED -> EXECUTING ->
COMPLETED | FAILED``, or ``CANCELLED`` from any state before execution.
"""

from __future__ import annotations

from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from enrollsync.domain.errors import DeletionBlockedError, EnrollSyncError, InvalidTransitionError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from enrollsync.domain.deletion.plan import DeletionOptions, DeletionOutcome, DeletionPlan
    from enrollsync.domain.deletion.planner import CascadeDeletionPlanner
    from enrollsync.domain.model import EntityKind

log = getLogger(__name__)


class WorkflowState(StrEnum):
    IDLE = "idle"
    PREVIEW_REQUESTED = "preview_requested"
    PREVIEW_READY = "preview_ready"
    CONFIRMED = "confirmed"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


_CANCELLABLE = frozenset(
    {
        WorkflowState.IDLE,
        WorkflowState.PREVIEW_REQUESTED,
        WorkflowState.PREVIEW_READY,
        WorkflowState.CONFIRMED,
    }
)


class DeletionWorkflow:
    def __init__(self, planner: CascadeDeletionPlanner, kind: EntityKind, root_id: str) -> None:
        self._planner = planner
        self.kind = kind
        self.root_id = root_id
        self.state = WorkflowState.IDLE
        self.plan: DeletionPlan | None = None
        self.options: DeletionOptions | None = None
        self.outcome: DeletionOutcome | None = None
        self.error: EnrollSyncError | None = None

    def _require(self, action: str, *allowed: WorkflowState) -> None:
        if self.state not in allowed:
            raise InvalidTransitionError(self.state, action)

    def request_preview(self) -> DeletionPlan:
        self._require("request a preview", WorkflowState.IDLE, WorkflowState.PREVIEW_READY)
        self.state = WorkflowState.PREVIEW_REQUESTED
        try:
            plan = self._planner.preview(self.kind, self.root_id)
        except EnrollSyncError as exc:
            self._fail(exc)
            raise
        self.plan = plan
        self.state = WorkflowState.PREVIEW_READY
        return plan

    def _current_plan(self, action: str) -> DeletionPlan:
        if self.plan is None:
            raise InvalidTransitionError(self.state, action)
        return self.plan

    def confirm(
        self,
        options: DeletionOptions,
        *,
        approved_counts: Mapping[str, int] | None = None,
    ) -> None:
        """Accept the previewed plan.

        With ``approved_counts`` (the per-collection counts the operator saw),
        a preview that no longer matches raises :class:`ValidationFailedError`
        and the workflow stays in ``PREVIEW_READY``.
        """
        self._require("confirm", WorkflowState.PREVIEW_READY)
        plan = self._current_plan("confirm")
        if not plan.can_proceed:
            raise DeletionBlockedError(self.root_id, plan.blockers)
        if approved_counts is not None:
            self._planner.check_approved(plan, approved_counts)
        self.options = options
        self.state = WorkflowState.CONFIRMED

    def execute(self) -> DeletionOutcome:
        self._require("execute", WorkflowState.CONFIRMED)
        plan = self._current_plan("execute")
        self.state = WorkflowState.EXECUTING
        try:
            outcome = self._planner.execute(plan, self.options)
        except EnrollSyncError as exc:
            self._fail(exc)
            raise
        finally:
            self.plan = None
        self.outcome = outcome
        self.state = WorkflowState.COMPLETED
        return outcome

    def cancel(self) -> None:
        if self.state not in _CANCELLABLE:
            raise InvalidTransitionError(self.state, "cancel")
        log.info("Deletion of %s %s cancelled in state %s", self.kind, self.root_id, self.state)
        self.plan = None
        self.options = None
        self.state = WorkflowState.CANCELLED

    def _fail(self, exc: EnrollSyncError) -> None:
        self.error = exc
        self.state = WorkflowState.FAILED
