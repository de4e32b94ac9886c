"""Exception hierarchy for enrollment consistency and cascade deletion."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from enrollsync.domain.model import Drift, EntityKind, TimeBlock


class EnrollSyncError(RuntimeError):
    """Base class for every error raised by enrollsync."""


class NotFoundError(EnrollSyncError):
    def __init__(self, kind: EntityKind | str, entity_id: str) -> None:
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class BackendNetworkError(EnrollSyncError):
    """Transport failure or server error talking to the backend."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EnrollmentError(EnrollSyncError):
    pass


class CapacityError(EnrollmentError):
    def __init__(self, roster_id: str, capacity: int) -> None:
        super().__init__(f"{roster_id} is at capacity ({capacity} members)")
        self.roster_id = roster_id
        self.capacity = capacity


class ScheduleConflictError(EnrollmentError):
    """The roster meets while the person is already committed elsewhere."""

    def __init__(
        self,
        roster_id: str,
        person_id: str,
        conflicts: Sequence[tuple[TimeBlock, TimeBlock]],
    ) -> None:
        slots = ", ".join(
            f"{candidate.describe()} overlaps {existing.describe()}"
            for candidate, existing in conflicts
        )
        super().__init__(f"Enrolling {person_id} in {roster_id} conflicts: {slots}")
        self.roster_id = roster_id
        self.person_id = person_id
        self.conflicts = tuple(conflicts)


class PartialWriteError(EnrollmentError):
    """The authority write succeeded but the dependent write did not.

    Only the authority side is guaranteed to have changed; run reconciliation
    for ``drift.person_id`` to repair the dependent side.
    """

    def __init__(self, drift: Drift, *, attempts: int) -> None:
        super().__init__(
            f"Dependent write failed after {attempts} attempt(s): {drift.describe()}"
        )
        self.drift = drift
        self.attempts = attempts


class OperationCancelledError(EnrollSyncError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} was cancelled before any write was issued")
        self.operation = operation


class DeletionError(EnrollSyncError):
    pass


class ValidationFailedError(DeletionError):
    """The plan changed between preview and execution."""

    def __init__(self, root_id: str, differences: Mapping[str, tuple[int, int]]) -> None:
        details = ", ".join(
            f"{name}: {before} -> {after}" for name, (before, after) in sorted(differences.items())
        )
        super().__init__(f"Deletion plan for {root_id} is stale ({details or 'blocked'})")
        self.root_id = root_id
        self.differences = dict(differences)


class DeletionBlockedError(DeletionError):
    def __init__(self, root_id: str, blockers: Iterable[str]) -> None:
        self.blockers = tuple(blockers)
        super().__init__(f"Deletion of {root_id} is blocked: {'; '.join(self.blockers)}")
        self.root_id = root_id


class PartialCascadeFailure(DeletionError):  # noqa: N818
    """A cascade stopped after some collections were already deleted.

    Nothing is rolled back. ``snapshot_id`` points at the pre-delete capture
    when one was taken.
    """

    def __init__(
        self,
        root_id: str,
        *,
        completed: Sequence[str],
        pending: Sequence[str],
        failed_collection: str,
        snapshot_id: str | None,
        reason: str,
    ) -> None:
        restore = f"; snapshot {snapshot_id} available" if snapshot_id else "; no snapshot"
        super().__init__(
            f"Cascade deletion of {root_id} failed at {failed_collection!r} ({reason}); "
            f"completed={list(completed)} pending={list(pending)}{restore}"
        )
        self.root_id = root_id
        self.completed = tuple(completed)
        self.pending = tuple(pending)
        self.failed_collection = failed_collection
        self.snapshot_id = snapshot_id


class InvalidTransitionError(DeletionError):
    def __init__(self, current: str, action: str) -> None:
        super().__init__(f"Cannot {action} while deletion workflow is {current}")
        self.current = current
        self.action = action


__all__ = [
    "BackendNetworkError",
    "CapacityError",
    "DeletionBlockedError",
    "DeletionError",
    "EnrollSyncError",
    "EnrollmentError",
    "InvalidTransitionError",
    "NotFoundError",
    "OperationCancelledError",
    "PartialCascadeFailure",
    "PartialWriteError",
    "ScheduleConflictError",
    "ValidationFailedError",
]
