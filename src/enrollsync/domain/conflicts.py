"""Schedule-conflict predicates.

Slots are half-open ``[start, end)`` intervals, so back-to-back slots never
conflict. Everything here is pure.
"""

from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import TYPE_CHECKING

from enrollsync.domain.model import ConflictKind, ConflictSeverity, intervals_overlap

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from enrollsync.domain.model import Rehearsal, TimeBlock


@dataclass(frozen=True, slots=True)
class GroupConflict:
    has_conflict: bool
    kind: ConflictKind | None = None
    severity: ConflictSeverity | None = None
    message: str = ""
    shared_member_ids: frozenset[str] = frozenset()


NO_CONFLICT = GroupConflict(has_conflict=False)


def has_schedule_conflict(candidate: TimeBlock, existing: Iterable[TimeBlock]) -> bool:
    """Return True if ``candidate`` overlaps any slot in ``existing`` on the same day."""
    return any(slot is not candidate and candidate.overlaps(slot) for slot in existing)


def find_schedule_conflicts(
    candidates: Iterable[TimeBlock], existing: Sequence[TimeBlock]
) -> list[tuple[TimeBlock, TimeBlock]]:
    """Return every ``(candidate, existing)`` pair that overlaps."""
    return [
        (candidate, slot)
        for candidate in candidates
        for slot in existing
        if slot is not candidate and candidate.overlaps(slot)
    ]


def check_group_conflict(first: Rehearsal, second: Rehearsal) -> GroupConflict:
    """Classify the conflict between two rehearsals, if any.

    Only one classification is reported, by priority: shared location,
    shared conductor, shared members, then plain time overlap. The result is
    symmetric in ``has_conflict`` and ``kind``.
    """
    if first.on != second.on or first.group_id == second.group_id:
        return NO_CONFLICT
    if not intervals_overlap(first.start, first.end, second.start, second.end):
        return NO_CONFLICT

    if first.location is not None and first.location == second.location:
        return GroupConflict(
            has_conflict=True,
            kind=ConflictKind.LOCATION,
            severity=ConflictSeverity.CRITICAL,
            message=f"{first.label} and {second.label} both booked {first.location}",
        )
    if first.conductor_id is not None and first.conductor_id == second.conductor_id:
        return GroupConflict(
            has_conflict=True,
            kind=ConflictKind.CONDUCTOR,
            severity=ConflictSeverity.CRITICAL,
            message=(
                f"Conductor {first.conductor_id} is due at {first.label} "
                f"and {second.label} at the same time"
            ),
        )
    shared = first.member_ids & second.member_ids
    if shared:
        return GroupConflict(
            has_conflict=True,
            kind=ConflictKind.MEMBERS,
            severity=ConflictSeverity.WARNING,
            message=f"{len(shared)} shared member(s) between {first.label} and {second.label}",
            shared_member_ids=shared,
        )
    return GroupConflict(
        has_conflict=True,
        kind=ConflictKind.TIME,
        severity=ConflictSeverity.WARNING,
        message=f"{first.label} and {second.label} overlap in time",
    )


def find_group_conflicts(
    rehearsals: Iterable[Rehearsal],
) -> list[tuple[Rehearsal, Rehearsal, GroupConflict]]:
    """Check every pair of rehearsals and return the conflicting ones."""
    found: list[tuple[Rehearsal, Rehearsal, GroupConflict]] = []
    for first, second in combinations(rehearsals, 2):
        conflict = check_group_conflict(first, second)
        if conflict.has_conflict:
            found.append((first, second, conflict))
    return found


__all__ = [
    "NO_CONFLICT",
    "GroupConflict",
    "check_group_conflict",
    "find_group_conflicts",
    "find_schedule_conflicts",
    "has_schedule_conflict",
]
