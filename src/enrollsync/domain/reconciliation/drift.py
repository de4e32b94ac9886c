"""Pure drift computation between authority rosters and a dependent array."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from enrollsync.domain.model import Roster


def expected_enrollments(person_id: str, rosters: Iterable[Roster]) -> frozenset[str]:
    """Ids of every roster whose authority array lists ``person_id``."""
    return frozenset(roster.id for roster in rosters if person_id in roster.member_ids)


def orphaned_members(
    rosters: Iterable[Roster], known_person_ids: frozenset[str]
) -> dict[str, frozenset[str]]:
    """Map roster id to member ids that have no person record."""
    orphans: dict[str, frozenset[str]] = {}
    for roster in rosters:
        missing = roster.member_ids - known_person_ids
        if missing:
            orphans[roster.id] = missing
    return orphans
