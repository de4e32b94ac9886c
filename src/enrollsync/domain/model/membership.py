"""Read-only membership accessors.

No mutators here: membership changes go through the
enrollment gateway or the reconciliation service.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from enrollsync.domain.model.enums import RelationKind
    from enrollsync.domain.model.people import Person
    from enrollsync.domain.model.rosters import Roster


def is_member(roster: Roster, person_id: str) -> bool:
    return person_id in roster.member_ids


def enrollments_of(person: Person, relation: RelationKind) -> frozenset[str]:
    return person.enrollment_ids(relation)


def is_enrolled(person: Person, roster: Roster) -> bool:
    return roster.id in person.enrollment_ids(roster.relation)


def is_consistent(roster: Roster, person: Person) -> bool:
    """Both sides agree about whether ``person`` belongs to ``roster``."""
    return is_member(roster, person.id) == is_enrolled(person, roster)


@dataclass(frozen=True, slots=True)
class Drift:
    """A known disagreement between the two sides of a relation.

    ``expected_member`` is what the authority side says; the dependent side
    of ``person_id`` is stale until reconciled.
    """

    relation: RelationKind
    roster_id: str
    person_id: str
    expected_member: bool

    def describe(self) -> str:
        field_name = self.relation.enrollment_field
        if self.expected_member:
            return (
                f"{self.roster_id} lists {self.person_id} as a member but "
                f"{self.person_id}.enrollments.{field_name} does not contain {self.roster_id}"
            )
        return (
            f"{self.roster_id} no longer lists {self.person_id} but "
            f"{self.person_id}.enrollments.{field_name} still contains {self.roster_id}"
        )
