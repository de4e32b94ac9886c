"""Optimistic membership changes applied to the cache ahead of the network."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from enrollsync.domain.enrollment.cache import EntityCache
    from enrollsync.domain.model import Person, Roster


class MembershipChange(StrEnum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(slots=True)
class MembershipCommand:
    """Set or clear one ``(roster, person)`` link on both cached sides.

    ``apply`` remembers the last known-good values; ``rollback`` restores
    both, ``rollback_dependent`` restores only the person.
    """

    change: MembershipChange
    roster: Roster
    person: Person
    _applied: bool = field(default=False, init=False, repr=False)

    @property
    def adding(self) -> bool:
        return self.change is MembershipChange.ADD

    def updated_roster(self) -> Roster:
        members = self.roster.member_ids
        members = members | {self.person.id} if self.adding else members - {self.person.id}
        return self.roster.with_members(members)

    def updated_person(self) -> Person:
        relation = self.roster.relation
        ids = self.person.enrollment_ids(relation)
        ids = ids | {self.roster.id} if self.adding else ids - {self.roster.id}
        return self.person.with_enrollment_ids(relation, ids)

    def apply(self, cache: EntityCache) -> None:
        cache.put_roster(self.updated_roster())
        cache.put_person(self.updated_person())
        self._applied = True

    def rollback(self, cache: EntityCache) -> None:
        if not self._applied:
            return
        cache.put_roster(self.roster)
        cache.put_person(self.person)
        self._applied = False

    def rollback_dependent(self, cache: EntityCache) -> None:
        if self._applied:
            cache.put_person(self.person)
