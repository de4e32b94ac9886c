"""Shared in-memory cache of fetched rosters and persons.

Readers may look at anything; only the gateway, reconciliation and the
deletion planner write, and only after a confirmed backend write or as part
of an optimistic command that is rolled back on failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from enrollsync.domain.model import Person, Roster


class EntityCache:
    def __init__(self) -> None:
        self._rosters: dict[str, Roster] = {}
        self._persons: dict[str, Person] = {}

    def roster(self, roster_id: str) -> Roster | None:
        return self._rosters.get(roster_id)

    def person(self, person_id: str) -> Person | None:
        return self._persons.get(person_id)

    def put_roster(self, roster: Roster) -> None:
        self._rosters[roster.id] = roster

    def put_person(self, person: Person) -> None:
        self._persons[person.id] = person

    def discard_roster(self, roster_id: str) -> None:
        self._rosters.pop(roster_id, None)

    def discard_person(self, person_id: str) -> None:
        self._persons.pop(person_id, None)

    def __len__(self) -> int:
        return len(self._rosters) + len(self._persons)
