"""In-memory conservatory backend and fakes for domain tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import time
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from enrollsync.domain.errors import NotFoundError
from enrollsync.domain.model import (
    EntityKind,
    Group,
    GroupType,
    Lesson,
    Person,
    RelationKind,
    SplitName,
    TimeBlock,
    Weekday,
)
from enrollsync.domain.ports import ServerDeletionEstimate, ServerDeletionResult

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Mapping

    from enrollsync.domain.deletion import DeletionOptions, DeletionSnapshot
    from enrollsync.domain.ports import Record


def block(day: Weekday, start: str, end: str, location: str | None = None) -> TimeBlock:
    sh, sm = (int(part) for part in start.split(":"))
    eh, em = (int(part) for part in end.split(":"))
    return TimeBlock(day=day, start=time(sh, sm), end=time(eh, em), location=location)


def make_student(
    person_id: str,
    *,
    first_name: str = "",
    last_name: str = "",
    orchestra_ids: Iterable[str] = (),
    ensemble_ids: Iterable[str] = (),
    theory_lesson_ids: Iterable[str] = (),
    teacher_ids: Iterable[str] = (),
    schedule: tuple[TimeBlock, ...] = (),
    tenant_id: str | None = None,
) -> Person:
    enrollments = {
        RelationKind.ORCHESTRA: frozenset(orchestra_ids),
        RelationKind.ENSEMBLE: frozenset(ensemble_ids),
        RelationKind.THEORY_LESSON: frozenset(theory_lesson_ids),
    }
    return Person(
        id=person_id,
        name=SplitName(first_name=first_name, last_name=last_name),
        enrollments=MappingProxyType(enrollments),
        teacher_ids=frozenset(teacher_ids),
        schedule=schedule,
        tenant_id=tenant_id,
    )


def make_group(
    group_id: str,
    *,
    name: str = "",
    member_ids: Iterable[str] = (),
    capacity: int | None = None,
    conductor_id: str | None = None,
    group_type: GroupType = GroupType.ORCHESTRA,
    schedule: tuple[TimeBlock, ...] = (),
    tenant_id: str | None = None,
) -> Group:
    return Group(
        id=group_id,
        name=name,
        member_ids=frozenset(member_ids),
        capacity=capacity,
        teacher_id=conductor_id,
        group_type=group_type,
        schedule=schedule,
        tenant_id=tenant_id,
    )


def make_lesson(
    lesson_id: str,
    *,
    name: str = "",
    student_ids: Iterable[str] = (),
    capacity: int | None = None,
    teacher_id: str | None = None,
    schedule: tuple[TimeBlock, ...] = (),
) -> Lesson:
    return Lesson(
        id=lesson_id,
        name=name,
        member_ids=frozenset(student_ids),
        capacity=capacity,
        teacher_id=teacher_id,
        schedule=schedule,
    )


class InMemoryBackend:
    """Per-document store with no cross-document transactions, like the real one.

    Failures are injected per operation by queueing exceptions; each queued
    exception is raised once, in order.
    """

    def __init__(
        self,
        *,
        persons: Iterable[Person] = (),
        rosters: Iterable[Group | Lesson] = (),
        records: Mapping[str, Iterable[Record]] | None = None,
    ) -> None:
        self.persons: dict[str, Person] = {person.id: person for person in persons}
        self.rosters: dict[str, Group | Lesson] = {roster.id: roster for roster in rosters}
        self.records: dict[str, dict[str, dict[str, Any]]] = {
            collection: {str(record["_id"]): dict(record) for record in items}
            for collection, items in (records or {}).items()
        }
        self.root_records: dict[str, dict[str, Any]] = {}
        self.estimates: dict[str, ServerDeletionEstimate] = {}
        self.server_affected: dict[str, int] = {}
        self.complete_deletions = True

        self.update_failures: list[Exception] = []
        self.roster_write_failures: list[Exception] = []
        self.delete_failures: dict[str, Exception] = {}
        self.execute_failures: list[Exception] = []

        self.calls: list[tuple[str, ...]] = []
        self.deleted: list[tuple[str, str]] = []
        self.executed: list[tuple[EntityKind, str, DeletionOptions]] = []

    # Persons

    def get_person(self, person_id: str) -> Person:
        self.calls.append(("get_person", person_id))
        try:
            return self.persons[person_id]
        except KeyError:
            raise NotFoundError("student", person_id) from None

    def get_persons(self, person_ids: Iterable[str]) -> list[Person]:
        return [self.get_person(person_id) for person_id in dict.fromkeys(person_ids)]

    def list_persons(self) -> list[Person]:
        return list(self.persons.values())

    def update_person(
        self,
        person_id: str,
        *,
        enrollments: Mapping[RelationKind, frozenset[str]],
    ) -> Person:
        self.calls.append(("update_person", person_id))
        if self.update_failures:
            raise self.update_failures.pop(0)
        person = self.get_person(person_id)
        for relation, ids in enrollments.items():
            person = person.with_enrollment_ids(relation, ids)
        self.persons[person_id] = person
        return person

    # Rosters

    def get_roster(self, relation: RelationKind, roster_id: str) -> Group | Lesson:
        roster = self.rosters.get(roster_id)
        if roster is None or roster.relation is not relation:
            raise NotFoundError(str(relation), roster_id)
        return roster

    def list_rosters(self, relation: RelationKind) -> list[Group | Lesson]:
        return [roster for roster in self.rosters.values() if roster.relation is relation]

    def add_roster_member(
        self, relation: RelationKind, roster_id: str, person_id: str
    ) -> Group | Lesson:
        self.calls.append(("add_roster_member", roster_id, person_id))
        if self.roster_write_failures:
            raise self.roster_write_failures.pop(0)
        roster = self.get_roster(relation, roster_id)
        roster = roster.with_members(roster.member_ids | {person_id})
        self.rosters[roster_id] = roster
        return roster

    def remove_roster_member(
        self, relation: RelationKind, roster_id: str, person_id: str
    ) -> Group | Lesson:
        self.calls.append(("remove_roster_member", roster_id, person_id))
        if self.roster_write_failures:
            raise self.roster_write_failures.pop(0)
        roster = self.get_roster(relation, roster_id)
        roster = roster.with_members(roster.member_ids - {person_id})
        self.rosters[roster_id] = roster
        return roster

    # Generic records and deletion

    def get_record(self, kind: EntityKind, record_id: str) -> Record:
        if record_id in self.root_records:
            return self.root_records[record_id]
        entity = self.persons.get(record_id) or self.rosters.get(record_id)
        if entity is None:
            raise NotFoundError(kind, record_id)
        return {"_id": record_id, "tenantId": entity.tenant_id}

    def find_references(self, collection: str, *, field: str, ids: Iterable[str]) -> list[Record]:
        wanted = set(ids)
        return [
            record
            for record in self.records.get(collection, {}).values()
            if record.get(field) in wanted
        ]

    def delete_record(self, collection: str, record_id: str) -> None:
        failure = self.delete_failures.get(collection)
        if failure is not None:
            raise failure
        self.records.get(collection, {}).pop(record_id, None)
        self.deleted.append((collection, record_id))

    def preview_deletion(self, kind: EntityKind, root_id: str) -> ServerDeletionEstimate:
        return self.estimates.get(root_id, ServerDeletionEstimate(root_id=root_id))

    def execute_deletion(
        self, kind: EntityKind, root_id: str, options: DeletionOptions
    ) -> ServerDeletionResult:
        self.executed.append((kind, root_id, options))
        if self.execute_failures:
            raise self.execute_failures.pop(0)
        if not self.complete_deletions:
            return ServerDeletionResult(completed=False, affected={})
        self.persons.pop(root_id, None)
        self.rosters.pop(root_id, None)
        return ServerDeletionResult(completed=True, affected=dict(self.server_affected))

    # Test conveniences

    def add_record(self, collection: str, record: Record) -> None:
        self.records.setdefault(collection, {})[str(record["_id"])] = dict(record)

    def set_person(self, person: Person) -> None:
        self.persons[person.id] = person

    def set_roster(self, roster: Group | Lesson) -> None:
        self.rosters[roster.id] = roster

    def rename_person(self, person_id: str, first_name: str) -> None:
        person = self.persons[person_id]
        self.persons[person_id] = replace(person, name=SplitName(first_name=first_name))


class FakeSnapshotStore:
    def __init__(self) -> None:
        self.snapshots: dict[str, DeletionSnapshot] = {}

    def save(self, snapshot: DeletionSnapshot) -> str:
        self.snapshots[snapshot.id] = snapshot
        return snapshot.id

    def load(self, snapshot_id: str) -> DeletionSnapshot:
        try:
            return self.snapshots[snapshot_id]
        except KeyError:
            raise NotFoundError("snapshot", snapshot_id) from None


class FakeNotifier:
    def __init__(self, *, failure: Exception | None = None) -> None:
        self.failure = failure
        self.sent: list[tuple[frozenset[str], str, str]] = []

    def notify(self, recipient_ids: Collection[str], *, subject: str, message: str) -> None:
        if self.failure is not None:
            raise self.failure
        self.sent.append((frozenset(recipient_ids), subject, message))
