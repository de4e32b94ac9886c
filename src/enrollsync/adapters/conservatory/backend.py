"""Conservatory backend adapter implementing the domain ports over HTTP."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any

from enrollsync.domain.model import EntityKind, RelationKind

from .client import ConservatoryClient
from .translator import (
    enrollment_patch,
    estimate_from_preview,
    group_from_orchestra,
    lesson_from_theory,
    person_from_student,
    result_from_execution,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable, Mapping

    from enrollsync.adapters.http_resilience import ResilientClient
    from enrollsync.config.backend import BackendConfig
    from enrollsync.config.http_resilience import ResilienceConfig
    from enrollsync.domain.deletion.plan import DeletionOptions
    from enrollsync.domain.model import Person, Roster
    from enrollsync.domain.ports import Record, ServerDeletionEstimate, ServerDeletionResult

log = getLogger(__name__)

ENTITY_PATHS: dict[EntityKind, str] = {
    EntityKind.STUDENT: "student",
    EntityKind.TEACHER: "teacher",
    EntityKind.ORCHESTRA: "orchestra",
    EntityKind.ENSEMBLE: "orchestra",
    EntityKind.THEORY_LESSON: "theory",
    EntityKind.REHEARSAL: "rehearsal",
}


class HttpConservatoryBackend:
    """:class:`ConservatoryBackend` and :class:`Notifier` over the REST API.

    Groups (orchestras and ensembles) share the ``orchestra`` endpoints and are
    told apart by their ``type``. Theory lessons have no member endpoint, so
    their student list is updated by read-modify-write.
    """

    def __init__(
        self,
        *,
        config: BackendConfig | None = None,
        client: ConservatoryClient | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        if client is None:
            if config is None:
                raise ValueError("Either config or client is required")
            client = ConservatoryClient(config=config, client_factory=client_factory)
        self._client = client

    def get_person(self, person_id: str) -> Person:
        return person_from_student(self._client.fetch_student(person_id))

    def get_persons(self, person_ids: Iterable[str]) -> list[Person]:
        return [person_from_student(record) for record in self._client.fetch_students(person_ids)]

    def list_persons(self) -> list[Person]:
        return [person_from_student(record) for record in self._client.list_students()]

    def update_person(
        self,
        person_id: str,
        *,
        enrollments: Mapping[RelationKind, frozenset[str]],
    ) -> Person:
        patch = enrollment_patch(enrollments)
        log.debug("Updating %s enrollments: %s", person_id, patch)
        return person_from_student(self._client.patch_student_enrollments(person_id, patch))

    def get_roster(self, relation: RelationKind, roster_id: str) -> Roster:
        if relation.is_group:
            return group_from_orchestra(self._client.fetch_orchestra(roster_id))
        return lesson_from_theory(self._client.fetch_theory_lesson(roster_id))

    def list_rosters(self, relation: RelationKind) -> list[Roster]:
        if relation.is_group:
            groups = map(group_from_orchestra, self._client.list_orchestras())
            return [group for group in groups if group.relation is relation]
        return [lesson_from_theory(record) for record in self._client.list_theory_lessons()]

    def add_roster_member(self, relation: RelationKind, roster_id: str, person_id: str) -> Roster:
        if relation.is_group:
            return group_from_orchestra(self._client.add_orchestra_member(roster_id, person_id))
        return lesson_from_theory(
            self._client.update_theory_students(roster_id, lambda ids: ids.add(person_id))
        )

    def remove_roster_member(
        self, relation: RelationKind, roster_id: str, person_id: str
    ) -> Roster:
        if relation.is_group:
            return group_from_orchestra(self._client.remove_orchestra_member(roster_id, person_id))
        return lesson_from_theory(
            self._client.update_theory_students(roster_id, lambda ids: ids.discard(person_id))
        )

    def get_record(self, kind: EntityKind, record_id: str) -> Record:
        return self._client.fetch_record(ENTITY_PATHS[kind], record_id, str(kind))

    def find_references(self, collection: str, *, field: str, ids: Iterable[str]) -> list[Record]:
        return list(self._client.find_records(collection, field=field, ids=ids))

    def delete_record(self, collection: str, record_id: str) -> None:
        self._client.delete_record(collection, record_id)

    def preview_deletion(self, kind: EntityKind, root_id: str) -> ServerDeletionEstimate:
        preview = self._client.preview_deletion(ENTITY_PATHS[kind], root_id)
        return estimate_from_preview(root_id, preview)

    def execute_deletion(
        self, kind: EntityKind, root_id: str, options: DeletionOptions
    ) -> ServerDeletionResult:
        payload: dict[str, Any] = options.as_payload()
        execution = self._client.execute_deletion(ENTITY_PATHS[kind], root_id, payload)
        return result_from_execution(execution)

    def notify(self, recipient_ids: Collection[str], *, subject: str, message: str) -> None:
        self._client.send_notification(recipient_ids, subject=subject, message=message)
