"""Port for the conservatory backend.

The backend offers per-document CRUD and nothing else: there is no
transaction spanning two documents, which is why both sides of a membership
relation are written by the client.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from enrollsync.domain.deletion.plan import DeletionOptions
    from enrollsync.domain.model import EntityKind, Person, RelationKind, Roster

type Record = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ServerDeletionEstimate:
    """The backend's own estimate of a cascade, keyed by collection name."""

    root_id: str
    affected: Mapping[str, int] = field(default_factory=dict[str, int])
    warnings: tuple[str, ...] = ()
    blockers: tuple[str, ...] = ()
    can_proceed: bool = True


@dataclass(frozen=True, slots=True)
class ServerDeletionResult:
    completed: bool
    affected: Mapping[str, int] = field(default_factory=dict[str, int])
    snapshot_id: str | None = None


@runtime_checkable
class ConservatoryBackend(Protocol):
    def get_person(self, person_id: str) -> Person: ...

    def get_persons(self, person_ids: Iterable[str]) -> list[Person]: ...

    def list_persons(self) -> list[Person]:
        """Return every student record."""
        ...

    def update_person(
        self,
        person_id: str,
        *,
        enrollments: Mapping[RelationKind, frozenset[str]],
    ) -> Person:
        """Overwrite only the given enrollment arrays of a person."""
        ...

    def get_roster(self, relation: RelationKind, roster_id: str) -> Roster: ...

    def list_rosters(self, relation: RelationKind) -> list[Roster]: ...

    def add_roster_member(self, relation: RelationKind, roster_id: str, person_id: str) -> Roster:
        ...

    def remove_roster_member(
        self, relation: RelationKind, roster_id: str, person_id: str
    ) -> Roster: ...

    def get_record(self, kind: EntityKind, record_id: str) -> Record: ...

    def find_references(self, collection: str, *, field: str, ids: Iterable[str]) -> list[Record]:
        """Return records of ``collection`` whose ``field`` holds any of ``ids``."""
        ...

    def delete_record(self, collection: str, record_id: str) -> None: ...

    def preview_deletion(self, kind: EntityKind, root_id: str) -> ServerDeletionEstimate: ...

    def execute_deletion(
        self, kind: EntityKind, root_id: str, options: DeletionOptions
    ) -> ServerDeletionResult: ...


__all__ = [
    "ConservatoryBackend",
    "Record",
    "ServerDeletionEstimate",
    "ServerDeletionResult",
]
