"""Students and teachers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from enrollsync.domain.model.enums import PersonRole, RelationKind
from enrollsync.domain.model.names import UNKNOWN_NAME, display_name

if TYPE_CHECKING:
    from enrollsync.domain.model.names import PersonName
    from enrollsync.domain.model.schedule import TimeBlock


def _empty_enrollments() -> Mapping[RelationKind, frozenset[str]]:
    return MappingProxyType({})


@dataclass(frozen=True, slots=True, kw_only=True)
class Person:
    """A student or teacher.

    ``enrollments`` holds the dependent side of every relation. Relations the
    backend record does not mention read as empty.
    """

    id: str
    role: PersonRole = PersonRole.STUDENT
    name: PersonName = UNKNOWN_NAME
    enrollments: Mapping[RelationKind, frozenset[str]] = field(
        default_factory=_empty_enrollments
    )
    teacher_ids: frozenset[str] = field(default_factory=frozenset[str])
    schedule: tuple[TimeBlock, ...] = ()
    tenant_id: str | None = None

    @property
    def label(self) -> str:
        return display_name(self.name, fallback=self.id)

    def enrollment_ids(self, relation: RelationKind) -> frozenset[str]:
        return self.enrollments.get(relation, frozenset())

    def with_enrollment_ids(self, relation: RelationKind, ids: frozenset[str]) -> Person:
        enrollments = dict(self.enrollments)
        enrollments[relation] = frozenset(ids)
        return replace(self, enrollments=MappingProxyType(enrollments))
