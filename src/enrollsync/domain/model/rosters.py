"""Rosters: the entities that own the authority side of a membership relation."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Self

from enrollsync.domain.model.enums import GroupType, RelationKind

if TYPE_CHECKING:
    from enrollsync.domain.model.schedule import TimeBlock


@dataclass(frozen=True, slots=True, kw_only=True)
class Roster:
    """Base for Groups and Lessons.

    ``member_ids`` is a set; the wire format's array order and duplicates are
    not preserved.
    """

    id: str
    name: str = ""
    member_ids: frozenset[str] = field(default_factory=frozenset[str])
    capacity: int | None = None
    teacher_id: str | None = None
    schedule: tuple[TimeBlock, ...] = ()
    tenant_id: str | None = None

    @property
    def relation(self) -> RelationKind:
        raise NotImplementedError

    @property
    def label(self) -> str:
        return self.name or self.id

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and len(self.member_ids) >= self.capacity

    def with_members(self, member_ids: frozenset[str]) -> Self:
        return replace(self, member_ids=member_ids)


@dataclass(frozen=True, slots=True, kw_only=True)
class Group(Roster):
    """Orchestra or ensemble; ``teacher_id`` is the conductor."""

    group_type: GroupType = GroupType.ORCHESTRA

    @property
    def relation(self) -> RelationKind:
        if self.group_type is GroupType.ENSEMBLE:
            return RelationKind.ENSEMBLE
        return RelationKind.ORCHESTRA

    @property
    def conductor_id(self) -> str | None:
        return self.teacher_id


@dataclass(frozen=True, slots=True, kw_only=True)
class Lesson(Roster):
    """Theory lesson; ``member_ids`` mirrors the backend's ``studentIds``."""

    @property
    def relation(self) -> RelationKind:
        return RelationKind.THEORY_LESSON

    @property
    def student_ids(self) -> frozenset[str]:
        return self.member_ids
