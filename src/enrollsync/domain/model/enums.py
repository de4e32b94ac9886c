"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class PersonRole(StrEnum):
    STUDENT = "student"
    TEACHER = "teacher"


class GroupType(StrEnum):
    ORCHESTRA = "orchestra"
    ENSEMBLE = "ensemble"


class RelationKind(StrEnum):
    """A bidirectional membership relation between a Person and a roster.

    The roster side (``memberIds`` / ``studentIds``) is the authority; the
    Person's enrollment array named by :attr:`enrollment_field` is the
    dependent copy.
    """

    ORCHESTRA = "orchestra"
    ENSEMBLE = "ensemble"
    THEORY_LESSON = "theory_lesson"

    @property
    def enrollment_field(self) -> str:
        return _ENROLLMENT_FIELDS[self]

    @property
    def is_group(self) -> bool:
        return self is not RelationKind.THEORY_LESSON


_ENROLLMENT_FIELDS: dict[RelationKind, str] = {
    RelationKind.ORCHESTRA: "orchestraIds",
    RelationKind.ENSEMBLE: "ensembleIds",
    RelationKind.THEORY_LESSON: "theoryLessonIds",
}


class EntityKind(StrEnum):
    """Addressable backend entity kinds (used for lookups and deletion roots)."""

    STUDENT = "student"
    TEACHER = "teacher"
    ORCHESTRA = "orchestra"
    ENSEMBLE = "ensemble"
    THEORY_LESSON = "theory_lesson"
    REHEARSAL = "rehearsal"


class Weekday(IntEnum):
    """Day of week as stored by the backend (Sunday = 0)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @property
    def label(self) -> str:
        return self.name.capitalize()


class ConflictKind(StrEnum):
    LOCATION = "location"
    CONDUCTOR = "conductor"
    MEMBERS = "members"
    TIME = "time"


class ConflictSeverity(StrEnum):
    CRITICAL = "critical"
    WARNING = "warning"
