"""Public domain model surface."""

from __future__ import annotations

from enrollsync.domain.model.enums import (
    ConflictKind,
    ConflictSeverity,
    EntityKind,
    GroupType,
    PersonRole,
    RelationKind,
    Weekday,
)
from enrollsync.domain.model.membership import (
    Drift,
    enrollments_of,
    is_consistent,
    is_enrolled,
    is_member,
)
from enrollsync.domain.model.names import (
    LegacyFullName,
    PersonName,
    SplitName,
    UnknownName,
    display_name,
    resolve_name,
)
from enrollsync.domain.model.people import Person
from enrollsync.domain.model.rosters import Group, Lesson, Roster
from enrollsync.domain.model.schedule import (
    Rehearsal,
    TimeBlock,
    format_clock,
    intervals_overlap,
    parse_clock,
)

__all__ = [
    "ConflictKind",
    "ConflictSeverity",
    "Drift",
    "EntityKind",
    "Group",
    "GroupType",
    "LegacyFullName",
    "Lesson",
    "Person",
    "PersonName",
    "PersonRole",
    "Rehearsal",
    "RelationKind",
    "Roster",
    "SplitName",
    "TimeBlock",
    "UnknownName",
    "Weekday",
    "display_name",
    "enrollments_of",
    "format_clock",
    "intervals_overlap",
    "is_consistent",
    "is_enrolled",
    "is_member",
    "parse_clock",
    "resolve_name",
]
