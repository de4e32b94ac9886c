"""Translate conservatory wire records into domain objects and back."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from enrollsync.domain.model import (
    Group,
    GroupType,
    Lesson,
    Person,
    PersonRole,
    RelationKind,
    TimeBlock,
    Weekday,
    parse_clock,
    resolve_name,
)
from enrollsync.domain.ports import ServerDeletionEstimate, ServerDeletionResult

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import time

    from .schema import (
        DeletionExecution,
        DeletionPreview,
        OrchestraRecord,
        StudentRecord,
        TeacherAssignment,
        TheoryLessonRecord,
        TimeSlot,
    )

log = getLogger(__name__)

# Legacy records label groups in Hebrew.
_GROUP_TYPE_MAP: dict[str, GroupType] = {
    "orchestra": GroupType.ORCHESTRA,
    "תזמורת": GroupType.ORCHESTRA,
    "ensemble": GroupType.ENSEMBLE,
    "הרכב": GroupType.ENSEMBLE,
}


def group_type_of(raw_type: str | None) -> GroupType:
    if raw_type is None:
        return GroupType.ORCHESTRA
    group_type = _GROUP_TYPE_MAP.get(raw_type.strip().lower())
    if group_type is None:
        log.warning("Unknown group type %r, treating as orchestra", raw_type)
        return GroupType.ORCHESTRA
    return group_type


def _clock(value: str | None, owner_id: str) -> time | None:
    if not value:
        return None
    try:
        return parse_clock(value)
    except ValueError:
        log.warning("Dropping slot with malformed time %r on %s", value, owner_id)
        return None


def _block(
    owner_id: str,
    day: int | None,
    start: time | None,
    end: time | None,
    location: str | None,
) -> TimeBlock | None:
    if day is None or start is None or end is None or end <= start:
        return None
    try:
        weekday = Weekday(day)
    except ValueError:
        log.warning("Dropping slot with unknown day %r on %s", day, owner_id)
        return None
    return TimeBlock(day=weekday, start=start, end=end, location=location)


def _slot_block(slot: TimeSlot, owner_id: str) -> TimeBlock | None:
    return _block(
        owner_id,
        slot.day_of_week,
        _clock(slot.start_time, owner_id),
        _clock(slot.end_time, owner_id),
        slot.location,
    )


def _assignment_block(assignment: TeacherAssignment, owner_id: str) -> TimeBlock | None:
    if not assignment.is_active or assignment.time is None or not assignment.duration:
        return None
    start = _clock(assignment.time, owner_id)
    if start is None:
        return None
    end = (datetime.combine(date.min, start) + timedelta(minutes=assignment.duration)).time()
    return _block(owner_id, assignment.day_of_week, start, end, assignment.location)


def person_from_student(record: StudentRecord) -> Person:
    enrollments = {
        RelationKind.ORCHESTRA: frozenset(record.enrollments.orchestra_ids),
        RelationKind.ENSEMBLE: frozenset(record.enrollments.ensemble_ids),
        RelationKind.THEORY_LESSON: frozenset(record.enrollments.theory_lesson_ids),
    }
    personal_info = record.personal_info.model_dump(by_alias=True) if record.personal_info else None
    schedule = tuple(
        block
        for block in (_assignment_block(a, record.id) for a in record.teacher_assignments)
        if block is not None
    )
    return Person(
        id=record.id,
        role=PersonRole.STUDENT,
        name=resolve_name(personal_info),
        enrollments=MappingProxyType(enrollments),
        teacher_ids=frozenset(a.teacher_id for a in record.teacher_assignments if a.is_active),
        schedule=schedule,
        tenant_id=record.tenant_id,
    )


def group_from_orchestra(record: OrchestraRecord) -> Group:
    schedule = tuple(
        block
        for block in (_slot_block(slot, record.id) for slot in record.schedule)
        if block is not None
    )
    return Group(
        id=record.id,
        name=record.name,
        group_type=group_type_of(record.type),
        member_ids=frozenset(record.member_ids),
        capacity=record.max_members,
        teacher_id=record.conductor_id,
        schedule=schedule,
        tenant_id=record.tenant_id,
    )


def lesson_from_theory(record: TheoryLessonRecord) -> Lesson:
    block = _block(
        record.id,
        record.day_of_week,
        _clock(record.start_time, record.id),
        _clock(record.end_time, record.id),
        record.location,
    )
    return Lesson(
        id=record.id,
        name=record.category,
        member_ids=frozenset(record.student_ids),
        capacity=record.max_students,
        teacher_id=record.teacher_id,
        schedule=(block,) if block else (),
        tenant_id=record.tenant_id,
    )


def enrollment_patch(enrollments: Mapping[RelationKind, frozenset[str]]) -> dict[str, list[str]]:
    """Serialize enrollment sets as sorted, de-duplicated arrays."""
    return {relation.enrollment_field: sorted(ids) for relation, ids in enrollments.items()}


def estimate_from_preview(root_id: str, preview: DeletionPreview) -> ServerDeletionEstimate:
    affected: dict[str, int] = {}
    for estimate in preview.affected_collections:
        affected[estimate.name] = affected.get(estimate.name, 0) + estimate.count
    return ServerDeletionEstimate(
        root_id=root_id,
        affected=affected,
        warnings=tuple(preview.warnings),
        blockers=tuple(preview.dependencies) if not preview.can_proceed else (),
        can_proceed=preview.can_proceed,
    )


def result_from_execution(execution: DeletionExecution) -> ServerDeletionResult:
    return ServerDeletionResult(
        completed=execution.completed,
        affected=dict(execution.affected),
        snapshot_id=execution.snapshot_id,
    )
