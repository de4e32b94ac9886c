"""Wire schemas for the conservatory backend API."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)

type ObjectId = str
type ClockTime = str  # Format: HH:MM


class ConservatoryBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.debug(
            "Conservatory %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class PersonalInfo(ConservatoryBaseModel):
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")
    full_name: str | None = Field(default=None, alias="fullName")


class Enrollments(ConservatoryBaseModel):
    orchestra_ids: list[ObjectId] = Field(default_factory=list, alias="orchestraIds")
    ensemble_ids: list[ObjectId] = Field(default_factory=list, alias="ensembleIds")
    theory_lesson_ids: list[ObjectId] = Field(default_factory=list, alias="theoryLessonIds")


class TeacherAssignment(ConservatoryBaseModel):
    teacher_id: ObjectId = Field(alias="teacherId")
    day_of_week: int | None = Field(default=None, alias="dayOfWeek")
    time: ClockTime | None = None
    duration: int | None = None  # minutes
    location: str | None = None
    is_active: bool = Field(default=True, alias="isActive")


class TimeSlot(ConservatoryBaseModel):
    day_of_week: int = Field(alias="dayOfWeek")
    start_time: ClockTime = Field(alias="startTime")
    end_time: ClockTime = Field(alias="endTime")
    location: str | None = None


class StudentRecord(ConservatoryBaseModel):
    id: ObjectId = Field(alias="_id")
    personal_info: PersonalInfo | None = Field(default=None, alias="personalInfo")
    enrollments: Enrollments = Field(default_factory=Enrollments)
    teacher_assignments: list[TeacherAssignment] = Field(
        default_factory=list, alias="teacherAssignments"
    )
    tenant_id: str | None = Field(default=None, alias="tenantId")
    is_active: bool = Field(default=True, alias="isActive")


class OrchestraRecord(ConservatoryBaseModel):
    id: ObjectId = Field(alias="_id")
    name: str = ""
    type: str | None = None
    conductor_id: ObjectId | None = Field(default=None, alias="conductorId")
    member_ids: list[ObjectId] = Field(default_factory=list, alias="memberIds")
    max_members: int | None = Field(default=None, alias="maxMembers")
    location: str | None = None
    schedule: list[TimeSlot] = Field(default_factory=list)
    tenant_id: str | None = Field(default=None, alias="tenantId")


class TheoryLessonRecord(ConservatoryBaseModel):
    id: ObjectId = Field(alias="_id")
    category: str = ""
    teacher_id: ObjectId | None = Field(default=None, alias="teacherId")
    student_ids: list[ObjectId] = Field(default_factory=list, alias="studentIds")
    max_students: int | None = Field(default=None, alias="maxStudents")
    day_of_week: int | None = Field(default=None, alias="dayOfWeek")
    start_time: ClockTime | None = Field(default=None, alias="startTime")
    end_time: ClockTime | None = Field(default=None, alias="endTime")
    location: str | None = None
    tenant_id: str | None = Field(default=None, alias="tenantId")


class CollectionEstimate(ConservatoryBaseModel):
    name: str = Field(validation_alias=AliasChoices("collection", "name"))
    count: int = Field(default=0, validation_alias=AliasChoices("count", "estimatedCount"))


class DeletionPreview(ConservatoryBaseModel):
    total_records: int = Field(default=0, alias="totalRecords")
    affected_collections: list[CollectionEstimate] = Field(
        default_factory=list, alias="affectedCollections"
    )
    warnings: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    can_proceed: bool = Field(default=True, alias="canProceed")


class DeletionExecution(ConservatoryBaseModel):
    completed: bool = Field(default=False, validation_alias=AliasChoices("completed", "success"))
    affected: dict[str, int] = Field(default_factory=dict)
    snapshot_id: str | None = Field(default=None, alias="snapshotId")
