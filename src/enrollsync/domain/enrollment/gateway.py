"""Dual-write enrollment gateway.

Adding or removing a member touches two documents: the roster's authority
array first, then the person's dependent enrollment array. The backend has no
transaction spanning both, so the gateway orders the writes, retries only the
dependent one and reports exactly which drift it left behind when that retry
budget runs out.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from enrollsync.config.enrollment import EnrollmentConfig
from enrollsync.domain.conflicts import find_schedule_conflicts
from enrollsync.domain.enrollment.cache import EntityCache
from enrollsync.domain.enrollment.cancellation import CancellationScope
from enrollsync.domain.enrollment.commands import MembershipChange, MembershipCommand
from enrollsync.domain.errors import (
    BackendNetworkError,
    CapacityError,
    PartialWriteError,
    ScheduleConflictError,
)
from enrollsync.domain.model import Drift, RelationKind, is_enrolled, is_member

if TYPE_CHECKING:
    from collections.abc import Callable

    from enrollsync.domain.model import Person, Roster
    from enrollsync.domain.ports import ConservatoryBackend

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnrollmentResult:
    """Outcome of a successful add/remove; ``changed`` is False for no-ops."""

    changed: bool
    roster: Roster
    person: Person


class EnrollmentGateway:
    def __init__(
        self,
        backend: ConservatoryBackend,
        *,
        cache: EntityCache | None = None,
        config: EnrollmentConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._backend = backend
        self.cache = cache if cache is not None else EntityCache()
        self._config = config or EnrollmentConfig()
        self._sleep = sleep

    def add_member(
        self,
        roster_id: str,
        person_id: str,
        *,
        relation: RelationKind = RelationKind.ORCHESTRA,
        override_conflict: bool = False,
        cancel: CancellationScope | None = None,
    ) -> EnrollmentResult:
        """Enroll ``person_id`` in ``roster_id`` on both sides.

        Raises :class:`CapacityError` or :class:`ScheduleConflictError` before
        anything is written; :class:`PartialWriteError` when only the authority
        side changed.
        """
        roster, person = self._load(relation, roster_id, person_id)
        already_member = is_member(roster, person_id)
        if already_member and is_enrolled(person, roster):
            log.info("%s already enrolled in %s; nothing to do", person_id, roster_id)
            return EnrollmentResult(changed=False, roster=roster, person=person)

        if not already_member:
            if roster.capacity is not None and roster.is_full:
                raise CapacityError(roster.id, roster.capacity)
            conflicts = find_schedule_conflicts(roster.schedule, person.schedule)
            if conflicts and not override_conflict:
                raise ScheduleConflictError(roster.id, person_id, conflicts)
            if conflicts:
                log.warning(
                    "Enrolling %s in %s despite %d schedule conflict(s) (override)",
                    person_id,
                    roster_id,
                    len(conflicts),
                )

        command = MembershipCommand(change=MembershipChange.ADD, roster=roster, person=person)
        return self._execute(command, cancel or CancellationScope())

    def remove_member(
        self,
        roster_id: str,
        person_id: str,
        *,
        relation: RelationKind = RelationKind.ORCHESTRA,
        cancel: CancellationScope | None = None,
    ) -> EnrollmentResult:
        """Mirror of :meth:`add_member`: authority side first, then dependent."""
        roster, person = self._load(relation, roster_id, person_id)
        if not is_member(roster, person_id) and not is_enrolled(person, roster):
            log.info("%s not enrolled in %s; nothing to do", person_id, roster_id)
            return EnrollmentResult(changed=False, roster=roster, person=person)

        command = MembershipCommand(change=MembershipChange.REMOVE, roster=roster, person=person)
        return self._execute(command, cancel or CancellationScope())

    def _load(
        self, relation: RelationKind, roster_id: str, person_id: str
    ) -> tuple[Roster, Person]:
        roster = self._backend.get_roster(relation, roster_id)
        person = self._backend.get_person(person_id)
        self.cache.put_roster(roster)
        self.cache.put_person(person)
        return roster, person

    def _execute(self, command: MembershipCommand, cancel: CancellationScope) -> EnrollmentResult:
        roster, person = command.roster, command.person
        relation = roster.relation
        cancel.begin_writes(f"{command.change} {person.id} <-> {roster.id}")

        try:
            command.apply(self.cache)
            confirmed_roster = self._write_authority(command)
        except BaseException:
            command.rollback(self.cache)
            log.exception(
                "Authority write %s %s on %s failed; cache rolled back",
                command.change,
                person.id,
                roster.id,
            )
            raise
        self.cache.put_roster(confirmed_roster)

        try:
            confirmed_person = self._write_dependent(command)
        except _DependentWriteFailedError as failure:
            command.rollback_dependent(self.cache)
            drift = Drift(
                relation=relation,
                roster_id=roster.id,
                person_id=person.id,
                expected_member=command.adding,
            )
            log.error("Partial write left drift: %s", drift.describe())  # noqa: TRY400
            raise PartialWriteError(drift, attempts=failure.attempts) from failure.__cause__
        except BaseException:
            command.rollback_dependent(self.cache)
            raise
        self.cache.put_person(confirmed_person)

        log.info(
            "%s %s <-> %s (%s) on both sides",
            "Linked" if command.adding else "Unlinked",
            person.id,
            roster.id,
            relation,
        )
        return EnrollmentResult(changed=True, roster=confirmed_roster, person=confirmed_person)

    def _write_authority(self, command: MembershipCommand) -> Roster:
        roster = command.roster
        if command.adding:
            return self._backend.add_roster_member(roster.relation, roster.id, command.person.id)
        return self._backend.remove_roster_member(roster.relation, roster.id, command.person.id)

    def _write_dependent(self, command: MembershipCommand) -> Person:
        attempts = self._config.dependent_write_attempts
        relation = command.roster.relation
        person = command.person
        for attempt in range(1, attempts + 1):
            try:
                if attempt > 1:
                    person = self._backend.get_person(person.id)
                ids = person.enrollment_ids(relation)
                ids = ids | {command.roster.id} if command.adding else ids - {command.roster.id}
                return self._backend.update_person(person.id, enrollments={relation: ids})
            except BackendNetworkError as exc:
                if attempt == attempts:
                    raise _DependentWriteFailedError(attempt) from exc
                delay = self._config.backoff_for(attempt)
                log.warning(
                    "Dependent write for %s (%s) failed on attempt %d/%d: %s; retrying in %.2fs",
                    person.id,
                    relation.enrollment_field,
                    attempt,
                    attempts,
                    exc,
                    delay,
                )
                self._sleep(delay)
            except Exception as exc:
                raise _DependentWriteFailedError(attempt) from exc
        raise _DependentWriteFailedError(attempts)


class _DependentWriteFailedError(Exception):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"dependent write failed after {attempts} attempt(s)")
        self.attempts = attempts


__all__ = ["EnrollmentGateway", "EnrollmentResult"]
