from __future__ import annotations

import pytest

from enrollsync.config import EnrollmentConfig
from enrollsync.domain.enrollment import CancellationScope, EnrollmentGateway
from enrollsync.domain.errors import (
    BackendNetworkError,
    CapacityError,
    NotFoundError,
    OperationCancelledError,
    PartialWriteError,
    ScheduleConflictError,
)
from enrollsync.domain.model import Person, RelationKind, Weekday, is_consistent
from enrollsync.domain.reconciliation import ReconciliationService
from tests.helpers.conservatory import (
    InMemoryBackend,
    block,
    make_group,
    make_lesson,
    make_student,
)


def make_gateway(backend: InMemoryBackend, sleeps: list[float] | None = None) -> EnrollmentGateway:
    recorded = sleeps if sleeps is not None else []
    return EnrollmentGateway(backend, config=EnrollmentConfig(), sleep=recorded.append)


def write_calls(backend: InMemoryBackend) -> list[tuple[str, ...]]:
    return [call for call in backend.calls if call[0] != "get_person"]


def test_add_member_writes_both_sides() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    gateway = make_gateway(backend)

    result = gateway.add_member("o1", "s1")

    assert result.changed
    assert backend.rosters["o1"].member_ids == {"s1"}
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == {"o1"}
    assert is_consistent(result.roster, result.person)
    assert write_calls(backend) == [("add_roster_member", "o1", "s1"), ("update_person", "s1")]


def test_authority_written_before_dependent() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])

    make_gateway(backend).add_member("o1", "s1")

    names = [call[0] for call in write_calls(backend)]
    assert names.index("add_roster_member") < names.index("update_person")


def test_add_member_is_idempotent() -> None:
    backend = InMemoryBackend(
        persons=[make_student("s1", orchestra_ids={"o1"})],
        rosters=[make_group("o1", member_ids={"s1"})],
    )

    result = make_gateway(backend).add_member("o1", "s1")

    assert not result.changed
    assert write_calls(backend) == []


def test_add_member_repairs_missing_dependent_side() -> None:
    backend = InMemoryBackend(
        persons=[make_student("s1")],
        rosters=[make_group("o1", member_ids={"s1"}, capacity=1)],
    )

    result = make_gateway(backend).add_member("o1", "s1")

    assert result.changed
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == {"o1"}


def test_full_roster_rejects_before_writing() -> None:
    backend = InMemoryBackend(
        persons=[make_student("s1"), make_student("s2")],
        rosters=[make_group("o1", member_ids={"s2"}, capacity=1)],
    )

    with pytest.raises(CapacityError) as exc:
        make_gateway(backend).add_member("o1", "s1")

    assert exc.value.capacity == 1
    assert write_calls(backend) == []


def test_schedule_conflict_rejects_unless_overridden() -> None:
    rehearsal = block(Weekday.WEDNESDAY, "17:00", "19:00", "Hall A")
    lesson = block(Weekday.WEDNESDAY, "18:00", "18:45")
    backend = InMemoryBackend(
        persons=[make_student("s1", schedule=(lesson,))],
        rosters=[make_group("o1", schedule=(rehearsal,))],
    )
    gateway = make_gateway(backend)

    with pytest.raises(ScheduleConflictError) as exc:
        gateway.add_member("o1", "s1")
    assert exc.value.conflicts == ((rehearsal, lesson),)
    assert write_calls(backend) == []

    result = gateway.add_member("o1", "s1", override_conflict=True)
    assert result.changed


def test_unknown_person_is_not_found() -> None:
    backend = InMemoryBackend(rosters=[make_group("o1")])

    with pytest.raises(NotFoundError):
        make_gateway(backend).add_member("o1", "ghost")

    assert backend.rosters["o1"].member_ids == frozenset()


def test_dependent_write_retried_on_network_error() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    backend.update_failures.append(BackendNetworkError("timeout"))
    sleeps: list[float] = []

    result = make_gateway(backend, sleeps).add_member("o1", "s1")

    assert result.changed
    assert sleeps == [0.25]
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == {"o1"}
    assert [call[0] for call in write_calls(backend)].count("update_person") == 2


def test_dependent_retry_rereads_the_person() -> None:
    backend = InMemoryBackend(
        persons=[make_student("s1", orchestra_ids={"o9"})],
        rosters=[make_group("o1")],
    )
    gateway = make_gateway(backend)

    backend.update_failures.append(BackendNetworkError("reset"))
    original_get_person = backend.get_person

    def get_person(person_id: str) -> Person:
        person = original_get_person(person_id)
        if sum(1 for call in backend.calls if call == ("update_person", "s1")) == 1:
            return person.with_enrollment_ids(RelationKind.ORCHESTRA, frozenset({"o9", "o7"}))
        return person

    backend.get_person = get_person  # type: ignore[method-assign]

    gateway.add_member("o1", "s1")

    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == {"o1", "o7", "o9"}


def test_partial_write_reports_drift_after_retries() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    backend.update_failures.extend(BackendNetworkError("down") for _ in range(3))
    sleeps: list[float] = []
    gateway = make_gateway(backend, sleeps)

    with pytest.raises(PartialWriteError) as exc:
        gateway.add_member("o1", "s1")

    drift = exc.value.drift
    assert (drift.roster_id, drift.person_id, drift.expected_member) == ("o1", "s1", True)
    assert exc.value.attempts == 3
    assert isinstance(exc.value.__cause__, BackendNetworkError)
    assert sleeps == [0.25, 0.5]
    assert backend.rosters["o1"].member_ids == {"s1"}
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == frozenset()

    cached_roster = gateway.cache.roster("o1")
    cached_person = gateway.cache.person("s1")
    assert cached_roster is not None
    assert cached_person is not None
    assert cached_roster.member_ids == {"s1"}
    assert cached_person.enrollment_ids(RelationKind.ORCHESTRA) == frozenset()


def test_non_network_dependent_failure_is_not_retried() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    backend.update_failures.append(NotFoundError("student", "s1"))
    sleeps: list[float] = []

    with pytest.raises(PartialWriteError) as exc:
        make_gateway(backend, sleeps).add_member("o1", "s1")

    assert exc.value.attempts == 1
    assert sleeps == []


def test_authority_failure_leaves_both_sides_untouched() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    backend.roster_write_failures.append(BackendNetworkError("refused"))
    gateway = make_gateway(backend)

    with pytest.raises(BackendNetworkError):
        gateway.add_member("o1", "s1")

    assert backend.rosters["o1"].member_ids == frozenset()
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == frozenset()
    assert ("update_person", "s1") not in backend.calls
    cached = gateway.cache.roster("o1")
    assert cached is not None
    assert cached.member_ids == frozenset()


def test_remove_member_mirrors_add() -> None:
    backend = InMemoryBackend(
        persons=[make_student("s1", orchestra_ids={"o1", "o2"})],
        rosters=[make_group("o1", member_ids={"s1", "s2"})],
    )

    result = make_gateway(backend).remove_member("o1", "s1")

    assert result.changed
    assert backend.rosters["o1"].member_ids == {"s2"}
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == {"o2"}
    assert write_calls(backend) == [("remove_roster_member", "o1", "s1"), ("update_person", "s1")]


def test_remove_member_noop_when_absent_on_both_sides() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])

    result = make_gateway(backend).remove_member("o1", "s1")

    assert not result.changed
    assert write_calls(backend) == []


def test_remove_member_partial_write_expects_non_member() -> None:
    backend = InMemoryBackend(
        persons=[make_student("s1", orchestra_ids={"o1"})],
        rosters=[make_group("o1", member_ids={"s1"})],
    )
    backend.update_failures.extend(BackendNetworkError("down") for _ in range(3))

    with pytest.raises(PartialWriteError) as exc:
        make_gateway(backend).remove_member("o1", "s1")

    assert exc.value.drift.expected_member is False
    assert backend.rosters["o1"].member_ids == frozenset()
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == {"o1"}

    result = ReconciliationService(backend).reconcile("s1", RelationKind.ORCHESTRA)

    assert result.changed
    assert result.corrected_ids == frozenset()
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == frozenset()


def test_theory_lesson_relation() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_lesson("t1")])

    make_gateway(backend).add_member("t1", "s1", relation=RelationKind.THEORY_LESSON)

    assert backend.rosters["t1"].member_ids == {"s1"}
    assert backend.persons["s1"].enrollment_ids(RelationKind.THEORY_LESSON) == {"t1"}
    assert backend.persons["s1"].enrollment_ids(RelationKind.ORCHESTRA) == frozenset()


def test_cancel_before_writes_issues_nothing() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    scope = CancellationScope()
    assert scope.cancel()

    with pytest.raises(OperationCancelledError):
        make_gateway(backend).add_member("o1", "s1", cancel=scope)

    assert write_calls(backend) == []


def test_cancel_after_writes_is_refused() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    scope = CancellationScope()

    make_gateway(backend).add_member("o1", "s1", cancel=scope)

    assert scope.writes_started
    assert not scope.cancel()
    assert not scope.cancel_requested


def test_unexpected_authority_error_restores_cache() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    backend.roster_write_failures.append(ValueError("Expecting value"))
    gateway = make_gateway(backend)

    with pytest.raises(ValueError, match="Expecting value"):
        gateway.add_member("o1", "s1")

    cached_roster = gateway.cache.roster("o1")
    cached_person = gateway.cache.person("s1")
    assert cached_roster is not None
    assert cached_person is not None
    assert cached_roster.member_ids == frozenset()
    assert cached_person.enrollment_ids(RelationKind.ORCHESTRA) == frozenset()
    assert ("update_person", "s1") not in backend.calls


def test_unexpected_dependent_error_is_partial_write() -> None:
    backend = InMemoryBackend(persons=[make_student("s1")], rosters=[make_group("o1")])
    backend.update_failures.append(ValueError("Expecting value"))
    sleeps: list[float] = []
    gateway = make_gateway(backend, sleeps)

    with pytest.raises(PartialWriteError) as exc:
        gateway.add_member("o1", "s1")

    assert (exc.value.drift.roster_id, exc.value.drift.person_id) == ("o1", "s1")
    assert exc.value.attempts == 1
    assert isinstance(exc.value.__cause__, ValueError)
    assert sleeps == []
    cached_person = gateway.cache.person("s1")
    assert cached_person is not None
    assert cached_person.enrollment_ids(RelationKind.ORCHESTRA) == frozenset()
