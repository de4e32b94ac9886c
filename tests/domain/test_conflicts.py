from __future__ import annotations

from datetime import date, time

from enrollsync.domain.conflicts import (
    check_group_conflict,
    find_group_conflicts,
    find_schedule_conflicts,
    has_schedule_conflict,
)
from enrollsync.domain.model import ConflictKind, ConflictSeverity, Rehearsal, Weekday
from tests.helpers.conservatory import block

DAY = date(2025, 3, 2)


def make_rehearsal(
    group_id: str,
    start: str = "16:00",
    end: str = "18:00",
    *,
    on: date = DAY,
    location: str | None = None,
    conductor_id: str | None = None,
    member_ids: frozenset[str] = frozenset(),
) -> Rehearsal:
    return Rehearsal(
        id=f"r-{group_id}",
        group_id=group_id,
        on=on,
        start=time.fromisoformat(start),
        end=time.fromisoformat(end),
        location=location,
        conductor_id=conductor_id,
        member_ids=member_ids,
        group_name=group_id.title(),
    )


def test_schedule_conflict_requires_same_day_overlap() -> None:
    candidate = block(Weekday.MONDAY, "14:00", "15:00")

    assert has_schedule_conflict(candidate, [block(Weekday.MONDAY, "14:30", "15:30")])
    assert not has_schedule_conflict(candidate, [block(Weekday.MONDAY, "15:00", "16:00")])
    assert not has_schedule_conflict(candidate, [block(Weekday.TUESDAY, "14:00", "15:00")])
    assert not has_schedule_conflict(candidate, [])


def test_one_minute_overlap_at_the_boundary_conflicts() -> None:
    touching = block(Weekday.MONDAY, "14:00", "15:00")
    overlapping = block(Weekday.MONDAY, "14:00", "15:01")
    existing = block(Weekday.MONDAY, "15:00", "16:00")

    assert not has_schedule_conflict(touching, [existing])
    assert not has_schedule_conflict(existing, [touching])
    assert has_schedule_conflict(overlapping, [existing])
    assert has_schedule_conflict(existing, [overlapping])


def test_slot_does_not_conflict_with_itself() -> None:
    candidate = block(Weekday.MONDAY, "14:00", "15:00")

    assert not has_schedule_conflict(candidate, [candidate])


def test_find_schedule_conflicts_pairs() -> None:
    rehearsal = block(Weekday.WEDNESDAY, "17:00", "19:00")
    lesson = block(Weekday.WEDNESDAY, "18:00", "18:45")
    other = block(Weekday.THURSDAY, "18:00", "18:45")

    assert find_schedule_conflicts([rehearsal], [lesson, other]) == [(rehearsal, lesson)]


def test_location_beats_every_other_kind() -> None:
    first = make_rehearsal(
        "strings", location="Hall A", conductor_id="t1", member_ids=frozenset({"s1"})
    )
    second = make_rehearsal(
        "winds",
        "17:00",
        "19:00",
        location="Hall A",
        conductor_id="t1",
        member_ids=frozenset({"s1"}),
    )

    conflict = check_group_conflict(first, second)

    assert conflict.has_conflict
    assert conflict.kind is ConflictKind.LOCATION
    assert conflict.severity is ConflictSeverity.CRITICAL


def test_conductor_then_members_then_time() -> None:
    conductor = check_group_conflict(
        make_rehearsal("a", location="Hall A", conductor_id="t1"),
        make_rehearsal("b", location="Hall B", conductor_id="t1"),
    )
    members = check_group_conflict(
        make_rehearsal("a", member_ids=frozenset({"s1", "s2"})),
        make_rehearsal("b", member_ids=frozenset({"s2", "s3"})),
    )
    plain = check_group_conflict(make_rehearsal("a"), make_rehearsal("b"))

    assert conductor.kind is ConflictKind.CONDUCTOR
    assert conductor.severity is ConflictSeverity.CRITICAL
    assert members.kind is ConflictKind.MEMBERS
    assert members.severity is ConflictSeverity.WARNING
    assert members.shared_member_ids == {"s2"}
    assert plain.kind is ConflictKind.TIME
    assert plain.severity is ConflictSeverity.WARNING


def test_missing_locations_are_not_a_shared_location() -> None:
    conflict = check_group_conflict(make_rehearsal("a"), make_rehearsal("b"))

    assert conflict.kind is ConflictKind.TIME


def test_no_conflict_cases() -> None:
    assert not check_group_conflict(make_rehearsal("a"), make_rehearsal("a")).has_conflict
    assert not check_group_conflict(
        make_rehearsal("a", location="Hall A"),
        make_rehearsal("b", location="Hall A", on=date(2025, 3, 3)),
    ).has_conflict
    assert not check_group_conflict(
        make_rehearsal("a", "16:00", "18:00"), make_rehearsal("b", "18:00", "19:00")
    ).has_conflict


def test_group_conflict_is_symmetric() -> None:
    first = make_rehearsal("a", conductor_id="t1", member_ids=frozenset({"s1"}))
    second = make_rehearsal("b", "17:30", "18:30", conductor_id="t1")

    forward = check_group_conflict(first, second)
    backward = check_group_conflict(second, first)

    assert (forward.has_conflict, forward.kind) == (backward.has_conflict, backward.kind)


def test_find_group_conflicts_checks_all_pairs() -> None:
    rehearsals = [
        make_rehearsal("a", "16:00", "17:00"),
        make_rehearsal("b", "16:30", "17:30"),
        make_rehearsal("c", "17:00", "18:00"),
    ]

    found = find_group_conflicts(rehearsals)

    assert [(first.group_id, second.group_id) for first, second, _ in found] == [
        ("a", "b"),
        ("b", "c"),
    ]
