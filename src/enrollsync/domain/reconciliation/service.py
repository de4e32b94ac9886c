"""Repair drift by rewriting dependent arrays from the authority rosters."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from enrollsync.domain.errors import EnrollSyncError
from enrollsync.domain.reconciliation.contracts import (
    ReconciliationResult,
    SweepFailure,
    SweepReport,
)
from enrollsync.domain.reconciliation.drift import expected_enrollments, orphaned_members

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from enrollsync.domain.enrollment.cache import EntityCache
    from enrollsync.domain.model import Person, RelationKind, Roster
    from enrollsync.domain.ports import ConservatoryBackend

log = getLogger(__name__)


class ReconciliationService:
    """Treat roster arrays as ground truth and rewrite persons to match.

    Running :meth:`reconcile` twice with no mutation in between reports the
    same ``corrected_ids`` and writes nothing the second time.
    """

    def __init__(self, backend: ConservatoryBackend, *, cache: EntityCache | None = None) -> None:
        self._backend = backend
        self._cache = cache

    def reconcile(self, person_id: str, relation: RelationKind) -> ReconciliationResult:
        rosters = self._backend.list_rosters(relation)
        person = self._backend.get_person(person_id)
        return self._reconcile_person(person, relation, rosters, dry_run=False)

    def reconcile_many(
        self, person_ids: Iterable[str], relation: RelationKind
    ) -> list[ReconciliationResult]:
        """Reconcile several persons against one fetch of the authority rosters."""
        rosters = self._backend.list_rosters(relation)
        persons = self._backend.get_persons(person_ids)
        return [
            self._reconcile_person(person, relation, rosters, dry_run=False) for person in persons
        ]

    def sweep(
        self,
        relation: RelationKind,
        *,
        dry_run: bool = False,
    ) -> SweepReport:
        """Reconcile every student; failures are collected, not raised."""
        rosters = self._backend.list_rosters(relation)
        persons = self._backend.list_persons()
        report = SweepReport(relation=relation, dry_run=dry_run)
        report.orphaned_member_ids = orphaned_members(
            rosters, frozenset(person.id for person in persons)
        )
        for roster_id, member_ids in report.orphaned_member_ids.items():
            log.warning(
                "%s lists member(s) with no person record: %s",
                roster_id,
                ", ".join(sorted(member_ids)),
            )

        for person in persons:
            try:
                result = self._reconcile_person(person, relation, rosters, dry_run=dry_run)
            except EnrollSyncError as exc:
                log.warning("Reconciling %s (%s) failed: %s", person.id, relation, exc)
                report.failures.append(SweepFailure(person_id=person.id, error=str(exc)))
                continue
            report.results.append(result)

        log.info(
            f"Sweep over {relation}: {len(persons)} persons, {len(report.drifted)} drifted, "
            f"{len(report.failures)} failed{' (dry run)' if dry_run else ''}"
        )
        return report

    def _reconcile_person(
        self,
        person: Person,
        relation: RelationKind,
        rosters: Sequence[Roster],
        *,
        dry_run: bool,
    ) -> ReconciliationResult:
        correct = expected_enrollments(person.id, rosters)
        current = person.enrollment_ids(relation)
        changed = correct != current
        if changed:
            log.info(
                "Drift on %s.enrollments.%s: has %s, authority says %s",
                person.id,
                relation.enrollment_field,
                sorted(current),
                sorted(correct),
            )
            if not dry_run:
                updated = self._backend.update_person(person.id, enrollments={relation: correct})
                if self._cache is not None:
                    self._cache.put_person(updated)
        return ReconciliationResult(
            person_id=person.id,
            relation=relation,
            synced_count=len(rosters),
            corrected_ids=correct,
            previous_ids=current,
            changed=changed,
        )
