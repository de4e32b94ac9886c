"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from enrollsync.adapters.conservatory import HttpConservatoryBackend
from enrollsync.adapters.sqlalchemy import SqlAlchemySnapshotStore, is_started, startup
from enrollsync.config import get_backend_config, get_deletion_config, get_enrollment_config
from enrollsync.domain.deletion import CascadeDeletionPlanner, DeletionOptions, DeletionWorkflow
from enrollsync.domain.enrollment import EnrollmentGateway, EntityCache
from enrollsync.domain.reconciliation import ReconciliationService

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from enrollsync.domain.deletion import DeletionOutcome, DeletionPlan, DeletionSnapshot
    from enrollsync.domain.enrollment import EnrollmentResult
    from enrollsync.domain.model import EntityKind, RelationKind
    from enrollsync.domain.ports import ConservatoryBackend, Notifier, SnapshotStore
    from enrollsync.domain.reconciliation import ReconciliationResult, SweepReport

log = getLogger(__name__)


@dataclass(slots=True)
class Services:
    """Domain services wired to one backend and one shared cache."""

    backend: ConservatoryBackend
    cache: EntityCache
    gateway: EnrollmentGateway
    reconciliation: ReconciliationService
    planner: CascadeDeletionPlanner


def build_services(
    *,
    backend: ConservatoryBackend | None = None,
    snapshots: SnapshotStore | None = None,
    notifier: Notifier | None = None,
) -> Services:
    """Wire the domain services, defaulting to the HTTP backend and SQLite snapshots."""

    if backend is None:
        http_backend = HttpConservatoryBackend(config=get_backend_config())
        backend = http_backend
        notifier = notifier or http_backend
    if snapshots is None:
        if not is_started():
            startup()
        snapshots = SqlAlchemySnapshotStore()

    cache = EntityCache()
    gateway = EnrollmentGateway(backend, cache=cache, config=get_enrollment_config())
    return Services(
        backend=backend,
        cache=cache,
        gateway=gateway,
        reconciliation=ReconciliationService(backend, cache=cache),
        planner=CascadeDeletionPlanner(
            backend,
            gateway,
            snapshots=snapshots,
            notifier=notifier,
            config=get_deletion_config(),
        ),
    )


def enroll_member(
    roster_id: str,
    person_id: str,
    relation: RelationKind,
    *,
    override_conflict: bool = False,
    services: Services | None = None,
) -> EnrollmentResult:
    services = services or build_services()
    result = services.gateway.add_member(
        roster_id, person_id, relation=relation, override_conflict=override_conflict
    )
    log.info("Enroll %s in %s: changed=%s", person_id, roster_id, result.changed)
    return result


def unenroll_member(
    roster_id: str,
    person_id: str,
    relation: RelationKind,
    *,
    services: Services | None = None,
) -> EnrollmentResult:
    services = services or build_services()
    result = services.gateway.remove_member(roster_id, person_id, relation=relation)
    log.info("Unenroll %s from %s: changed=%s", person_id, roster_id, result.changed)
    return result


def reconcile_persons(
    person_ids: Iterable[str],
    relation: RelationKind,
    *,
    services: Services | None = None,
) -> list[ReconciliationResult]:
    """Manual reconciliation trigger for one or more persons."""

    services = services or build_services()
    ids = list(person_ids)
    if len(ids) == 1:
        results = [services.reconciliation.reconcile(ids[0], relation)]
    else:
        results = services.reconciliation.reconcile_many(ids, relation)
    for result in results:
        log.info(
            "Reconciled %s (%s): corrected=%s changed=%s inspected=%d",
            result.person_id,
            relation,
            sorted(result.corrected_ids),
            result.changed,
            result.synced_count,
        )
    return results


def sweep_relation(
    relation: RelationKind,
    *,
    dry_run: bool = False,
    services: Services | None = None,
) -> SweepReport:
    services = services or build_services()
    return services.reconciliation.sweep(relation, dry_run=dry_run)


def preview_deletion(
    kind: EntityKind,
    root_id: str,
    *,
    services: Services | None = None,
) -> DeletionPlan:
    services = services or build_services()
    return services.planner.preview(kind, root_id)


def delete_entity(
    kind: EntityKind,
    root_id: str,
    *,
    options: DeletionOptions | None = None,
    approved_counts: Mapping[str, int] | None = None,
    services: Services | None = None,
) -> DeletionOutcome:
    """Preview, confirm and execute a cascade deletion in one go.

    ``approved_counts`` are the per-collection counts of the plan the operator
    agreed to; the deletion stops with :class:`ValidationFailedError` when the
    fresh preview no longer matches them.
    """

    services = services or build_services()
    workflow = DeletionWorkflow(services.planner, kind, root_id)
    plan = workflow.request_preview()
    log.info(
        f"Deleting {kind} {plan.root_label} ({root_id}): risk={plan.risk_tier}, "
        f"affected={plan.counts()}"
    )
    workflow.confirm(options or DeletionOptions(), approved_counts=approved_counts)
    outcome = workflow.execute()
    log.info(
        f"Deleted {kind} {root_id}: {outcome.deleted_counts}, snapshot={outcome.snapshot_id}"
    )
    return outcome


def load_snapshot(snapshot_id: str, *, snapshots: SnapshotStore | None = None) -> DeletionSnapshot:
    if snapshots is None:
        if not is_started():
            startup()
        snapshots = SqlAlchemySnapshotStore()
    return snapshots.load(snapshot_id)
