"""Preview and execute cascade deletions.

Execution order is fixed: validate the plan against a fresh preview, write
the snapshot, delete leaf collections deepest first, unlink memberships
through the gateway, then delete the root on the backend. A failure part way
stops the cascade without rolling back; the snapshot is the recovery path.
"""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from enrollsync.config.enrollment import DeletionConfig
from enrollsync.domain.deletion.graph import DEFAULT_GRAPHS, ROSTER_RELATIONS
from enrollsync.domain.deletion.plan import (
    AffectedCollection,
    CascadeAction,
    DeletionOptions,
    DeletionOutcome,
    DeletionPlan,
    DeletionSnapshot,
    MembershipLink,
)
from enrollsync.domain.deletion.policy import RiskPolicy
from enrollsync.domain.enrollment.cancellation import CancellationScope
from enrollsync.domain.errors import (
    DeletionBlockedError,
    DeletionError,
    EnrollSyncError,
    PartialCascadeFailure,
    ValidationFailedError,
)
from enrollsync.domain.model import EntityKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from enrollsync.domain.deletion.graph import CascadeGraph, CascadeStep
    from enrollsync.domain.enrollment.gateway import EnrollmentGateway
    from enrollsync.domain.model import Person, Roster
    from enrollsync.domain.ports import ConservatoryBackend, Notifier, Record, SnapshotStore

log = getLogger(__name__)

PERSON_KINDS = frozenset({EntityKind.STUDENT})


class CascadeDeletionPlanner:
    def __init__(
        self,
        backend: ConservatoryBackend,
        gateway: EnrollmentGateway,
        *,
        snapshots: SnapshotStore | None = None,
        notifier: Notifier | None = None,
        config: DeletionConfig | None = None,
        graphs: Mapping[EntityKind, CascadeGraph] | None = None,
    ) -> None:
        self._backend = backend
        self._gateway = gateway
        self._snapshots = snapshots
        self._notifier = notifier
        self._config = config or DeletionConfig()
        self._policy = RiskPolicy.from_config(self._config)
        self._graphs = dict(graphs if graphs is not None else DEFAULT_GRAPHS)
        self._executing: set[str] = set()

    def is_executing(self, root_id: str) -> bool:
        return root_id in self._executing

    def preview(self, kind: EntityKind, root_id: str) -> DeletionPlan:
        """Walk the cascade graph for ``root_id`` without mutating anything."""
        plan = self._build_plan(kind, root_id)
        if self.is_executing(root_id):
            blocker = f"A deletion of {plan.root_label} ({root_id}) is already executing"
            return _with_blocker(plan, blocker)
        return plan

    def _build_plan(self, kind: EntityKind, root_id: str) -> DeletionPlan:
        graph = self._graphs.get(kind)
        if graph is None:
            raise DeletionError(f"No cascade graph configured for {kind}")

        root_record = self._backend.get_record(kind, root_id)
        person: Person | None = None
        roster: Roster | None = None
        if kind in PERSON_KINDS:
            person = self._backend.get_person(root_id)
            root_label = person.label
            notify_ids = person.teacher_ids
        else:
            roster = self._backend.get_roster(ROSTER_RELATIONS[kind], root_id)
            root_label = roster.label
            notify_ids = roster.member_ids | ({roster.teacher_id} if roster.teacher_id else set())

        collections: list[AffectedCollection] = []
        found_ids: dict[str, frozenset[str]] = {}
        warnings: list[str] = []
        for step in graph.steps:
            if step.action is CascadeAction.UNLINK:
                links, labels = self._walk_links(step, root_id, person, roster)
                collections.append(
                    AffectedCollection(
                        name=step.collection,
                        estimated_count=len(links),
                        action=CascadeAction.UNLINK,
                        links=links,
                    )
                )
                if labels:
                    warnings.append(
                        f"{root_label} will be removed from {len(labels)} {step.collection}: "
                        f"{', '.join(sorted(labels))}"
                    )
                continue

            parent_ids = (
                frozenset({root_id})
                if step.parent is None
                else found_ids.get(step.parent, frozenset())
            )
            records = (
                self._backend.find_references(
                    step.collection, field=step.match_field or "", ids=parent_ids
                )
                if parent_ids
                else []
            )
            record_ids = frozenset(str(record["_id"]) for record in records)
            found_ids[step.collection] = record_ids
            collections.append(
                AffectedCollection(
                    name=step.collection,
                    estimated_count=len(record_ids),
                    action=CascadeAction.DELETE,
                    irreversible=step.irreversible,
                    documents=step.documents,
                    depth=graph.depth(step),
                    record_ids=record_ids,
                    records=tuple(records),
                )
            )
            if step.irreversible and record_ids:
                warnings.append(
                    f"{len(record_ids)} {step.collection} record(s) of {root_label} "
                    "will be permanently deleted"
                )

        estimate = self._backend.preview_deletion(kind, root_id)
        known = {collection.name for collection in collections}
        for name, count in sorted(estimate.affected.items()):
            if name not in known and count > 0:
                collections.append(
                    AffectedCollection(
                        name=name, estimated_count=count, action=CascadeAction.SERVER
                    )
                )
        warnings.extend(estimate.warnings)
        blockers = list(estimate.blockers)
        if not estimate.can_proceed and not blockers:
            blockers.append(f"Backend refuses to delete {root_label} ({root_id})")

        root_tenant = root_record.get("tenantId")
        cross_tenant = _has_cross_tenant_records(collections, root_tenant)
        if cross_tenant:
            warnings.append(f"{root_label} is referenced by records of another tenant")

        irreversible = any(c.irreversible and c.estimated_count for c in collections)
        total = sum(c.estimated_count for c in collections)
        plan = DeletionPlan(
            root_kind=kind,
            root_id=root_id,
            root_label=root_label,
            affected_collections=tuple(collections),
            risk_tier=self._policy.assess(
                total, irreversible=irreversible, cross_tenant=cross_tenant
            ),
            warnings=tuple(warnings),
            blockers=tuple(blockers),
            notify_ids=frozenset(notify_ids),
            root_record=root_record,
        )
        log.info(
            f"Deletion preview for {kind} {root_id}: {plan.counts()} "
            f"risk={plan.risk_tier} can_proceed={plan.can_proceed}"
        )
        return plan

    def _walk_links(
        self,
        step: CascadeStep,
        root_id: str,
        person: Person | None,
        roster: Roster | None,
    ) -> tuple[frozenset[MembershipLink], set[str]]:
        links: set[MembershipLink] = set()
        labels: set[str] = set()
        if person is not None:
            for relation in step.relations:
                rosters = self._backend.list_rosters(relation)
                by_id = {r.id: r for r in rosters}
                linked = {r.id for r in rosters if root_id in r.member_ids}
                linked |= person.enrollment_ids(relation) & set(by_id)
                for roster_id in linked:
                    links.add(MembershipLink(relation, roster_id, root_id))
                    labels.add(by_id[roster_id].label)
        elif roster is not None and roster.relation in step.relations:
            relation = roster.relation
            persons = self._backend.list_persons()
            by_person = {p.id: p for p in persons}
            enrolled = {p.id for p in persons if roster.id in p.enrollment_ids(relation)}
            for person_id in (roster.member_ids & set(by_person)) | enrolled:
                links.add(MembershipLink(relation, root_id, person_id))
                labels.add(by_person[person_id].label)
        return frozenset(links), labels

    def execute(
        self,
        plan: DeletionPlan,
        options: DeletionOptions | None = None,
        *,
        cancel: CancellationScope | None = None,
    ) -> DeletionOutcome:
        options = options or DeletionOptions()
        cancel = cancel or CancellationScope()
        root_id = plan.root_id
        if self.is_executing(root_id):
            raise DeletionBlockedError(root_id, [f"A deletion of {root_id} is already executing"])
        if not plan.can_proceed:
            raise DeletionBlockedError(root_id, plan.blockers)

        self._executing.add(root_id)
        try:
            if not options.skip_validation:
                plan = self._validate(plan)
            cancel.begin_writes(f"delete {plan.root_kind} {root_id}")
            outcome = DeletionOutcome(root_id=root_id)
            if options.create_snapshot and not options.skip_validation:
                outcome.snapshot_id = self._take_snapshot(plan, options)
            self._run_cascade(plan, options, outcome)
        finally:
            self._executing.discard(root_id)

        if options.notify_users:
            self._notify(plan, options, outcome)
        return outcome

    def check_approved(self, plan: DeletionPlan, approved_counts: Mapping[str, int]) -> None:
        """Raise :class:`ValidationFailedError` unless ``plan`` matches the approved counts.

        Collections missing from ``approved_counts`` are taken as approved at zero.
        """
        differences = _count_differences(
            approved_counts, plan.counts(), self._config.count_tolerance
        )
        if differences:
            log.warning("Deletion plan for %s differs from approval: %s", plan.root_id, differences)
            raise ValidationFailedError(plan.root_id, differences)

    def _validate(self, plan: DeletionPlan) -> DeletionPlan:
        fresh = self._build_plan(plan.root_kind, plan.root_id)
        differences = _count_differences(
            plan.counts(), fresh.counts(), self._config.count_tolerance
        )
        if differences:
            log.warning("Deletion plan for %s is stale: %s", plan.root_id, differences)
            raise ValidationFailedError(plan.root_id, differences)
        if not fresh.can_proceed:
            raise DeletionBlockedError(plan.root_id, fresh.blockers)
        return fresh

    def _take_snapshot(self, plan: DeletionPlan, options: DeletionOptions) -> str:
        if self._snapshots is None:
            raise DeletionError(
                f"Snapshot requested for {plan.root_id} but no snapshot store is configured"
            )
        collections: dict[str, tuple[Record, ...]] = {}
        for collection in plan.affected_collections:
            if collection.action is CascadeAction.DELETE:
                collections[collection.name] = collection.records
            elif collection.action is CascadeAction.UNLINK:
                collections[collection.name] = tuple(
                    link.as_record() for link in sorted(collection.links)
                )
        snapshot = DeletionSnapshot(
            id=str(uuid4()),
            root_kind=plan.root_kind,
            root_id=plan.root_id,
            reason=options.reason,
            root_record=plan.root_record,
            collections=collections,
        )
        snapshot_id = self._snapshots.save(snapshot)
        log.info(
            "Snapshot %s captured %d record(s) for %s %s",
            snapshot_id,
            snapshot.record_count,
            plan.root_kind,
            plan.root_id,
        )
        return snapshot_id

    def _run_cascade(
        self, plan: DeletionPlan, options: DeletionOptions, outcome: DeletionOutcome
    ) -> None:
        deletes = sorted(
            (c for c in plan.affected_collections if c.action is CascadeAction.DELETE),
            key=lambda c: -c.depth,
        )
        unlinks = [c for c in plan.affected_collections if c.action is CascadeAction.UNLINK]
        server = [c.name for c in plan.affected_collections if c.action is CascadeAction.SERVER]
        root_step = str(plan.root_kind)
        order = [c.name for c in deletes] + [c.name for c in unlinks] + [root_step]

        def fail(name: str, exc: Exception | None, reason: str) -> PartialCascadeFailure:
            pending = order[order.index(name) + 1 :]
            return PartialCascadeFailure(
                plan.root_id,
                completed=outcome.completed_collections,
                pending=pending,
                failed_collection=name,
                snapshot_id=outcome.snapshot_id,
                reason=reason if exc is None else f"{reason}: {exc}",
            )

        for collection in deletes:
            if collection.documents and not options.delete_documents:
                log.info("Keeping %s of %s (delete_documents=False)", collection.name, plan.root_id)
                outcome.skipped_collections.append(collection.name)
                continue
            try:
                for record_id in sorted(collection.record_ids):
                    self._backend.delete_record(collection.name, record_id)
            except EnrollSyncError as exc:
                log.exception("Cascade for %s failed in %s", plan.root_id, collection.name)
                raise fail(collection.name, exc, "record deletion failed") from exc
            self._complete(outcome, collection.name, len(collection.record_ids))

        for collection in unlinks:
            try:
                for link in sorted(collection.links):
                    self._gateway.remove_member(
                        link.roster_id, link.person_id, relation=link.relation
                    )
            except EnrollSyncError as exc:
                log.exception("Cascade for %s failed unlinking %s", plan.root_id, collection.name)
                raise fail(collection.name, exc, "membership removal failed") from exc
            self._complete(outcome, collection.name, len(collection.links))

        try:
            result = self._backend.execute_deletion(plan.root_kind, plan.root_id, options)
        except EnrollSyncError as exc:
            log.exception("Root deletion of %s failed", plan.root_id)
            raise fail(root_step, exc, "root deletion failed") from exc
        if not result.completed:
            reason = f"backend reported an incomplete deletion {dict(result.affected)}"
            raise fail(root_step, None, reason)
        for name in server:
            outcome.deleted_counts[name] = result.affected.get(name, 0)
        self._complete(outcome, root_step, 1)
        if plan.root_kind in PERSON_KINDS:
            self._gateway.cache.discard_person(plan.root_id)
        else:
            self._gateway.cache.discard_roster(plan.root_id)

    @staticmethod
    def _complete(outcome: DeletionOutcome, name: str, count: int) -> None:
        outcome.completed_collections.append(name)
        outcome.deleted_counts[name] = count
        log.info("Cascade step %s done for %s (%d)", name, outcome.root_id, count)

    def _notify(
        self, plan: DeletionPlan, options: DeletionOptions, outcome: DeletionOutcome
    ) -> None:
        recipients = plan.notify_ids
        if not recipients:
            return
        if self._notifier is None:
            log.warning("notify_users requested for %s but no notifier is configured", plan.root_id)
            outcome.notification_error = "no notifier configured"
            return
        try:
            self._notifier.notify(
                recipients,
                subject=f"{plan.root_label} was deleted",
                message=f"{plan.root_kind} {plan.root_label} was deleted: {options.reason}",
            )
        except EnrollSyncError as exc:
            log.exception(
                "Notifying %d recipient(s) about %s failed", len(recipients), plan.root_id
            )
            outcome.notification_error = str(exc)
            return
        outcome.notified_ids = recipients


def _with_blocker(plan: DeletionPlan, blocker: str) -> DeletionPlan:
    return replace(plan, blockers=(*plan.blockers, blocker))


def _has_cross_tenant_records(collections: list[AffectedCollection], root_tenant: object) -> bool:
    if root_tenant is None:
        return False
    return any(
        record.get("tenantId") not in (None, root_tenant)
        for collection in collections
        for record in collection.records
    )


def _count_differences(
    before: Mapping[str, int], after: Mapping[str, int], tolerance: int
) -> dict[str, tuple[int, int]]:
    return {
        name: (before.get(name, 0), after.get(name, 0))
        for name in before.keys() | after.keys()
        if abs(before.get(name, 0) - after.get(name, 0)) > tolerance
    }
