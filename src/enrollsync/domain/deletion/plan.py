"""Value objects for cascade deletion: options, plans, snapshots, outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from enrollsync.domain.model import EntityKind, RelationKind
    from enrollsync.domain.ports import Record


class RiskTier(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {RiskTier.LOW: 0, RiskTier.MEDIUM: 1, RiskTier.HIGH: 2}


class CascadeAction(StrEnum):
    DELETE = "delete"  # records removed one by one
    UNLINK = "unlink"  # membership links removed through the gateway
    SERVER = "server"  # only known to the backend; removed with the root


@dataclass(frozen=True, slots=True)
class DeletionOptions:
    create_snapshot: bool = True
    skip_validation: bool = False
    delete_documents: bool = True
    notify_users: bool = False
    reason: str = "Manual deletion"

    def as_payload(self) -> dict[str, Any]:
        return {
            "createSnapshot": self.create_snapshot,
            "skipValidation": self.skip_validation,
            "deleteDocuments": self.delete_documents,
            "notifyUsers": self.notify_users,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True, order=True)
class MembershipLink:
    relation: RelationKind
    roster_id: str
    person_id: str

    def as_record(self) -> dict[str, str]:
        return {
            "relation": str(self.relation),
            "rosterId": self.roster_id,
            "personId": self.person_id,
        }


@dataclass(frozen=True, slots=True)
class AffectedCollection:
    name: str
    estimated_count: int
    action: CascadeAction
    irreversible: bool = False
    documents: bool = False
    depth: int = 1
    record_ids: frozenset[str] = frozenset()
    links: frozenset[MembershipLink] = frozenset()
    records: tuple[Record, ...] = field(default=(), repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class DeletionPlan:
    """Preview of a cascade. Never persisted; discarded after the decision."""

    root_kind: EntityKind
    root_id: str
    root_label: str
    affected_collections: tuple[AffectedCollection, ...]
    risk_tier: RiskTier
    warnings: tuple[str, ...] = ()
    blockers: tuple[str, ...] = ()
    notify_ids: frozenset[str] = frozenset()
    root_record: Record = field(default_factory=dict[str, Any], repr=False, compare=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC), compare=False)

    @property
    def can_proceed(self) -> bool:
        return not self.blockers

    @property
    def total_affected(self) -> int:
        return sum(collection.estimated_count for collection in self.affected_collections)

    def counts(self) -> dict[str, int]:
        return {c.name: c.estimated_count for c in self.affected_collections}

    def collection(self, name: str) -> AffectedCollection | None:
        return next((c for c in self.affected_collections if c.name == name), None)


@dataclass(frozen=True, slots=True, kw_only=True)
class DeletionSnapshot:
    """Full capture of what a cascade is about to remove, for manual restore."""

    id: str
    root_kind: EntityKind
    root_id: str
    reason: str
    root_record: Mapping[str, Any]
    collections: Mapping[str, tuple[Mapping[str, Any], ...]]
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def record_count(self) -> int:
        return sum(len(records) for records in self.collections.values())


@dataclass(slots=True)
class DeletionOutcome:
    root_id: str
    completed_collections: list[str] = field(default_factory=list[str])
    skipped_collections: list[str] = field(default_factory=list[str])
    deleted_counts: dict[str, int] = field(default_factory=dict[str, int])
    snapshot_id: str | None = None
    notified_ids: frozenset[str] = frozenset()
    notification_error: str | None = None


__all__ = [
    "AffectedCollection",
    "CascadeAction",
    "DeletionOptions",
    "DeletionOutcome",
    "DeletionPlan",
    "DeletionSnapshot",
    "MembershipLink",
    "RiskTier",
]
