"""Result types for reconciliation runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from enrollsync.domain.model import RelationKind


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    person_id: str
    relation: RelationKind
    synced_count: int
    corrected_ids: frozenset[str]
    previous_ids: frozenset[str]
    changed: bool

    @property
    def added_ids(self) -> frozenset[str]:
        return self.corrected_ids - self.previous_ids

    @property
    def removed_ids(self) -> frozenset[str]:
        return self.previous_ids - self.corrected_ids


@dataclass(frozen=True, slots=True)
class SweepFailure:
    person_id: str
    error: str


@dataclass(slots=True)
class SweepReport:
    """Outcome of a reconciliation sweep over every person for one relation."""

    relation: RelationKind
    dry_run: bool
    results: list[ReconciliationResult] = field(default_factory=list[ReconciliationResult])
    failures: list[SweepFailure] = field(default_factory=list[SweepFailure])
    orphaned_member_ids: dict[str, frozenset[str]] = field(
        default_factory=dict[str, frozenset[str]]
    )

    @property
    def drifted(self) -> list[ReconciliationResult]:
        return [result for result in self.results if result.changed]

    @property
    def inspected(self) -> int:
        return len(self.results) + len(self.failures)
