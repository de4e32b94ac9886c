"""Cascade graphs: which collections a deletion walks, per root kind.

Graphs are configuration. A step either deletes records whose
``match_field`` references its parent (the root, or an earlier step), or
unlinks membership relations through the enrollment gateway.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from enrollsync.domain.deletion.plan import CascadeAction
from enrollsync.domain.model import EntityKind, RelationKind

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class CascadeStep:
    collection: str
    action: CascadeAction
    match_field: str | None = None
    parent: str | None = None
    relations: tuple[RelationKind, ...] = ()
    irreversible: bool = False
    documents: bool = False


@dataclass(frozen=True, slots=True)
class CascadeGraph:
    root_kind: EntityKind
    steps: tuple[CascadeStep, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for step in self.steps:
            if step.collection in seen:
                raise ValueError(f"Duplicate cascade collection {step.collection!r}")
            if step.parent is not None and step.parent not in seen:
                raise ValueError(
                    f"{step.collection!r} depends on {step.parent!r}, which is not walked before it"
                )
            if step.action is CascadeAction.DELETE and not step.match_field:
                raise ValueError(f"{step.collection!r} deletes records but has no match_field")
            if step.action is CascadeAction.UNLINK and not step.relations:
                raise ValueError(f"{step.collection!r} unlinks but names no relation")
            if step.action is CascadeAction.SERVER:
                raise ValueError("server-side collections come from the backend estimate")
            seen.add(step.collection)

    def depth(self, step: CascadeStep) -> int:
        """Distance from the root (direct references are depth 1)."""
        depth = 1
        parents = {s.collection: s.parent for s in self.steps}
        parent = step.parent
        while parent is not None:
            depth += 1
            parent = parents[parent]
        return depth


ROSTER_RELATIONS: Mapping[EntityKind, RelationKind] = {
    EntityKind.ORCHESTRA: RelationKind.ORCHESTRA,
    EntityKind.ENSEMBLE: RelationKind.ENSEMBLE,
    EntityKind.THEORY_LESSON: RelationKind.THEORY_LESSON,
}


def _group_graph(kind: EntityKind, relation: RelationKind) -> CascadeGraph:
    return CascadeGraph(
        root_kind=kind,
        steps=(
            CascadeStep("members", CascadeAction.UNLINK, relations=(relation,)),
            CascadeStep("rehearsals", CascadeAction.DELETE, match_field="groupId"),
            CascadeStep(
                "attendance",
                CascadeAction.DELETE,
                match_field="rehearsalId",
                parent="rehearsals",
            ),
        ),
    )


DEFAULT_GRAPHS: Mapping[EntityKind, CascadeGraph] = {
    EntityKind.STUDENT: CascadeGraph(
        root_kind=EntityKind.STUDENT,
        steps=(
            CascadeStep(
                "enrollments",
                CascadeAction.UNLINK,
                relations=(
                    RelationKind.ORCHESTRA,
                    RelationKind.ENSEMBLE,
                    RelationKind.THEORY_LESSON,
                ),
            ),
            CascadeStep("attendance", CascadeAction.DELETE, match_field="studentId"),
            CascadeStep(
                "documents",
                CascadeAction.DELETE,
                match_field="studentId",
                irreversible=True,
                documents=True,
            ),
        ),
    ),
    EntityKind.ORCHESTRA: _group_graph(EntityKind.ORCHESTRA, RelationKind.ORCHESTRA),
    EntityKind.ENSEMBLE: _group_graph(EntityKind.ENSEMBLE, RelationKind.ENSEMBLE),
    EntityKind.THEORY_LESSON: CascadeGraph(
        root_kind=EntityKind.THEORY_LESSON,
        steps=(
            CascadeStep("students", CascadeAction.UNLINK, relations=(RelationKind.THEORY_LESSON,)),
            CascadeStep("attendance", CascadeAction.DELETE, match_field="theoryLessonId"),
        ),
    ),
}
