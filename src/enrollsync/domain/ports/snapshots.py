"""Port for persisting pre-delete snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from enrollsync.domain.deletion.plan import DeletionSnapshot


@runtime_checkable
class SnapshotStore(Protocol):
    def save(self, snapshot: DeletionSnapshot) -> str:
        """Persist ``snapshot`` and return its id. Must be durable on return."""
        ...

    def load(self, snapshot_id: str) -> DeletionSnapshot: ...


__all__ = ["SnapshotStore"]
