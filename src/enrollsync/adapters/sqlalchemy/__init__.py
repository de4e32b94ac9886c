"""SQLAlchemy adapter package for enrollsync."""

from __future__ import annotations

from .snapshots import SqlAlchemySnapshotStore, StartupError, is_started, shutdown, startup
from .tables import create_all_tables, deletion_snapshot_table, metadata

__all__ = [
    "SqlAlchemySnapshotStore",
    "StartupError",
    "create_all_tables",
    "deletion_snapshot_table",
    "is_started",
    "metadata",
    "shutdown",
    "startup",
]
