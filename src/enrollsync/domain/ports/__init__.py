"""Domain port definitions for adapters."""

from __future__ import annotations

from .backend import ConservatoryBackend, Record, ServerDeletionEstimate, ServerDeletionResult
from .notifications import Notifier
from .snapshots import SnapshotStore

__all__ = [
    "ConservatoryBackend",
    "Notifier",
    "Record",
    "ServerDeletionEstimate",
    "ServerDeletionResult",
    "SnapshotStore",
]
