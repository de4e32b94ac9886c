"""Authority-to-dependent drift detection and repair."""

from __future__ import annotations

from .contracts import ReconciliationResult, SweepFailure, SweepReport
from .drift import expected_enrollments, orphaned_members
from .service import ReconciliationService

__all__ = [
    "ReconciliationResult",
    "ReconciliationService",
    "SweepFailure",
    "SweepReport",
    "expected_enrollments",
    "orphaned_members",
]
