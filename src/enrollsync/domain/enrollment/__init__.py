"""Enrollment gateway and its supporting pieces."""

from __future__ import annotations

from .cache import EntityCache
from .cancellation import CancellationScope
from .commands import MembershipChange, MembershipCommand
from .gateway import EnrollmentGateway, EnrollmentResult

__all__ = [
    "CancellationScope",
    "EnrollmentGateway",
    "EnrollmentResult",
    "EntityCache",
    "MembershipChange",
    "MembershipCommand",
]
