"""Cascade deletion: preview, risk, execution and the per-attempt workflow."""

from __future__ import annotations

from .graph import DEFAULT_GRAPHS, CascadeGraph, CascadeStep
from .plan import (
    AffectedCollection,
    CascadeAction,
    DeletionOptions,
    DeletionOutcome,
    DeletionPlan,
    DeletionSnapshot,
    MembershipLink,
    RiskTier,
)
from .planner import CascadeDeletionPlanner
from .policy import RiskPolicy
from .workflow import DeletionWorkflow, WorkflowState

__all__ = [
    "DEFAULT_GRAPHS",
    "AffectedCollection",
    "CascadeAction",
    "CascadeDeletionPlanner",
    "CascadeGraph",
    "CascadeStep",
    "DeletionOptions",
    "DeletionOutcome",
    "DeletionPlan",
    "DeletionSnapshot",
    "DeletionWorkflow",
    "MembershipLink",
    "RiskPolicy",
    "RiskTier",
    "WorkflowState",
]
