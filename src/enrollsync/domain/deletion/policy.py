"""Three-tier risk classification for deletion plans."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from enrollsync.config.enrollment import (
    DEFAULT_HIGH_RISK_THRESHOLD,
    DEFAULT_MEDIUM_RISK_THRESHOLD,
)
from enrollsync.domain.deletion.plan import RiskTier

if TYPE_CHECKING:
    from enrollsync.config.enrollment import DeletionConfig


@dataclass(frozen=True, slots=True)
class RiskPolicy:
    """Map affected-record totals to a risk tier.

    The tier never decreases as ``total`` grows for fixed flags.
    """

    medium_threshold: int = DEFAULT_MEDIUM_RISK_THRESHOLD
    high_threshold: int = DEFAULT_HIGH_RISK_THRESHOLD

    @classmethod
    def from_config(cls, config: DeletionConfig) -> RiskPolicy:
        return cls(medium_threshold=config.medium_threshold, high_threshold=config.high_threshold)

    def assess(
        self, total: int, *, irreversible: bool = False, cross_tenant: bool = False
    ) -> RiskTier:
        if cross_tenant or total >= self.high_threshold:
            return RiskTier.HIGH
        if irreversible or total >= self.medium_threshold:
            return RiskTier.MEDIUM
        return RiskTier.LOW
