"""Balanced strategy weighing cost and reliability ahead of speed."""

from __future__ import annotations

from bridge_router.domain.models import OptimizationMode, RankingWeights

from .base import FixedWeightStrategy


class BalancedStrategy(FixedWeightStrategy):
    """Even blend of every factor, leaning on cost and track record."""

    WEIGHTS = RankingWeights(cost=0.30, speed=0.25, reliability=0.30, liquidity=0.15)

    def __init__(self) -> None:
        super().__init__(OptimizationMode.BALANCED, self.WEIGHTS)
