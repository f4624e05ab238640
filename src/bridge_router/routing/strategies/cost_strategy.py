"""Cost-first ranking strategy."""

from __future__ import annotations

from bridge_router.domain.models import OptimizationMode, RankingWeights

from .base import FixedWeightStrategy


class LowestCostStrategy(FixedWeightStrategy):
    """Ranks purely on fee; the cheapest route always comes first."""

    WEIGHTS = RankingWeights(cost=1.0, speed=0.0, reliability=0.0, liquidity=0.0)

    def __init__(self) -> None:
        super().__init__(OptimizationMode.LOWEST_COST, self.WEIGHTS)
