"""Speed-first ranking strategy."""

from __future__ import annotations

from bridge_router.domain.models import OptimizationMode, RankingWeights

from .base import FixedWeightStrategy


class FastestStrategy(FixedWeightStrategy):
    """Ranks purely on settlement time; the quickest route always comes first."""

    WEIGHTS = RankingWeights(cost=0.0, speed=1.0, reliability=0.0, liquidity=0.0)

    def __init__(self) -> None:
        super().__init__(OptimizationMode.FASTEST, self.WEIGHTS)
