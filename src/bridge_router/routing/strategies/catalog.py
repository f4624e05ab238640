"""Lookup of the weight strategy serving each optimization mode."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from bridge_router.domain.models import OptimizationMode, RankingWeights

from .balanced_strategy import BalancedStrategy
from .base import FixedWeightStrategy, IWeightStrategy
from .cost_strategy import LowestCostStrategy
from .speed_strategy import FastestStrategy


def default_strategies(
    overrides: Optional[Mapping[OptimizationMode, RankingWeights]] = None,
) -> Dict[OptimizationMode, IWeightStrategy]:
    """Built-in profiles, with configured weight vectors replacing them per mode."""

    strategies: Dict[OptimizationMode, IWeightStrategy] = {
        OptimizationMode.BALANCED: BalancedStrategy(),
        OptimizationMode.LOWEST_COST: LowestCostStrategy(),
        OptimizationMode.FASTEST: FastestStrategy(),
    }
    for mode, weights in (overrides or {}).items():
        strategies[mode] = FixedWeightStrategy(mode, weights)
    return strategies
