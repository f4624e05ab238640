"""Weight strategy protocol mapping optimization modes to ranking weights."""

from __future__ import annotations

from typing import Protocol

from bridge_router.domain.models import OptimizationMode, RankingWeights


class IWeightStrategy(Protocol):
    """Supplies the fixed weight vector of one optimization mode."""

    def mode(self) -> OptimizationMode:
        """Optimization mode served by this strategy."""

    def weights(self) -> RankingWeights:
        """Return weights already normalized to sum to 1.0."""

    def name(self) -> str:
        """Stable identifier used for observability/analytics."""


class FixedWeightStrategy(IWeightStrategy):
    """Strategy backed by an explicit weight vector, e.g. loaded from config."""

    def __init__(self, mode: OptimizationMode, weights: RankingWeights) -> None:
        self._mode = mode
        self._weights = weights.normalized()

    def mode(self) -> OptimizationMode:
        return self._mode

    def weights(self) -> RankingWeights:
        return self._weights

    def name(self) -> str:
        return self._mode.value
