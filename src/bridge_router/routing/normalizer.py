"""Batch min-max normalization of competing route factors onto 0-100."""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence

from bridge_router.domain.interfaces import IScoreNormalizer
from bridge_router.domain.models import NormalizedScores, RouteQuote


class Direction(str, Enum):
    ASCENDING = "ascending"  # higher raw value scores higher
    DESCENDING = "descending"  # lower raw value scores higher


class ScoreNormalizer(IScoreNormalizer):
    """Rescales each factor relative to the current result set only."""

    def normalize(self, values: Sequence[float], direction: Direction) -> List[float]:
        if not values:
            return []
        low = min(values)
        high = max(values)
        if high == low:
            return [100.0 for _ in values]
        span = high - low
        if direction is Direction.ASCENDING:
            return [_clamp(100 * (value - low) / span) for value in values]
        return [_clamp(100 * (high - value) / span) for value in values]

    def normalize_reliability(
        self, scores: Sequence[float], failure_rates: Sequence[float]
    ) -> List[float]:
        if len(scores) != len(failure_rates):
            raise ValueError("scores and failure_rates must be the same length")
        combined = [
            score * (1 - _clamp(rate, 0.0, 1.0))
            for score, rate in zip(scores, failure_rates)
        ]
        return self.normalize(combined, Direction.ASCENDING)

    def normalize_batch(self, routes: Sequence[RouteQuote]) -> List[NormalizedScores]:
        cost = self.normalize([r.total_fee_usd for r in routes], Direction.DESCENDING)
        speed = self.normalize(
            [r.estimated_time_seconds for r in routes], Direction.DESCENDING
        )
        reliability = self.normalize_reliability(
            [r.reliability_score for r in routes], [r.failure_rate for r in routes]
        )
        liquidity = self.normalize([r.liquidity_usd for r in routes], Direction.ASCENDING)
        return [
            NormalizedScores(
                cost_score=cost[i],
                speed_score=speed[i],
                reliability_score=reliability[i],
                liquidity_score=liquidity[i],
            )
            for i in range(len(routes))
        ]


def _clamp(value: float, minimum: float = 0.0, maximum: float = 100.0) -> float:
    return max(minimum, min(value, maximum))
