"""Weighted composite scoring and ordinal ranking of normalized quotes."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from bridge_router.domain.interfaces import IRanker
from bridge_router.domain.models import (
    NormalizedScores,
    RankedQuote,
    RankingWeights,
    RawQuote,
    ScoredQuote,
)


class CompositeRanker(IRanker):
    """Combines factor scores into one 0-100 number and orders routes by it.

    Sorting is stable, so routes with equal composite scores keep the order in
    which providers were queried. Failed quotes are never scored; they follow
    the ranked entries so callers can still surface the failure reasons.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def composite_score(
        self, scores: NormalizedScores, weights: RankingWeights
    ) -> float:
        resolved = weights.normalized()
        raw = (
            scores.cost_score * resolved.cost
            + scores.speed_score * resolved.speed
            + scores.reliability_score * resolved.reliability
            + scores.liquidity_score * resolved.liquidity
        )
        return _clamp(round(raw, 2))

    def rank(
        self,
        scored_quotes: Sequence[ScoredQuote],
        weights: RankingWeights,
        failed: Sequence[RawQuote] = (),
    ) -> List[RankedQuote]:
        resolved = weights.normalized()
        self._logger.debug(
            "ranking_quotes",
            extra={"count": len(scored_quotes), "weights": resolved.as_dict()},
        )

        composites = [
            (scored, self.composite_score(scored.scores, resolved))
            for scored in scored_quotes
        ]
        composites.sort(key=lambda item: item[1], reverse=True)

        ranked = [
            RankedQuote(
                provider_id=scored.route.provider_id,
                provider_name=scored.route.provider_name,
                route=scored.route,
                scores=scored.scores,
                composite_score=score,
                rank=position,
            )
            for position, (scored, score) in enumerate(composites, start=1)
        ]
        ranked.extend(self._failed_entry(quote) for quote in failed)
        return ranked

    @staticmethod
    def _failed_entry(quote: RawQuote) -> RankedQuote:
        return RankedQuote(
            provider_id=quote.provider_id,
            provider_name=quote.provider_name,
            supported=False,
            error=quote.error or "Unknown error",
            error_kind=quote.error_kind,
        )


def _clamp(value: float, minimum: float = 0.0, maximum: float = 100.0) -> float:
    return max(minimum, min(value, maximum))
