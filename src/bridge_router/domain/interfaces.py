"""Domain-level interfaces defining contracts for routing collaborators."""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from .models import (
    NormalizedScores,
    ProviderQuote,
    QuoteRequest,
    RankedQuote,
    RankingFactor,
    RankingWeights,
    RawQuote,
    RouteKey,
    RouteQuote,
    ScoredQuote,
    SlippageEstimate,
)


class IBridgeAdapter(Protocol):
    """Contract every bridge provider adapter must satisfy."""

    def supports_route(
        self, source_chain: str, destination_chain: str, token: str
    ) -> bool:
        """Return True when the adapter can quote this chain pair and token."""

    async def get_quote(self, request: QuoteRequest) -> ProviderQuote:
        """Fetch a quote; raise a ProviderError (or anything) on failure."""


class ILiquiditySource(Protocol):
    """Looks up pool TVL for a (token, chain) pair."""

    def pool_tvl(self, token: str, chain: str) -> Optional[float]:
        """Return pool TVL in USD, or None when no data exists."""


class ISlippageEstimator(Protocol):
    def estimate(
        self,
        quote: RawQuote,
        source_token: str,
        source_chain: str,
        amount_usd: float,
    ) -> SlippageEstimate:
        """Estimate price impact for one quote. Must never raise."""

    def estimate_batch(
        self,
        quotes: Sequence[RawQuote],
        source_token: str,
        source_chain: str,
        amount_usd: float,
    ) -> Mapping[str, SlippageEstimate]:
        """Estimate every quote of a batch, keyed by provider id."""


class IScoreNormalizer(Protocol):
    def normalize_batch(self, routes: Sequence[RouteQuote]) -> list[NormalizedScores]:
        """Rescale every factor across the supplied batch onto 0-100."""


class IRanker(Protocol):
    def rank(
        self,
        scored_quotes: Sequence[ScoredQuote],
        weights: RankingWeights,
        failed: Sequence[RawQuote] = (),
    ) -> list[RankedQuote]:
        """Return ranked successes followed by failed entries."""


class IReliabilityFactorSource(Protocol):
    """Supplies historical reliability inputs to the ranking pipeline."""

    def get_ranking_factor(
        self,
        route: RouteKey,
        threshold: Optional[float] = None,
        ignore_reliability: bool = False,
    ) -> RankingFactor:
        """Return the route's reliability score and penalty-adjusted score."""

    def failure_rates(self, routes: Sequence[RouteKey]) -> Mapping[RouteKey, float]:
        """Return the historical failure rate (0-1) of each route."""
