"""Route aggregation engine coordinating collection, scoring and ranking."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Dict, Mapping, Optional, Sequence, Tuple

from bridge_router.domain.exceptions import (
    AllProvidersFailedError,
    ReliabilityError,
    RouteNotSupportedError,
)
from bridge_router.domain.interfaces import (
    ILiquiditySource,
    IRanker,
    IReliabilityFactorSource,
    IScoreNormalizer,
    ISlippageEstimator,
)
from bridge_router.domain.models import (
    OptimizationMode,
    QuoteRequest,
    QuoteResponse,
    RawQuote,
    RouteKey,
    RouteQuote,
    ScoredQuote,
)
from bridge_router.providers.registry import ProviderRegistry
from bridge_router.routing.collector import QuoteCollector
from bridge_router.routing.strategies.base import IWeightStrategy

DEFAULT_RELIABILITY_SCORE = 70.0


class RouteAggregationEngine:
    """High-level facade that orchestrates a quote request without owning the logic.

    Only the provider fan-out is concurrent. Once every call has settled, the
    batch flows through slippage estimation, reliability lookup, normalization
    and ranking. The reliability lookup touches the metric store, so it runs on
    a worker thread instead of the event loop.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        collector: QuoteCollector,
        slippage_estimator: ISlippageEstimator,
        normalizer: IScoreNormalizer,
        ranker: IRanker,
        strategies: Mapping[OptimizationMode, IWeightStrategy],
        *,
        reliability: Optional[IReliabilityFactorSource] = None,
        liquidity: Optional[ILiquiditySource] = None,
        apply_reliability: bool = True,
        default_reliability_score: float = DEFAULT_RELIABILITY_SCORE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not strategies:
            raise ValueError("At least one weight strategy must be provided to the engine")
        if not 0 <= default_reliability_score <= 100:
            raise ValueError("default_reliability_score must be between 0 and 100")
        self._registry = registry
        self._collector = collector
        self._slippage = slippage_estimator
        self._normalizer = normalizer
        self._ranker = ranker
        self._strategies = dict(strategies)
        self._reliability = reliability
        self._liquidity = liquidity
        self._apply_reliability = apply_reliability
        self._default_reliability_score = default_reliability_score
        self._logger = logger or logging.getLogger(__name__)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def aggregate(self, request: QuoteRequest) -> QuoteResponse:
        providers = self._registry.eligible(request)
        if not providers:
            raise RouteNotSupportedError(
                context={
                    "source_chain": request.source_chain,
                    "destination_chain": request.destination_chain,
                    "token": request.source_token,
                }
            )

        started = time.monotonic()
        raw_quotes = await self._collector.collect(request, providers)
        fetch_duration_ms = int((time.monotonic() - started) * 1000)

        successes = [quote for quote in raw_quotes if quote.supported]
        failures = [quote for quote in raw_quotes if not quote.supported]
        if not successes:
            self._logger.error(
                "all_providers_failed",
                extra={
                    "providers": [quote.provider_id for quote in failures],
                    "errors": [quote.error for quote in failures],
                },
            )
            raise AllProvidersFailedError(
                failed_quotes=failures,
                context={"providers": [quote.provider_id for quote in failures]},
            )

        reliability = await asyncio.to_thread(
            self._reliability_inputs, request, successes
        )
        routes = self._build_routes(request, successes, reliability)
        scores = self._normalizer.normalize_batch(routes)
        scored = [
            ScoredQuote(route=route, scores=route_scores)
            for route, route_scores in zip(routes, scores)
        ]

        strategy = self._strategy_for(request.optimization_mode)
        weights = strategy.weights()
        ranked = self._ranker.rank(scored, weights, failures)

        response = QuoteResponse(
            request=request,
            optimization_mode=request.optimization_mode,
            weights=weights,
            ranked_quotes=tuple(ranked),
            best_route=ranked[0],
            successful_provider_count=len(successes),
            total_provider_count=len(raw_quotes),
            fetch_duration_ms=fetch_duration_ms,
        )
        self._logger.info(
            "quotes_ranked",
            extra={
                "mode": strategy.name(),
                "best_provider": ranked[0].provider_id,
                "successful": len(successes),
                "failed": len(failures),
            },
        )
        return response

    def explain(self, response: QuoteResponse) -> str:
        best = response.best_route
        if best is None or best.route is None:
            return "No route could be ranked for this request."
        explanation = (
            f"Selected {best.provider_name} for {response.request.amount:g} "
            f"{response.request.source_token} from {response.request.source_chain} "
            f"to {response.request.destination_chain} with composite score "
            f"{best.composite_score:.2f} under the {response.optimization_mode.value} "
            f"profile (fee ${best.route.total_fee_usd:.2f}, "
            f"~{best.route.estimated_time_seconds:.0f}s)."
        )
        alternatives = [
            quote
            for quote in response.successful_quotes
            if quote.provider_id != best.provider_id
        ]
        if alternatives:
            alt_names = ", ".join(
                f"{quote.provider_name} ({quote.composite_score:.2f})"
                for quote in alternatives[:3]
            )
            explanation += f" Alternatives considered: {alt_names}."
        if response.failed_quotes:
            failed_names = ", ".join(quote.provider_name for quote in response.failed_quotes)
            explanation += f" Unavailable: {failed_names}."
        return explanation

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _strategy_for(self, mode: OptimizationMode) -> IWeightStrategy:
        try:
            return self._strategies[mode]
        except KeyError as exc:
            raise ValueError(
                f"No weight strategy configured for mode '{mode.value}'"
            ) from exc

    def _build_routes(
        self,
        request: QuoteRequest,
        quotes: Sequence[RawQuote],
        reliability: Mapping[str, Tuple[float, float]],
    ) -> list[RouteQuote]:
        slippage = self._slippage.estimate_batch(
            quotes, request.source_token, request.source_chain, request.amount
        )
        routes = []
        for quote in quotes:
            score, failure_rate = reliability[quote.provider_id]
            routes.append(
                RouteQuote(
                    provider_id=quote.provider_id,
                    provider_name=quote.provider_name,
                    source_chain=request.source_chain,
                    destination_chain=request.destination_chain,
                    source_token=request.source_token,
                    destination_token=request.destination_token,
                    input_amount=request.amount,
                    output_amount=quote.output_amount,
                    total_fee_usd=quote.total_fee_usd,
                    fee_usd=quote.fee_usd,
                    gas_cost_usd=quote.gas_cost_usd,
                    estimated_time_seconds=quote.estimated_time_seconds,
                    slippage=slippage[quote.provider_id],
                    steps=quote.steps,
                    liquidity_usd=self._liquidity_for(request, quote),
                    reliability_score=score,
                    failure_rate=failure_rate,
                )
            )
        return routes

    def _reliability_inputs(
        self, request: QuoteRequest, quotes: Sequence[RawQuote]
    ) -> Dict[str, Tuple[float, float]]:
        defaults = {
            quote.provider_id: (self._default_reliability_score, 0.0) for quote in quotes
        }
        if self._reliability is None or not self._apply_reliability:
            return defaults

        keys = {
            quote.provider_id: RouteKey(
                provider_id=quote.provider_id,
                source_chain=request.source_chain,
                destination_chain=request.destination_chain,
            )
            for quote in quotes
        }
        try:
            factors = {
                provider_id: self._reliability.get_ranking_factor(key)
                for provider_id, key in keys.items()
            }
            rates = self._reliability.failure_rates(list(keys.values()))
        except ReliabilityError:
            self._logger.warning(
                "reliability_lookup_failed",
                extra={"providers": list(keys)},
                exc_info=True,
            )
            return defaults

        return {
            provider_id: (
                factors[provider_id].adjusted_score,
                rates.get(keys[provider_id], 0.0),
            )
            for provider_id in keys
        }

    def _liquidity_for(self, request: QuoteRequest, quote: RawQuote) -> float:
        if quote.liquidity_usd is not None:
            return quote.liquidity_usd
        if self._liquidity is None:
            return 0.0
        tvl = self._liquidity.pool_tvl(request.source_token, request.source_chain)
        if tvl is None or not math.isfinite(tvl) or tvl < 0:
            return 0.0
        return tvl
