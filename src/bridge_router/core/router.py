"""Main router facade coordinating the aggregation engine, middleware and reliability."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from bridge_router.core.config import EngineConfig
from bridge_router.core.middleware import IMiddleware, MiddlewareChain
from bridge_router.domain.exceptions import RouteNotSupportedError
from bridge_router.domain.models import (
    OptimizationMode,
    ProviderDescriptor,
    QuoteRequest,
    QuoteResponse,
    RankedQuote,
    RankingFactor,
    ReliabilityReport,
    RouteKey,
    TransactionOutcome,
    TransactionOutcomeEvent,
    WindowMode,
)
from bridge_router.reliability.adjuster import ReliabilityAdjuster
from bridge_router.routing.engine import RouteAggregationEngine


class BridgeRouter:
    """High-level API for consumers requesting ranked cross-chain routes."""

    def __init__(
        self,
        config: EngineConfig,
        engine: RouteAggregationEngine,
        *,
        reliability: Optional[ReliabilityAdjuster] = None,
        middleware: Optional[MiddlewareChain] = None,
        middlewares: Optional[Sequence[IMiddleware]] = None,
    ) -> None:
        if middleware and middlewares:
            raise ValueError("Provide either 'middleware' or 'middlewares', not both")
        self._config = config
        self._engine = engine
        self._reliability = reliability
        self._middleware = middleware or MiddlewareChain(middlewares or [])

    @property
    def config(self) -> EngineConfig:
        return self._config

    async def get_quotes(
        self,
        source_chain: str,
        destination_chain: str,
        source_token: str,
        amount: float,
        *,
        destination_token: Optional[str] = None,
        mode: OptimizationMode | str | None = None,
        slippage_tolerance: Optional[float] = None,
    ) -> QuoteResponse:
        request = QuoteRequest(
            source_chain=source_chain,
            destination_chain=destination_chain,
            source_token=source_token,
            destination_token=destination_token,
            amount=amount,
            optimization_mode=mode or self._config.optimization_mode,
            slippage_tolerance=slippage_tolerance,
        )
        return await self._middleware.execute(request, self._engine.aggregate)

    async def get_route_details(
        self,
        source_chain: str,
        destination_chain: str,
        source_token: str,
        amount: float,
        provider_id: str,
        *,
        destination_token: Optional[str] = None,
        mode: OptimizationMode | str | None = None,
    ) -> RankedQuote:
        if provider_id not in self._engine.registry:
            raise RouteNotSupportedError(
                f"Unknown bridge provider '{provider_id}'",
                context={"provider": provider_id},
            )
        response = await self.get_quotes(
            source_chain,
            destination_chain,
            source_token,
            amount,
            destination_token=destination_token,
            mode=mode,
        )
        for quote in response.ranked_quotes:
            if quote.provider_id == provider_id:
                return quote
        raise RouteNotSupportedError(
            f"Provider '{provider_id}' does not support the requested route",
            context={
                "provider": provider_id,
                "source_chain": response.request.source_chain,
                "destination_chain": response.request.destination_chain,
            },
        )

    def explain(self, response: QuoteResponse) -> str:
        return self._engine.explain(response)

    def supported_providers(self) -> List[ProviderDescriptor]:
        return self._engine.registry.descriptors()

    def provider_status(self, provider_id: str) -> str:
        entry = self._engine.registry.get(provider_id)
        if entry is None or not entry.descriptor.active:
            return "offline"
        return "active"

    def record_outcome(
        self,
        provider_id: str,
        source_chain: str,
        destination_chain: str,
        outcome: TransactionOutcome | str,
        *,
        duration_ms: int = 0,
        transaction_hash: Optional[str] = None,
        failure_reason: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> TransactionOutcomeEvent:
        return self.reliability.record_event(
            self._route_key(provider_id, source_chain, destination_chain),
            TransactionOutcome(outcome),
            duration_ms=duration_ms,
            transaction_hash=transaction_hash,
            failure_reason=failure_reason,
            timestamp=timestamp,
        )

    def route_reliability(
        self,
        provider_id: str,
        source_chain: str,
        destination_chain: str,
        *,
        window_mode: WindowMode | str = WindowMode.TRANSACTION_COUNT,
        window_size: Optional[int] = None,
    ) -> ReliabilityReport:
        return self.reliability.get_reliability(
            self._route_key(provider_id, source_chain, destination_chain),
            WindowMode(window_mode),
            window_size,
        )

    def ranking_factor(
        self,
        provider_id: str,
        source_chain: str,
        destination_chain: str,
        *,
        threshold: Optional[float] = None,
        ignore_reliability: bool = False,
    ) -> RankingFactor:
        return self.reliability.get_ranking_factor(
            self._route_key(provider_id, source_chain, destination_chain),
            threshold=threshold,
            ignore_reliability=ignore_reliability,
        )

    @property
    def reliability(self) -> ReliabilityAdjuster:
        if not self._reliability:
            raise RuntimeError("Reliability tracking not configured")
        return self._reliability

    @staticmethod
    def _route_key(
        provider_id: str, source_chain: str, destination_chain: str
    ) -> RouteKey:
        return RouteKey(
            provider_id=provider_id,
            source_chain=source_chain,
            destination_chain=destination_chain,
        )
