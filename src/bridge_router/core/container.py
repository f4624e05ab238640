"""Dependency injection container for building fully-wired BridgeRouter instances."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from bridge_router.core.config import EngineConfig
from bridge_router.core.middleware import (
    LoggingMiddleware,
    MiddlewareChain,
    ValidationMiddleware,
)
from bridge_router.core.router import BridgeRouter
from bridge_router.domain.interfaces import IBridgeAdapter, ILiquiditySource
from bridge_router.domain.models import OptimizationMode, ProviderDescriptor
from bridge_router.providers.registry import ProviderRegistry
from bridge_router.providers.static_adapter import default_static_providers
from bridge_router.reliability.adjuster import ReliabilityAdjuster
from bridge_router.reliability.calculator import ReliabilityCalculator
from bridge_router.reliability.sqlite_repository import (
    SQLiteEventStore,
    SQLiteMetricStore,
)
from bridge_router.routing.collector import QuoteCollector
from bridge_router.routing.engine import RouteAggregationEngine
from bridge_router.routing.normalizer import ScoreNormalizer
from bridge_router.routing.ranker import CompositeRanker
from bridge_router.routing.slippage import SlippageEstimator, StaticLiquiditySource
from bridge_router.routing.strategies.base import IWeightStrategy
from bridge_router.routing.strategies.catalog import default_strategies

AdapterEntry = Tuple[IBridgeAdapter, ProviderDescriptor]


class DIContainer:
    """Factory helpers that assemble a BridgeRouter with default wiring."""

    @staticmethod
    def create_router(
        adapters: Iterable[AdapterEntry],
        *,
        config: Optional[EngineConfig] = None,
        reliability_db_path: str | Path = "bridge_reliability.db",
        liquidity: Optional[ILiquiditySource] = None,
    ) -> BridgeRouter:
        cfg = config or EngineConfig.from_env()

        registry = DIContainer._build_registry(adapters)
        if not len(registry):
            raise ValueError("At least one bridge adapter must be supplied")

        liquidity_source = liquidity or StaticLiquiditySource()
        reliability = (
            DIContainer._build_reliability(cfg, reliability_db_path)
            if cfg.enable_reliability
            else None
        )

        engine = RouteAggregationEngine(
            registry,
            QuoteCollector(cfg.provider_timeout_seconds),
            SlippageEstimator(liquidity_source),
            ScoreNormalizer(),
            CompositeRanker(),
            DIContainer._build_strategies(cfg),
            reliability=reliability,
            liquidity=liquidity_source,
            apply_reliability=cfg.apply_reliability,
            default_reliability_score=cfg.default_reliability_score,
        )

        return BridgeRouter(
            config=cfg,
            engine=engine,
            reliability=reliability,
            middleware=DIContainer._build_middleware_chain(),
        )

    @staticmethod
    def create_demo_router(
        *,
        config: Optional[EngineConfig] = None,
        reliability_db_path: str | Path = "bridge_reliability.db",
    ) -> BridgeRouter:
        return DIContainer.create_router(
            default_static_providers(),
            config=config or EngineConfig(),
            reliability_db_path=reliability_db_path,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _build_registry(adapters: Iterable[AdapterEntry]) -> ProviderRegistry:
        registry = ProviderRegistry()
        for adapter, descriptor in adapters:
            registry.register(adapter, descriptor)
        return registry

    @staticmethod
    def _build_reliability(
        config: EngineConfig, db_path: str | Path
    ) -> ReliabilityAdjuster:
        return ReliabilityAdjuster(
            SQLiteEventStore(db_path),
            SQLiteMetricStore(db_path),
            ReliabilityCalculator(config.reliability),
        )

    @staticmethod
    def _build_strategies(
        config: EngineConfig,
    ) -> Dict[OptimizationMode, IWeightStrategy]:
        return default_strategies(config.weight_overrides)

    @staticmethod
    def _build_middleware_chain() -> MiddlewareChain:
        return MiddlewareChain([ValidationMiddleware(), LoggingMiddleware()])
