"""Reliability service: records outcomes, maintains cached metrics, feeds ranking."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from bridge_router.domain.exceptions import ReliabilityError
from bridge_router.domain.interfaces import IReliabilityFactorSource
from bridge_router.domain.models import (
    OutcomeCounts,
    RankingFactor,
    ReliabilityMetric,
    ReliabilityReport,
    RouteKey,
    TransactionOutcome,
    TransactionOutcomeEvent,
    WindowConfig,
    WindowMode,
    utcnow,
)
from bridge_router.reliability.calculator import ReliabilityCalculator
from bridge_router.reliability.interfaces import IEventStore, IMetricStore


class ReliabilityAdjuster(IReliabilityFactorSource):
    """Coordinates the event log, the metric cache and the calculator.

    Events are append-only. Recording one marks the route's cached metric
    stale; the next read recomputes it from the rolling window. Cancelled
    events are stored but never counted, so count-based windows over-fetch
    until enough counted events are found or the log is exhausted.
    """

    def __init__(
        self,
        event_store: IEventStore,
        metric_store: IMetricStore,
        calculator: Optional[ReliabilityCalculator] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._events = event_store
        self._metrics = metric_store
        self._calculator = calculator or ReliabilityCalculator()
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

    @property
    def calculator(self) -> ReliabilityCalculator:
        return self._calculator

    def record_event(
        self,
        route: RouteKey,
        outcome: TransactionOutcome,
        *,
        duration_ms: int = 0,
        transaction_hash: Optional[str] = None,
        failure_reason: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> TransactionOutcomeEvent:
        event = TransactionOutcomeEvent(
            route=route,
            outcome=outcome,
            timestamp=timestamp or self._clock(),
            duration_ms=duration_ms,
            transaction_hash=transaction_hash,
            failure_reason=failure_reason,
        )
        self._events.append(event)
        self._logger.info(
            "reliability_event_recorded",
            extra={"route": str(route), "outcome": outcome.value, "event_id": event.id},
        )
        self._invalidate(route)
        return event

    def get_reliability(
        self,
        route: RouteKey,
        window_mode: WindowMode = WindowMode.TRANSACTION_COUNT,
        window_size: Optional[int] = None,
    ) -> ReliabilityReport:
        window = self.resolve_window(window_mode, window_size)
        cached = self._metrics.get(route)
        if cached is not None and self._is_reusable(cached, window):
            return self._calculator.report(cached)
        return self._calculator.report(self._recompute(route, window))

    def get_ranking_factor(
        self,
        route: RouteKey,
        threshold: Optional[float] = None,
        ignore_reliability: bool = False,
    ) -> RankingFactor:
        metric = self._current_metric(route)
        return self._calculator.ranking_factor(
            route,
            metric.reliability_score,
            threshold=threshold,
            ignore_reliability=ignore_reliability,
        )

    def get_bulk_ranking_factors(
        self,
        source_chain: str,
        destination_chain: str,
        threshold: Optional[float] = None,
        ignore_reliability: bool = False,
    ) -> List[RankingFactor]:
        factors = []
        for metric in self._metrics.find_by_chain_pair(source_chain, destination_chain):
            if metric.stale:
                metric = self._recompute(metric.route, metric.window)
            factors.append(
                self._calculator.ranking_factor(
                    metric.route,
                    metric.reliability_score,
                    threshold=threshold,
                    ignore_reliability=ignore_reliability,
                )
            )
        return factors

    def failure_rates(self, routes: Iterable[RouteKey]) -> Dict[RouteKey, float]:
        return {
            route: self._current_metric(route).counts.failure_rate for route in routes
        }

    def get_all_metrics(self) -> List[ReliabilityMetric]:
        return self._metrics.find_all()

    def apply_to_ranking_score(
        self,
        base_ranking_score: float,
        reliability_score: float,
        *,
        weight: float = 0.2,
        threshold: Optional[float] = None,
        ignore_reliability: bool = False,
    ) -> float:
        return self._calculator.apply_to_ranking_score(
            base_ranking_score,
            reliability_score,
            weight=weight,
            threshold=threshold,
            ignore_reliability=ignore_reliability,
        )

    def resolve_window(
        self, mode: WindowMode, size: Optional[int] = None
    ) -> WindowConfig:
        settings = self._calculator.settings
        if size is None:
            size = (
                settings.default_window_days
                if mode is WindowMode.TIME_BASED
                else settings.default_window_size
            )
        return WindowConfig(mode=mode, size=size)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _current_metric(self, route: RouteKey) -> ReliabilityMetric:
        metric = self._metrics.get(route)
        if metric is None:
            return self._recompute(
                route, self.resolve_window(WindowMode.TRANSACTION_COUNT)
            )
        if metric.stale:
            return self._recompute(route, metric.window)
        return metric

    def _is_reusable(self, metric: ReliabilityMetric, window: WindowConfig) -> bool:
        if metric.stale or metric.window != window:
            return False
        age = (self._clock() - metric.computed_at).total_seconds()
        return age <= self._calculator.settings.cache_ttl_seconds

    def _recompute(self, route: RouteKey, window: WindowConfig) -> ReliabilityMetric:
        counts = self._rolling_counts(route, window)
        metric = self._calculator.build_metric(
            route, counts, window, computed_at=self._clock()
        )
        self._metrics.upsert(metric)
        self._logger.info(
            "reliability_recomputed",
            extra={
                "route": str(route),
                "window": window.describe(),
                "attempts": counts.total_attempts,
                "reliability_score": metric.reliability_score,
                "tier": metric.tier.value,
            },
        )
        return metric

    def _rolling_counts(self, route: RouteKey, window: WindowConfig) -> OutcomeCounts:
        if window.mode is WindowMode.TIME_BASED:
            since = self._clock() - timedelta(days=window.size)
            outcomes = [event.outcome for event in self._events.find_since(route, since)]
            return self._calculator.tally(outcomes)

        limit = window.size + self._calculator.settings.overfetch
        while True:
            events = self._events.find_recent(route, limit)
            counted = [
                event.outcome
                for event in events
                if event.outcome is not TransactionOutcome.CANCELLED
            ]
            if len(counted) >= window.size or len(events) < limit:
                return self._calculator.tally(counted[: window.size])
            limit *= 2

    def _invalidate(self, route: RouteKey) -> None:
        try:
            self._metrics.mark_stale(route)
        except ReliabilityError:
            self._logger.warning(
                "reliability_invalidation_failed",
                extra={"route": str(route)},
                exc_info=True,
            )
