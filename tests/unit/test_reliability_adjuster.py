import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from bridge_router.domain.exceptions import ReliabilityError
from bridge_router.domain.models import (
    ReliabilityMetric,
    ReliabilityTier,
    RouteKey,
    TransactionOutcome,
    TransactionOutcomeEvent,
    WindowMode,
)
from bridge_router.reliability.adjuster import ReliabilityAdjuster
from bridge_router.reliability.calculator import (
    ReliabilityCalculator,
    ReliabilitySettings,
)

ROUTE = RouteKey(provider_id="hop", source_chain="ethereum", destination_chain="polygon")
NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class _InMemoryEventStore:
    def __init__(self):
        self.events: List[TransactionOutcomeEvent] = []
        self.recent_calls: List[int] = []

    def append(self, event):
        self.events.append(event)

    def _for(self, route):
        matching = [event for event in self.events if event.route == route]
        return list(reversed(matching))

    def find_recent(self, route, limit):
        self.recent_calls.append(limit)
        return self._for(route)[:limit]

    def find_since(self, route, since):
        return [event for event in self._for(route) if event.timestamp >= since]


class _InMemoryMetricStore:
    def __init__(self, fail_mark_stale: bool = False):
        self.metrics: Dict[RouteKey, ReliabilityMetric] = {}
        self.upserts = 0
        self.fail_mark_stale = fail_mark_stale

    def get(self, route) -> Optional[ReliabilityMetric]:
        return self.metrics.get(route)

    def upsert(self, metric):
        self.upserts += 1
        self.metrics[metric.route] = metric

    def mark_stale(self, route):
        if self.fail_mark_stale:
            raise ReliabilityError("metric table locked")
        if route in self.metrics:
            self.metrics[route] = self.metrics[route].model_copy(update={"stale": True})

    def find_by_chain_pair(self, source_chain, destination_chain):
        return [
            metric
            for metric in self.metrics.values()
            if metric.route.source_chain == source_chain
            and metric.route.destination_chain == destination_chain
        ]

    def find_all(self):
        return sorted(self.metrics.values(), key=lambda m: m.reliability_score, reverse=True)


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _adjuster(settings=None, metric_store=None, clock=None):
    events = _InMemoryEventStore()
    metrics = metric_store or _InMemoryMetricStore()
    adjuster = ReliabilityAdjuster(
        events,
        metrics,
        ReliabilityCalculator(settings),
        clock=clock or _Clock(NOW),
    )
    return adjuster, events, metrics


def _record(adjuster, outcome, count, route=ROUTE):
    for _ in range(count):
        adjuster.record_event(route, outcome)


def test_high_reliability_route_gets_high_badge():
    adjuster, _, _ = _adjuster()
    _record(adjuster, TransactionOutcome.SUCCESS, 97)
    _record(adjuster, TransactionOutcome.FAILED, 2)
    _record(adjuster, TransactionOutcome.TIMEOUT, 1)

    report = adjuster.get_reliability(ROUTE)

    assert report.counts.total_attempts == 100
    assert report.reliability_percent == pytest.approx(97.0)
    assert report.tier is ReliabilityTier.HIGH
    assert report.badge.label == "High Reliability"
    assert report.last_computed_at == NOW


@pytest.mark.parametrize(
    "successes, failures, tier",
    [(88, 12, ReliabilityTier.MEDIUM), (70, 30, ReliabilityTier.LOW)],
)
def test_tiers_follow_success_ratio(successes, failures, tier):
    adjuster, _, _ = _adjuster()
    _record(adjuster, TransactionOutcome.SUCCESS, successes)
    _record(adjuster, TransactionOutcome.FAILED, failures)

    assert adjuster.get_reliability(ROUTE).tier is tier


def test_cancelled_events_do_not_shrink_the_window():
    adjuster, _, _ = _adjuster()
    _record(adjuster, TransactionOutcome.SUCCESS, 97)
    _record(adjuster, TransactionOutcome.CANCELLED, 3)

    report = adjuster.get_reliability(ROUTE)

    assert report.counts.total_attempts == 97
    assert report.reliability_percent == 100.0


def test_count_window_keeps_newest_counted_events_even_past_overfetch():
    settings = ReliabilitySettings(default_window_size=5, overfetch=2)
    adjuster, events, _ = _adjuster(settings)
    _record(adjuster, TransactionOutcome.FAILED, 5)
    _record(adjuster, TransactionOutcome.SUCCESS, 5)
    _record(adjuster, TransactionOutcome.CANCELLED, 10)

    report = adjuster.get_reliability(ROUTE)

    assert report.counts.successful == 5
    assert report.counts.failed == 0
    assert events.recent_calls == [7, 14, 28]


def test_below_minimum_attempts_scores_zero_and_low():
    adjuster, _, _ = _adjuster()
    _record(adjuster, TransactionOutcome.SUCCESS, 4)

    report = adjuster.get_reliability(ROUTE)
    factor = adjuster.get_ranking_factor(ROUTE)

    assert report.reliability_score == 0.0
    assert report.tier is ReliabilityTier.LOW
    assert factor.reliability_score == 0.0
    assert factor.adjusted_score == 0.0


def test_no_history_never_raises():
    adjuster, _, _ = _adjuster()

    report = adjuster.get_reliability(ROUTE, WindowMode.TIME_BASED)

    assert report.counts.total_attempts == 0
    assert report.window.size == 7
    assert report.tier is ReliabilityTier.LOW


def test_time_window_excludes_old_events():
    adjuster, _, _ = _adjuster()
    for days_ago in range(10):
        adjuster.record_event(
            ROUTE,
            TransactionOutcome.SUCCESS if days_ago < 7 else TransactionOutcome.FAILED,
            timestamp=NOW - timedelta(days=days_ago, hours=1),
        )

    report = adjuster.get_reliability(ROUTE, WindowMode.TIME_BASED, 7)

    assert report.counts.total_attempts == 7
    assert report.reliability_percent == 100.0
    assert "last 7 days" in report.badge.tooltip


def test_recording_marks_metric_stale_and_next_read_recomputes():
    adjuster, _, metrics = _adjuster()
    _record(adjuster, TransactionOutcome.SUCCESS, 10)
    assert adjuster.get_reliability(ROUTE).reliability_percent == 100.0

    adjuster.record_event(ROUTE, TransactionOutcome.FAILED)
    assert metrics.get(ROUTE).stale is True

    report = adjuster.get_reliability(ROUTE)
    assert report.counts.failed == 1
    assert metrics.get(ROUTE).stale is False


def test_fresh_metric_is_reused_until_ttl_expires():
    clock = _Clock(NOW)
    adjuster, _, metrics = _adjuster(clock=clock)
    _record(adjuster, TransactionOutcome.SUCCESS, 10)

    adjuster.get_reliability(ROUTE)
    adjuster.get_reliability(ROUTE)
    assert metrics.upserts == 1

    adjuster.get_reliability(ROUTE, window_size=50)
    assert metrics.upserts == 2

    clock.now = NOW + timedelta(seconds=301)
    adjuster.get_reliability(ROUTE, window_size=50)
    assert metrics.upserts == 3


def test_invalidation_failures_are_logged_not_raised(caplog):
    adjuster, events, _ = _adjuster(metric_store=_InMemoryMetricStore(fail_mark_stale=True))

    with caplog.at_level(logging.WARNING):
        event = adjuster.record_event(ROUTE, TransactionOutcome.SUCCESS)

    assert events.events == [event]
    assert any(
        record.getMessage() == "reliability_invalidation_failed" for record in caplog.records
    )


def test_ranking_factor_penalizes_unreliable_routes():
    adjuster, _, _ = _adjuster()
    _record(adjuster, TransactionOutcome.SUCCESS, 70)
    _record(adjuster, TransactionOutcome.FAILED, 30)

    factor = adjuster.get_ranking_factor(ROUTE)
    ignored = adjuster.get_ranking_factor(ROUTE, ignore_reliability=True)

    assert factor.reliability_score == 70.0
    assert factor.penalty_applied
    assert factor.adjusted_score == 50.0
    assert not ignored.penalty_applied
    assert ignored.adjusted_score == 70.0


def test_failure_rates_count_failures_and_timeouts():
    adjuster, _, _ = _adjuster()
    _record(adjuster, TransactionOutcome.SUCCESS, 8)
    _record(adjuster, TransactionOutcome.FAILED, 1)
    _record(adjuster, TransactionOutcome.TIMEOUT, 1)
    unknown = RouteKey(provider_id="squid", source_chain="ethereum", destination_chain="polygon")

    rates = adjuster.failure_rates([ROUTE, unknown])

    assert rates[ROUTE] == pytest.approx(0.2)
    assert rates[unknown] == 0.0


def test_bulk_factors_refresh_stale_metrics_on_the_chain_pair():
    adjuster, _, _ = _adjuster()
    other = RouteKey(provider_id="squid", source_chain="ethereum", destination_chain="polygon")
    _record(adjuster, TransactionOutcome.SUCCESS, 10)
    _record(adjuster, TransactionOutcome.SUCCESS, 10, route=other)
    adjuster.get_reliability(ROUTE)
    adjuster.get_reliability(other)
    _record(adjuster, TransactionOutcome.FAILED, 10, route=other)

    factors = {
        factor.route.provider_id: factor
        for factor in adjuster.get_bulk_ranking_factors("ethereum", "polygon")
    }

    assert factors["hop"].adjusted_score == 100.0
    assert factors["squid"].reliability_score == 50.0
    assert factors["squid"].penalty_applied
    assert len(adjuster.get_all_metrics()) == 2


def test_apply_to_ranking_score_delegates_to_calculator():
    adjuster, _, _ = _adjuster()
    assert adjuster.apply_to_ranking_score(80.0, 90.0) == 82.0
    assert adjuster.apply_to_ranking_score(80.0, 70.0, ignore_reliability=True) == 80.0
