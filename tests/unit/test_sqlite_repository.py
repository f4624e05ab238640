from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bridge_router.domain.exceptions import ReliabilityError
from bridge_router.domain.models import (
    OutcomeCounts,
    ReliabilityMetric,
    ReliabilityTier,
    RouteKey,
    TransactionOutcome,
    TransactionOutcomeEvent,
    WindowConfig,
)
from bridge_router.reliability.sqlite_repository import (
    SQLiteEventStore,
    SQLiteMetricStore,
)

ROUTE = RouteKey(provider_id="hop", source_chain="ethereum", destination_chain="polygon")
OTHER_ROUTE = RouteKey(provider_id="squid", source_chain="ethereum", destination_chain="polygon")
START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    return tmp_path / "reliability.db"


@pytest.fixture
def events(temp_db: Path) -> SQLiteEventStore:
    return SQLiteEventStore(temp_db)


@pytest.fixture
def metrics(temp_db: Path) -> SQLiteMetricStore:
    return SQLiteMetricStore(temp_db)


def _event(minutes: int, outcome=TransactionOutcome.SUCCESS, route=ROUTE):
    return TransactionOutcomeEvent(
        id=f"{route.provider_id}-{minutes}",
        route=route,
        outcome=outcome,
        timestamp=START + timedelta(minutes=minutes),
        duration_ms=minutes * 100,
    )


def _metric(route=ROUTE, score=90.0, stale=False) -> ReliabilityMetric:
    return ReliabilityMetric(
        route=route,
        counts=OutcomeCounts(total_attempts=10, successful=9, failed=1),
        reliability_percent=90.0,
        reliability_score=score,
        tier=ReliabilityTier.MEDIUM,
        window=WindowConfig(size=100),
        computed_at=START,
        stale=stale,
    )


def test_find_recent_returns_newest_first_and_respects_limit(events):
    for minutes in range(5):
        events.append(_event(minutes))
    events.append(_event(10, route=OTHER_ROUTE))

    recent = events.find_recent(ROUTE, 3)

    assert [event.id for event in recent] == ["hop-4", "hop-3", "hop-2"]
    assert recent[0].timestamp == START + timedelta(minutes=4)
    assert recent[0].duration_ms == 400
    assert events.find_recent(ROUTE, 0) == []


def test_find_since_filters_by_timestamp(events):
    for minutes in (0, 30, 60, 90):
        events.append(_event(minutes, TransactionOutcome.FAILED))

    since = events.find_since(ROUTE, START + timedelta(minutes=30))

    assert [event.id for event in since] == ["hop-90", "hop-60", "hop-30"]
    assert all(event.outcome is TransactionOutcome.FAILED for event in since)


def test_events_are_append_only(events):
    events.append(_event(1))
    with pytest.raises(ReliabilityError):
        events.append(_event(1))


def test_naive_timestamps_are_treated_as_utc(events):
    naive = TransactionOutcomeEvent(
        id="naive",
        route=ROUTE,
        outcome=TransactionOutcome.CANCELLED,
        timestamp=datetime(2024, 1, 1, 12, 0, 0),
    )
    events.append(naive)

    (stored,) = events.find_recent(ROUTE, 1)
    assert stored.timestamp == START
    assert stored.outcome is TransactionOutcome.CANCELLED


def test_metric_upsert_keeps_one_row_per_route(metrics):
    metrics.upsert(_metric(score=90.0))
    metrics.upsert(_metric(score=72.5))

    stored = metrics.get(ROUTE)
    assert stored is not None
    assert stored.reliability_score == 72.5
    assert stored.computed_at == START
    assert stored.window == WindowConfig(size=100)
    assert len(metrics.find_all()) == 1


def test_mark_stale_flags_existing_metric_only(metrics):
    metrics.upsert(_metric())
    metrics.mark_stale(ROUTE)
    metrics.mark_stale(OTHER_ROUTE)

    assert metrics.get(ROUTE).stale is True
    assert metrics.get(OTHER_ROUTE) is None


def test_find_by_chain_pair_and_find_all_order_by_score(metrics):
    metrics.upsert(_metric(route=ROUTE, score=80.0))
    metrics.upsert(_metric(route=OTHER_ROUTE, score=95.0))
    metrics.upsert(
        _metric(
            route=RouteKey(provider_id="hop", source_chain="polygon", destination_chain="ethereum"),
            score=99.0,
        )
    )

    pair = metrics.find_by_chain_pair("Ethereum", "Polygon")

    assert [metric.route.provider_id for metric in pair] == ["squid", "hop"]
    assert [metric.reliability_score for metric in metrics.find_all()] == [99.0, 95.0, 80.0]


def test_stores_can_share_one_database(temp_db):
    SQLiteEventStore(temp_db).append(_event(1))
    SQLiteMetricStore(temp_db).upsert(_metric())

    assert len(SQLiteEventStore(temp_db).find_recent(ROUTE, 10)) == 1
    assert SQLiteMetricStore(temp_db).get(ROUTE) is not None
