"""SQLite-backed reliability event log and metric cache."""

from __future__ import annotations

import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

from bridge_router.domain.exceptions import ReliabilityError
from bridge_router.domain.models import (
    OutcomeCounts,
    ReliabilityMetric,
    ReliabilityTier,
    RouteKey,
    TransactionOutcome,
    TransactionOutcomeEvent,
    WindowConfig,
    WindowMode,
)
from bridge_router.reliability.interfaces import IEventStore, IMetricStore

_CREATE_EVENTS_SQL = """
CREATE TABLE IF NOT EXISTS bridge_transaction_events (
    id TEXT PRIMARY KEY,
    provider_id TEXT NOT NULL,
    source_chain TEXT NOT NULL,
    destination_chain TEXT NOT NULL,
    outcome TEXT NOT NULL,
    transaction_hash TEXT,
    failure_reason TEXT,
    duration_ms INTEGER NOT NULL DEFAULT 0,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_bridge_events_route_time
    ON bridge_transaction_events (provider_id, source_chain, destination_chain, created_at);
"""

_INSERT_EVENT_SQL = """
INSERT INTO bridge_transaction_events (
    id, provider_id, source_chain, destination_chain, outcome,
    transaction_hash, failure_reason, duration_ms, created_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_EVENT_COLUMNS = """
SELECT id, provider_id, source_chain, destination_chain, outcome,
       transaction_hash, failure_reason, duration_ms, created_at
FROM bridge_transaction_events
"""

_SELECT_RECENT_EVENTS_SQL = (
    _EVENT_COLUMNS
    + """
WHERE provider_id = ? AND source_chain = ? AND destination_chain = ?
ORDER BY created_at DESC, rowid DESC
LIMIT ?;
"""
)

_SELECT_EVENTS_SINCE_SQL = (
    _EVENT_COLUMNS
    + """
WHERE provider_id = ? AND source_chain = ? AND destination_chain = ?
  AND created_at >= ?
ORDER BY created_at DESC, rowid DESC;
"""
)

_CREATE_METRICS_SQL = """
CREATE TABLE IF NOT EXISTS bridge_reliability_metrics (
    provider_id TEXT NOT NULL,
    source_chain TEXT NOT NULL,
    destination_chain TEXT NOT NULL,
    total_attempts INTEGER NOT NULL,
    successful INTEGER NOT NULL,
    failed INTEGER NOT NULL,
    timeouts INTEGER NOT NULL,
    reliability_percent REAL NOT NULL,
    reliability_score REAL NOT NULL,
    tier TEXT NOT NULL,
    window_mode TEXT NOT NULL,
    window_size INTEGER NOT NULL,
    computed_at REAL NOT NULL,
    stale INTEGER NOT NULL DEFAULT 0,
    UNIQUE (provider_id, source_chain, destination_chain)
);
"""

_UPSERT_METRIC_SQL = """
INSERT INTO bridge_reliability_metrics (
    provider_id, source_chain, destination_chain, total_attempts, successful,
    failed, timeouts, reliability_percent, reliability_score, tier,
    window_mode, window_size, computed_at, stale
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(provider_id, source_chain, destination_chain) DO UPDATE SET
    total_attempts=excluded.total_attempts,
    successful=excluded.successful,
    failed=excluded.failed,
    timeouts=excluded.timeouts,
    reliability_percent=excluded.reliability_percent,
    reliability_score=excluded.reliability_score,
    tier=excluded.tier,
    window_mode=excluded.window_mode,
    window_size=excluded.window_size,
    computed_at=excluded.computed_at,
    stale=excluded.stale;
"""

_METRIC_COLUMNS = """
SELECT provider_id, source_chain, destination_chain, total_attempts, successful,
       failed, timeouts, reliability_percent, reliability_score, tier,
       window_mode, window_size, computed_at, stale
FROM bridge_reliability_metrics
"""

_SELECT_METRIC_SQL = (
    _METRIC_COLUMNS
    + "WHERE provider_id = ? AND source_chain = ? AND destination_chain = ?;"
)

_SELECT_METRICS_BY_PAIR_SQL = (
    _METRIC_COLUMNS
    + """
WHERE source_chain = ? AND destination_chain = ?
ORDER BY reliability_score DESC, provider_id ASC;
"""
)

_SELECT_ALL_METRICS_SQL = (
    _METRIC_COLUMNS + "ORDER BY reliability_score DESC, provider_id ASC;"
)

_MARK_STALE_SQL = """
UPDATE bridge_reliability_metrics
SET stale = 1
WHERE provider_id = ? AND source_chain = ? AND destination_chain = ?;
"""

EventRow = Tuple[str, str, str, str, str, Optional[str], Optional[str], int, float]
MetricRow = Tuple[
    str, str, str, int, int, int, int, float, float, str, str, int, float, int
]


class _SQLiteStore:
    """Connection handling shared by both stores."""

    _schema_sql = ""

    def __init__(self, db_path: str | Path):
        self._db_path = str(db_path)
        with self._connect() as conn:
            conn.executescript(self._schema_sql)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            with closing(sqlite3.connect(self._db_path)) as conn, conn:
                yield conn
        except sqlite3.Error as exc:
            raise ReliabilityError(
                f"Reliability storage failure: {exc}",
                context={"db_path": self._db_path},
            ) from exc


class SQLiteEventStore(_SQLiteStore, IEventStore):
    """Append-only event log; rows are inserted and never updated."""

    _schema_sql = _CREATE_EVENTS_SQL

    def append(self, event: TransactionOutcomeEvent) -> None:
        with self._connect() as conn:
            conn.execute(
                _INSERT_EVENT_SQL,
                (
                    event.id,
                    event.route.provider_id,
                    event.route.source_chain,
                    event.route.destination_chain,
                    event.outcome.value,
                    event.transaction_hash,
                    event.failure_reason,
                    event.duration_ms,
                    _to_epoch(event.timestamp),
                ),
            )

    def find_recent(self, route: RouteKey, limit: int) -> List[TransactionOutcomeEvent]:
        if limit <= 0:
            return []
        with self._connect() as conn:
            rows = conn.execute(
                _SELECT_RECENT_EVENTS_SQL, (*_route_params(route), limit)
            ).fetchall()
        return [self._row_to_event(row) for row in rows]

    def find_since(
        self, route: RouteKey, since: datetime
    ) -> List[TransactionOutcomeEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                _SELECT_EVENTS_SINCE_SQL, (*_route_params(route), _to_epoch(since))
            ).fetchall()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: EventRow) -> TransactionOutcomeEvent:
        (
            id_,
            provider_id,
            source_chain,
            destination_chain,
            outcome,
            transaction_hash,
            failure_reason,
            duration_ms,
            created_at,
        ) = row
        return TransactionOutcomeEvent(
            id=id_,
            route=RouteKey(
                provider_id=provider_id,
                source_chain=source_chain,
                destination_chain=destination_chain,
            ),
            outcome=TransactionOutcome(outcome),
            timestamp=_from_epoch(created_at),
            duration_ms=duration_ms,
            transaction_hash=transaction_hash,
            failure_reason=failure_reason,
        )


class SQLiteMetricStore(_SQLiteStore, IMetricStore):
    """One cached metric row per (provider, source chain, destination chain)."""

    _schema_sql = _CREATE_METRICS_SQL

    def get(self, route: RouteKey) -> Optional[ReliabilityMetric]:
        with self._connect() as conn:
            row = conn.execute(_SELECT_METRIC_SQL, _route_params(route)).fetchone()
        return self._row_to_metric(row) if row else None

    def upsert(self, metric: ReliabilityMetric) -> None:
        counts = metric.counts
        with self._connect() as conn:
            conn.execute(
                _UPSERT_METRIC_SQL,
                (
                    *_route_params(metric.route),
                    counts.total_attempts,
                    counts.successful,
                    counts.failed,
                    counts.timeouts,
                    metric.reliability_percent,
                    metric.reliability_score,
                    metric.tier.value,
                    metric.window.mode.value,
                    metric.window.size,
                    _to_epoch(metric.computed_at),
                    1 if metric.stale else 0,
                ),
            )

    def mark_stale(self, route: RouteKey) -> None:
        with self._connect() as conn:
            conn.execute(_MARK_STALE_SQL, _route_params(route))

    def find_by_chain_pair(
        self, source_chain: str, destination_chain: str
    ) -> List[ReliabilityMetric]:
        with self._connect() as conn:
            rows = conn.execute(
                _SELECT_METRICS_BY_PAIR_SQL,
                (source_chain.strip().lower(), destination_chain.strip().lower()),
            ).fetchall()
        return [self._row_to_metric(row) for row in rows]

    def find_all(self) -> List[ReliabilityMetric]:
        with self._connect() as conn:
            rows = conn.execute(_SELECT_ALL_METRICS_SQL).fetchall()
        return [self._row_to_metric(row) for row in rows]

    @staticmethod
    def _row_to_metric(row: MetricRow) -> ReliabilityMetric:
        (
            provider_id,
            source_chain,
            destination_chain,
            total_attempts,
            successful,
            failed,
            timeouts,
            reliability_percent,
            reliability_score,
            tier,
            window_mode,
            window_size,
            computed_at,
            stale,
        ) = row
        return ReliabilityMetric(
            route=RouteKey(
                provider_id=provider_id,
                source_chain=source_chain,
                destination_chain=destination_chain,
            ),
            counts=OutcomeCounts(
                total_attempts=total_attempts,
                successful=successful,
                failed=failed,
                timeouts=timeouts,
            ),
            reliability_percent=reliability_percent,
            reliability_score=reliability_score,
            tier=ReliabilityTier(tier),
            window=WindowConfig(mode=WindowMode(window_mode), size=window_size),
            computed_at=_from_epoch(computed_at),
            stale=bool(stale),
        )


def _route_params(route: RouteKey) -> Sequence[str]:
    return (route.provider_id, route.source_chain, route.destination_chain)


def _to_epoch(moment: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)  # naive values are UTC
    return moment.timestamp()


def _from_epoch(value: float) -> datetime:
    return datetime.fromtimestamp(float(value), tz=timezone.utc)
