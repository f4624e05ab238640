"""Reliability store contracts that separate persistence from scoring logic."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from bridge_router.domain.models import (
    ReliabilityMetric,
    RouteKey,
    TransactionOutcomeEvent,
)


class IEventStore(Protocol):
    """Append-only log of transaction outcome events."""

    def append(self, event: TransactionOutcomeEvent) -> None:
        """Persist a new event; existing events are never modified."""

    def find_recent(self, route: RouteKey, limit: int) -> List[TransactionOutcomeEvent]:
        """Return at most ``limit`` events for the route, newest first."""

    def find_since(
        self, route: RouteKey, since: datetime
    ) -> List[TransactionOutcomeEvent]:
        """Return events for the route with timestamp >= ``since``, newest first."""


class IMetricStore(Protocol):
    """Keyed cache of reliability metrics, one row per route triple."""

    def get(self, route: RouteKey) -> Optional[ReliabilityMetric]:
        """Return the cached metric for the route, if any."""

    def upsert(self, metric: ReliabilityMetric) -> None:
        """Insert or replace the metric keyed by its route triple."""

    def mark_stale(self, route: RouteKey) -> None:
        """Flag the route's metric for recomputation; no-op when absent."""

    def find_by_chain_pair(
        self, source_chain: str, destination_chain: str
    ) -> List[ReliabilityMetric]:
        """Return every cached metric on the chain pair."""

    def find_all(self) -> List[ReliabilityMetric]:
        """Return every cached metric, best score first."""
