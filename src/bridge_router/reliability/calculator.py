"""Pure business-logic helpers for reliability scoring."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from bridge_router.domain.models import (
    OutcomeCounts,
    RankingFactor,
    ReliabilityBadge,
    ReliabilityMetric,
    ReliabilityReport,
    ReliabilityTier,
    RouteKey,
    TransactionOutcome,
    WindowConfig,
    utcnow,
)


@dataclass(frozen=True)
class ReliabilitySettings:
    """Thresholds and penalties of the reliability model."""

    min_attempts: int = 5
    high_threshold: float = 95.0
    medium_threshold: float = 85.0
    penalty_below_threshold: float = 20.0
    timeout_penalty_factor: float = 10.0
    max_timeout_penalty: float = 5.0
    default_window_size: int = 100
    default_window_days: int = 7
    overfetch: int = 200
    cache_ttl_seconds: float = 300.0

    def __post_init__(self) -> None:
        if self.min_attempts < 0:
            raise ValueError("min_attempts cannot be negative")
        if not 0 <= self.medium_threshold <= self.high_threshold <= 100:
            raise ValueError("thresholds must satisfy 0 <= medium <= high <= 100")
        if self.penalty_below_threshold < 0:
            raise ValueError("penalty_below_threshold cannot be negative")
        if self.timeout_penalty_factor < 0 or self.max_timeout_penalty < 0:
            raise ValueError("timeout penalties cannot be negative")
        if self.default_window_size < 1 or self.default_window_days < 1:
            raise ValueError("default windows must be at least 1")
        if self.overfetch < 0:
            raise ValueError("overfetch cannot be negative")
        if self.cache_ttl_seconds < 0:
            raise ValueError("cache_ttl_seconds cannot be negative")


BADGE_LABELS = {
    ReliabilityTier.HIGH: "High Reliability",
    ReliabilityTier.MEDIUM: "Medium Reliability",
    ReliabilityTier.LOW: "Low Reliability",
}

BADGE_COLORS = {
    ReliabilityTier.HIGH: "#22c55e",
    ReliabilityTier.MEDIUM: "#f59e0b",
    ReliabilityTier.LOW: "#ef4444",
}


class ReliabilityCalculator:
    """Turns outcome counts into percentages, scores, tiers and penalties.

    Every method is a pure function of its arguments and the settings; metric
    snapshots are always built fresh rather than patched in place.
    """

    def __init__(self, settings: Optional[ReliabilitySettings] = None) -> None:
        self._settings = settings or ReliabilitySettings()

    @property
    def settings(self) -> ReliabilitySettings:
        return self._settings

    @staticmethod
    def tally(outcomes: Iterable[TransactionOutcome]) -> OutcomeCounts:
        successful = failed = timeouts = 0
        for outcome in outcomes:
            if outcome is TransactionOutcome.SUCCESS:
                successful += 1
            elif outcome is TransactionOutcome.FAILED:
                failed += 1
            elif outcome is TransactionOutcome.TIMEOUT:
                timeouts += 1
        return OutcomeCounts(
            total_attempts=successful + failed + timeouts,
            successful=successful,
            failed=failed,
            timeouts=timeouts,
        )

    def reliability_percent(self, counts: OutcomeCounts) -> float:
        if not self._has_enough_samples(counts):
            return 0.0
        return round(counts.successful / counts.total_attempts * 100, 2)

    def reliability_score(self, counts: OutcomeCounts) -> float:
        if not self._has_enough_samples(counts):
            return 0.0
        percent = self.reliability_percent(counts)
        penalty = min(
            counts.timeout_ratio * self._settings.timeout_penalty_factor,
            self._settings.max_timeout_penalty,
        )
        return round(_clamp(percent - penalty), 2)

    def tier(self, reliability_percent: float) -> ReliabilityTier:
        if reliability_percent >= self._settings.high_threshold:
            return ReliabilityTier.HIGH
        if reliability_percent >= self._settings.medium_threshold:
            return ReliabilityTier.MEDIUM
        return ReliabilityTier.LOW

    def badge(self, reliability_percent: float, window: WindowConfig) -> ReliabilityBadge:
        tier = self.tier(reliability_percent)
        return ReliabilityBadge(
            tier=tier,
            label=BADGE_LABELS[tier],
            color=BADGE_COLORS[tier],
            tooltip=(
                f"Score based on {window.describe()}. Excludes user-cancelled events. "
                f"Minimum {self._settings.min_attempts} attempts required."
            ),
        )

    def build_metric(
        self,
        route: RouteKey,
        counts: OutcomeCounts,
        window: WindowConfig,
        computed_at: Optional[datetime] = None,
    ) -> ReliabilityMetric:
        percent = self.reliability_percent(counts)
        return ReliabilityMetric(
            route=route,
            counts=counts,
            reliability_percent=percent,
            reliability_score=self.reliability_score(counts),
            tier=self.tier(percent),
            window=window,
            computed_at=computed_at or utcnow(),
            stale=False,
        )

    def report(self, metric: ReliabilityMetric) -> ReliabilityReport:
        return ReliabilityReport(
            route=metric.route,
            counts=metric.counts,
            reliability_percent=metric.reliability_percent,
            reliability_score=metric.reliability_score,
            tier=metric.tier,
            badge=self.badge(metric.reliability_percent, metric.window),
            window=metric.window,
            last_computed_at=metric.computed_at,
        )

    def ranking_penalty(
        self, reliability_score: float, threshold: Optional[float] = None
    ) -> float:
        limit = self._settings.medium_threshold if threshold is None else threshold
        if reliability_score < limit:
            return self._settings.penalty_below_threshold
        return 0.0

    def ranking_factor(
        self,
        route: RouteKey,
        reliability_score: float,
        *,
        threshold: Optional[float] = None,
        ignore_reliability: bool = False,
    ) -> RankingFactor:
        penalty = 0.0 if ignore_reliability else self.ranking_penalty(
            reliability_score, threshold
        )
        return RankingFactor(
            route=route,
            reliability_score=reliability_score,
            penalty_applied=penalty > 0,
            adjusted_score=round(max(0.0, reliability_score - penalty), 2),
        )

    def apply_to_ranking_score(
        self,
        base_ranking_score: float,
        reliability_score: float,
        *,
        weight: float = 0.2,
        threshold: Optional[float] = None,
        ignore_reliability: bool = False,
    ) -> float:
        """Blend reliability into an externally computed ranking score."""

        if ignore_reliability:
            return base_ranking_score
        if not 0 <= weight <= 1:
            raise ValueError("weight must be between 0 and 1")
        penalty = self.ranking_penalty(reliability_score, threshold)
        blended = base_ranking_score * (1 - weight) + reliability_score * weight
        return round(max(0.0, blended - penalty), 2)

    def _has_enough_samples(self, counts: OutcomeCounts) -> bool:
        return counts.total_attempts > 0 and (
            counts.total_attempts >= self._settings.min_attempts
        )


def _clamp(value: float, minimum: float = 0.0, maximum: float = 100.0) -> float:
    return max(minimum, min(value, maximum))
