"""Domain value objects representing bridge routing and reliability concepts."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from .exceptions import InvalidWeightsError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_chain(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("chain must be a non-empty string")
    return value.strip().lower()


def _normalize_token(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("token must be a non-empty string")
    return value.strip().upper()


# ----------------------------------------------------------------------
# Quote aggregation
# ----------------------------------------------------------------------
class OptimizationMode(str, Enum):
    """Named ranking profiles a caller can select per request."""

    BALANCED = "balanced"
    LOWEST_COST = "lowest-cost"
    FASTEST = "fastest"


class ProviderDescriptor(BaseModel):
    """Declared capabilities of a registered bridge provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    supported_chains: FrozenSet[str] = Field(default_factory=frozenset)
    supported_tokens: FrozenSet[str] = Field(default_factory=frozenset)
    active: bool = True

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("provider id must be non-empty")
        return value.strip()

    @field_validator("supported_chains", mode="before")
    @classmethod
    def normalize_chains(cls, value: Any) -> FrozenSet[str]:
        return frozenset(_normalize_chain(chain) for chain in value or ())

    @field_validator("supported_tokens", mode="before")
    @classmethod
    def normalize_tokens(cls, value: Any) -> FrozenSet[str]:
        return frozenset(_normalize_token(token) for token in value or ())

    def supports(self, source_chain: str, destination_chain: str, token: str) -> bool:
        if not self.active:
            return False
        return (
            source_chain.lower() in self.supported_chains
            and destination_chain.lower() in self.supported_chains
            and token.upper() in self.supported_tokens
        )


class QuoteRequest(BaseModel):
    """Immutable cross-chain transfer request passed through aggregation."""

    model_config = ConfigDict(frozen=True)

    source_chain: str
    destination_chain: str
    source_token: str
    destination_token: Optional[str] = None
    amount: float = Field(..., gt=0)
    optimization_mode: OptimizationMode = OptimizationMode.BALANCED
    slippage_tolerance: Optional[float] = Field(default=None, ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def default_destination_token(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not data.get("destination_token"):
            data = dict(data)
            data["destination_token"] = data.get("source_token")
        return data

    @field_validator("source_chain", "destination_chain", mode="before")
    @classmethod
    def validate_chain(cls, value: Any) -> str:
        return _normalize_chain(value)

    @field_validator("source_token", "destination_token", mode="before")
    @classmethod
    def validate_token(cls, value: Any) -> str:
        return _normalize_token(value)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("amount must be a finite number")
        return value


class ProviderQuote(BaseModel):
    """Normalized payload every adapter returns from ``get_quote``."""

    model_config = ConfigDict(frozen=True)

    output_amount: float = Field(..., ge=0)
    fee_usd: float = Field(..., ge=0)
    estimated_time_seconds: float = Field(..., ge=0)
    gas_cost_usd: float = Field(default=0.0, ge=0)
    liquidity_usd: Optional[float] = Field(default=None, ge=0)
    steps: Tuple[Mapping[str, Any], ...] = Field(default_factory=tuple)

    @property
    def total_fee_usd(self) -> float:
        return round(self.fee_usd + self.gas_cost_usd, 6)


class QuoteErrorKind(str, Enum):
    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"


class RawQuote(BaseModel):
    """One provider's outcome for one request: a quote or a failure record."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    provider_name: str
    output_amount: float = Field(default=0.0, ge=0)
    total_fee_usd: float = Field(default=0.0, ge=0)
    fee_usd: float = Field(default=0.0, ge=0)
    gas_cost_usd: float = Field(default=0.0, ge=0)
    estimated_time_seconds: float = Field(default=0.0, ge=0)
    steps: Tuple[Mapping[str, Any], ...] = Field(default_factory=tuple)
    supported: bool
    error: Optional[str] = None
    error_kind: Optional[QuoteErrorKind] = None
    liquidity_usd: Optional[float] = Field(default=None, ge=0)
    fetched_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def validate_outcome(self) -> "RawQuote":
        if self.supported and self.error:
            raise ValueError("a supported quote cannot carry an error")
        if not self.supported and not self.error:
            raise ValueError("a failed quote must explain its error")
        return self

    @classmethod
    def success(
        cls, provider_id: str, provider_name: str, quote: ProviderQuote
    ) -> "RawQuote":
        return cls(
            provider_id=provider_id,
            provider_name=provider_name,
            output_amount=quote.output_amount,
            total_fee_usd=quote.total_fee_usd,
            fee_usd=quote.fee_usd,
            gas_cost_usd=quote.gas_cost_usd,
            estimated_time_seconds=quote.estimated_time_seconds,
            steps=quote.steps,
            liquidity_usd=quote.liquidity_usd,
            supported=True,
        )

    @classmethod
    def failure(
        cls,
        provider_id: str,
        provider_name: str,
        error: str,
        kind: QuoteErrorKind = QuoteErrorKind.PROVIDER_ERROR,
    ) -> "RawQuote":
        return cls(
            provider_id=provider_id,
            provider_name=provider_name,
            supported=False,
            error=error or "Unknown error",
            error_kind=kind,
        )


class SlippageConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SlippageEstimate(BaseModel):
    """Expected and worst-case price impact, in percent."""

    model_config = ConfigDict(frozen=True)

    expected: float = Field(..., ge=0)
    max: float = Field(..., ge=0)
    confidence: SlippageConfidence


class NormalizedScores(BaseModel):
    """Per-factor scores on the shared 0-100 scale."""

    model_config = ConfigDict(frozen=True)

    cost_score: float = Field(..., ge=0, le=100)
    speed_score: float = Field(..., ge=0, le=100)
    reliability_score: float = Field(..., ge=0, le=100)
    liquidity_score: float = Field(..., ge=0, le=100)


class RankingWeights(BaseModel):
    """Relative importance of each factor; normalized to sum to 1.0 before use."""

    model_config = ConfigDict(frozen=True)

    cost: float = Field(..., ge=0)
    speed: float = Field(..., ge=0)
    reliability: float = Field(..., ge=0)
    liquidity: float = Field(..., ge=0)

    @property
    def total(self) -> float:
        return self.cost + self.speed + self.reliability + self.liquidity

    def normalized(self) -> "RankingWeights":
        total = self.total
        if total <= 0 or not math.isfinite(total):
            raise InvalidWeightsError(
                "Ranking weights must have a positive total",
                context={"weights": self.as_dict()},
            )
        if math.isclose(total, 1.0, rel_tol=0.0, abs_tol=1e-12):
            return self
        return RankingWeights(
            cost=self.cost / total,
            speed=self.speed / total,
            reliability=self.reliability / total,
            liquidity=self.liquidity / total,
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "cost": self.cost,
            "speed": self.speed,
            "reliability": self.reliability,
            "liquidity": self.liquidity,
        }


class RouteQuote(BaseModel):
    """Route data of one successful quote, enriched for scoring."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    provider_name: str
    source_chain: str
    destination_chain: str
    source_token: str
    destination_token: str
    input_amount: float = Field(..., ge=0)
    output_amount: float = Field(..., ge=0)
    total_fee_usd: float = Field(..., ge=0)
    estimated_time_seconds: float = Field(..., ge=0)
    slippage: SlippageEstimate
    fee_usd: float = Field(default=0.0, ge=0)
    gas_cost_usd: float = Field(default=0.0, ge=0)
    steps: Tuple[Mapping[str, Any], ...] = Field(default_factory=tuple)
    liquidity_usd: float = Field(default=0.0, ge=0)
    reliability_score: float = Field(default=0.0, ge=0, le=100)
    failure_rate: float = Field(default=0.0, ge=0, le=1)


class ScoredQuote(BaseModel):
    """A route paired with its batch-relative normalized scores."""

    model_config = ConfigDict(frozen=True)

    route: RouteQuote
    scores: NormalizedScores


class RankedQuote(BaseModel):
    """Ranked output entry; failed providers carry ``rank=None`` and an error."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    provider_name: str
    route: Optional[RouteQuote] = None
    scores: Optional[NormalizedScores] = None
    composite_score: float = Field(default=0.0, ge=0, le=100)
    rank: Optional[int] = Field(default=None, ge=1)
    supported: bool = True
    error: Optional[str] = None
    error_kind: Optional[QuoteErrorKind] = None

    @model_validator(mode="after")
    def validate_entry(self) -> "RankedQuote":
        if self.supported and (self.route is None or self.scores is None):
            raise ValueError("ranked entries require route data and scores")
        if self.supported and self.rank is None:
            raise ValueError("ranked entries require a rank")
        if not self.supported and self.rank is not None:
            raise ValueError("failed entries cannot be ranked")
        return self


class QuoteResponse(BaseModel):
    """Engine output: ranked successes followed by failed entries."""

    model_config = ConfigDict(frozen=True)

    request: QuoteRequest
    optimization_mode: OptimizationMode
    weights: RankingWeights
    ranked_quotes: Tuple[RankedQuote, ...]
    best_route: Optional[RankedQuote] = None
    successful_provider_count: int = Field(..., ge=0)
    total_provider_count: int = Field(..., ge=0)
    fetch_duration_ms: int = Field(..., ge=0)

    @property
    def successful_quotes(self) -> Tuple[RankedQuote, ...]:
        return tuple(quote for quote in self.ranked_quotes if quote.supported)

    @property
    def failed_quotes(self) -> Tuple[RankedQuote, ...]:
        return tuple(quote for quote in self.ranked_quotes if not quote.supported)


# ----------------------------------------------------------------------
# Historical reliability
# ----------------------------------------------------------------------
class TransactionOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"  # stored, never counted


class WindowMode(str, Enum):
    TRANSACTION_COUNT = "TRANSACTION_COUNT"
    TIME_BASED = "TIME_BASED"


class ReliabilityTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RouteKey(BaseModel):
    """Unique (provider, source chain, destination chain) route triple."""

    model_config = ConfigDict(frozen=True)

    provider_id: str
    source_chain: str
    destination_chain: str

    @field_validator("provider_id", mode="before")
    @classmethod
    def validate_provider(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("provider_id must be a non-empty string")
        return value.strip()

    @field_validator("source_chain", "destination_chain", mode="before")
    @classmethod
    def validate_chain(cls, value: Any) -> str:
        return _normalize_chain(value)

    def __str__(self) -> str:
        return f"{self.provider_id}:{self.source_chain}->{self.destination_chain}"


class TransactionOutcomeEvent(BaseModel):
    """Append-only record of one real transfer on a route."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    route: RouteKey
    outcome: TransactionOutcome
    timestamp: datetime = Field(default_factory=utcnow)
    duration_ms: int = Field(default=0, ge=0)
    transaction_hash: Optional[str] = None
    failure_reason: Optional[str] = None


class OutcomeCounts(BaseModel):
    """Outcome tallies over a window; cancelled events are never included."""

    model_config = ConfigDict(frozen=True)

    total_attempts: int = Field(default=0, ge=0)
    successful: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    timeouts: int = Field(default=0, ge=0)

    @property
    def failure_rate(self) -> float:
        if not self.total_attempts:
            return 0.0
        return (self.failed + self.timeouts) / self.total_attempts

    @property
    def timeout_ratio(self) -> float:
        if not self.total_attempts:
            return 0.0
        return self.timeouts / self.total_attempts


class WindowConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: WindowMode = WindowMode.TRANSACTION_COUNT
    size: int = Field(..., ge=1)

    def describe(self) -> str:
        if self.mode is WindowMode.TIME_BASED:
            return f"last {self.size} days"
        return f"last {self.size} transactions"


class ReliabilityMetric(BaseModel):
    """Cached per-route reliability snapshot; one row per route triple."""

    model_config = ConfigDict(frozen=True)

    route: RouteKey
    counts: OutcomeCounts
    reliability_percent: float = Field(..., ge=0, le=100)
    reliability_score: float = Field(..., ge=0, le=100)
    tier: ReliabilityTier
    window: WindowConfig
    computed_at: datetime = Field(default_factory=utcnow)
    stale: bool = False


class ReliabilityBadge(BaseModel):
    model_config = ConfigDict(frozen=True)

    tier: ReliabilityTier
    label: str
    color: str
    tooltip: str


class ReliabilityReport(BaseModel):
    """On-demand reliability view of a route."""

    model_config = ConfigDict(frozen=True)

    route: RouteKey
    counts: OutcomeCounts
    reliability_percent: float
    reliability_score: float
    tier: ReliabilityTier
    badge: ReliabilityBadge
    window: WindowConfig
    last_computed_at: datetime


class RankingFactor(BaseModel):
    """Reliability-derived adjustment consumed by ranking callers."""

    model_config = ConfigDict(frozen=True)

    route: RouteKey
    reliability_score: float = Field(..., ge=0, le=100)
    penalty_applied: bool
    adjusted_score: float = Field(..., ge=0, le=100)
