"""Price-impact estimation from pool liquidity."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

from bridge_router.domain.interfaces import ILiquiditySource, ISlippageEstimator
from bridge_router.domain.models import RawQuote, SlippageConfidence, SlippageEstimate

MAX_SLIPPAGE_MULTIPLIER = 2.5
HIGH_CONFIDENCE_RATIO = 0.001
MEDIUM_CONFIDENCE_RATIO = 0.01
CONSERVATIVE_DIVISOR_USD = 100_000
CONSERVATIVE_CAP_PERCENT = 5.0


@dataclass(frozen=True)
class LiquidityPool:
    token: str
    chain: str
    tvl_usd: float
    daily_volume_usd: float = 0.0


DEFAULT_POOLS: Tuple[LiquidityPool, ...] = (
    LiquidityPool("USDC", "ethereum", 50_000_000, 10_000_000),
    LiquidityPool("USDC", "stellar", 5_000_000, 1_000_000),
    LiquidityPool("USDT", "ethereum", 40_000_000, 8_000_000),
    LiquidityPool("ETH", "ethereum", 200_000_000, 50_000_000),
    LiquidityPool("XLM", "stellar", 2_000_000, 500_000),
)


class StaticLiquiditySource(ILiquiditySource):
    """In-memory pool table keyed by (token, chain)."""

    def __init__(self, pools: Iterable[LiquidityPool] = DEFAULT_POOLS) -> None:
        self._pools: Dict[Tuple[str, str], LiquidityPool] = {
            (pool.token.upper(), pool.chain.lower()): pool for pool in pools
        }

    def pool_tvl(self, token: str, chain: str) -> Optional[float]:
        pool = self._pools.get((token.upper(), chain.lower()))
        return pool.tvl_usd if pool else None


class SlippageEstimator(ISlippageEstimator):
    """Constant-product approximation of price impact.

    ``impact = 1 - 1 / sqrt(1 + amount / tvl)`` expressed in percent, with the
    worst case bounded at 2.5x the expectation. Missing liquidity data falls
    back to a capped, trade-size proportional guess with low confidence.
    """

    def __init__(
        self,
        liquidity: Optional[ILiquiditySource] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._liquidity = liquidity or StaticLiquiditySource()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def liquidity(self) -> ILiquiditySource:
        return self._liquidity

    def estimate(
        self,
        quote: RawQuote,
        source_token: str,
        source_chain: str,
        amount_usd: float,
    ) -> SlippageEstimate:
        amount = amount_usd if math.isfinite(amount_usd) and amount_usd > 0 else 0.0
        tvl = self._lookup(source_token, source_chain)

        if tvl is None:
            self._logger.warning(
                "liquidity_data_missing",
                extra={
                    "provider": quote.provider_id,
                    "token": source_token,
                    "chain": source_chain,
                },
            )
            return self.conservative_estimate(amount)

        ratio = amount / tvl
        expected = price_impact_percent(ratio)
        return SlippageEstimate(
            expected=round(expected, 4),
            max=round(expected * MAX_SLIPPAGE_MULTIPLIER, 4),
            confidence=confidence_for_ratio(ratio),
        )

    def estimate_batch(
        self,
        quotes: Sequence[RawQuote],
        source_token: str,
        source_chain: str,
        amount_usd: float,
    ) -> Mapping[str, SlippageEstimate]:
        return {
            quote.provider_id: self.estimate(quote, source_token, source_chain, amount_usd)
            for quote in quotes
        }

    @staticmethod
    def conservative_estimate(amount_usd: float) -> SlippageEstimate:
        base = min(max(amount_usd, 0.0) / CONSERVATIVE_DIVISOR_USD, CONSERVATIVE_CAP_PERCENT)
        return SlippageEstimate(
            expected=round(base, 4),
            max=round(base * 2, 4),
            confidence=SlippageConfidence.LOW,
        )

    def _lookup(self, token: str, chain: str) -> Optional[float]:
        try:
            tvl = self._liquidity.pool_tvl(token, chain)
        except Exception:
            self._logger.exception(
                "liquidity_lookup_failed", extra={"token": token, "chain": chain}
            )
            return None
        if tvl is None or not math.isfinite(tvl) or tvl <= 0:
            return None
        return tvl


def price_impact_percent(impact_ratio: float) -> float:
    return (1 - 1 / math.sqrt(1 + max(impact_ratio, 0.0))) * 100


def confidence_for_ratio(ratio: float) -> SlippageConfidence:
    if ratio < HIGH_CONFIDENCE_RATIO:
        return SlippageConfidence.HIGH
    if ratio < MEDIUM_CONFIDENCE_RATIO:
        return SlippageConfidence.MEDIUM
    return SlippageConfidence.LOW
