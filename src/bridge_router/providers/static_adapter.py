"""Deterministic route-table adapters used for demos, default wiring and tests."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from bridge_router.domain.models import ProviderDescriptor, ProviderQuote, QuoteRequest

from .base import BaseBridgeAdapter, SupportedRoute, route_supported


@dataclass(frozen=True)
class FeeSchedule:
    """Pricing model of a simulated bridge."""

    fee_rate: float = 0.0
    flat_fee_usd: float = 0.0
    gas_cost_usd: float = 0.0
    estimated_time_seconds: float = 60.0
    liquidity_usd: Optional[float] = None
    latency_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.fee_rate < 0 or self.flat_fee_usd < 0 or self.gas_cost_usd < 0:
            raise ValueError("fees cannot be negative")
        if self.estimated_time_seconds < 0:
            raise ValueError("estimated_time_seconds cannot be negative")
        if self.latency_seconds < 0:
            raise ValueError("latency_seconds cannot be negative")


class StaticRouteAdapter(BaseBridgeAdapter):
    """Quotes from a fixed fee schedule over a declared route table."""

    def __init__(
        self,
        provider_id: str,
        routes: Sequence[SupportedRoute],
        schedule: FeeSchedule,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(provider_id, logger=logger)
        self._routes = tuple(routes)
        self._schedule = schedule

    def supports_route(
        self, source_chain: str, destination_chain: str, token: str
    ) -> bool:
        return route_supported(self._routes, source_chain, destination_chain, token)

    async def _fetch_quote(self, request: QuoteRequest) -> ProviderQuote:
        if self._schedule.latency_seconds:
            await asyncio.sleep(self._schedule.latency_seconds)

        schedule = self._schedule
        fee_usd = request.amount * schedule.fee_rate + schedule.flat_fee_usd
        output = max(request.amount - fee_usd - schedule.gas_cost_usd, 0.0)
        return ProviderQuote(
            output_amount=round(output, 6),
            fee_usd=round(fee_usd, 4),
            gas_cost_usd=round(schedule.gas_cost_usd, 4),
            estimated_time_seconds=schedule.estimated_time_seconds,
            liquidity_usd=schedule.liquidity_usd,
            steps=(
                {
                    "protocol": self.provider_id,
                    "type": "bridge",
                    "input_amount": request.amount,
                    "output_amount": round(output, 6),
                    "fee_usd": round(fee_usd, 4),
                },
            ),
        )


def _routes_between(chains: Sequence[str], tokens: Sequence[str]) -> List[SupportedRoute]:
    return [
        SupportedRoute.of(source, destination, tokens)
        for source in chains
        for destination in chains
        if source != destination
    ]


def default_static_providers() -> List[Tuple[StaticRouteAdapter, ProviderDescriptor]]:
    """Built-in simulated bridges mirroring commonly integrated providers."""

    catalogue = [
        (
            "stargate",
            "Stargate Finance",
            ("ethereum", "polygon", "arbitrum", "optimism", "binance", "avalanche"),
            ("USDC", "USDT", "ETH", "WBTC"),
            FeeSchedule(fee_rate=0.0006, flat_fee_usd=1.8, gas_cost_usd=1.2,
                        estimated_time_seconds=600, liquidity_usd=180_000_000),
        ),
        (
            "squid",
            "Squid Router",
            ("ethereum", "polygon", "arbitrum", "avalanche", "stellar"),
            ("USDC", "USDT", "ETH", "XLM"),
            FeeSchedule(fee_rate=0.0011, gas_cost_usd=0.9,
                        estimated_time_seconds=30, liquidity_usd=40_000_000),
        ),
        (
            "hop",
            "Hop Protocol",
            ("ethereum", "polygon", "arbitrum", "optimism"),
            ("USDC", "USDT", "ETH", "MATIC"),
            FeeSchedule(fee_rate=0.0025, gas_cost_usd=2.5,
                        estimated_time_seconds=300, liquidity_usd=25_000_000),
        ),
        (
            "cbridge",
            "cBridge",
            ("ethereum", "polygon", "arbitrum", "binance", "avalanche"),
            ("USDC", "USDT", "ETH", "BNB"),
            FeeSchedule(fee_rate=0.0007, gas_cost_usd=1.3,
                        estimated_time_seconds=90, liquidity_usd=60_000_000),
        ),
        (
            "soroswap",
            "Soroswap Bridge",
            ("stellar", "ethereum"),
            ("USDC", "XLM", "YXLM"),
            FeeSchedule(fee_rate=0.0003, gas_cost_usd=0.2,
                        estimated_time_seconds=15, liquidity_usd=5_000_000),
        ),
    ]

    providers: List[Tuple[StaticRouteAdapter, ProviderDescriptor]] = []
    for provider_id, name, chains, tokens, schedule in catalogue:
        adapter = StaticRouteAdapter(provider_id, _routes_between(chains, tokens), schedule)
        descriptor = ProviderDescriptor(
            id=provider_id,
            display_name=name,
            supported_chains=frozenset(chains),
            supported_tokens=frozenset(tokens),
        )
        providers.append((adapter, descriptor))
    return providers
