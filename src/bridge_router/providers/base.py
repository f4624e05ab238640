"""Provider abstractions and shared adapter behavior."""

from __future__ import annotations

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Sequence

from bridge_router.domain.exceptions import (
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from bridge_router.domain.models import ProviderQuote, QuoteRequest


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration values shared by all provider adapters."""

    base_url: str
    api_key: Optional[str] = None
    timeout: float = 10.0
    max_retries: int = 2
    backoff_factor: float = 0.25

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must be provided")
        if self.timeout <= 0:
            raise ValueError("timeout must be greater than zero")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.backoff_factor <= 0:
            raise ValueError("backoff_factor must be greater than zero")


class BaseBridgeAdapter(ABC):
    """Template-method base class that handles retries and logging."""

    def __init__(
        self,
        provider_id: str,
        *,
        max_retries: int = 0,
        backoff_factor: float = 0.25,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.provider_id = provider_id
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    @abstractmethod
    def supports_route(
        self, source_chain: str, destination_chain: str, token: str
    ) -> bool:
        """Whether this adapter can quote the chain pair and token."""

    async def get_quote(self, request: QuoteRequest) -> ProviderQuote:
        """Run the provider call with retry/backoff on transient errors."""

        for attempt in range(self.max_retries + 1):
            self.log_request(request, attempt)
            try:
                quote = await self._fetch_quote(request)
                self.log_response(quote)
                return quote
            except ProviderRateLimitError as exc:
                if attempt == self.max_retries:
                    self.logger.error(
                        "Rate limit exhausted after retries", exc_info=exc
                    )
                    raise
                delay = self._backoff_delay(attempt)
                self.handle_rate_limit(exc, delay)
                await self._sleep(delay)
            except (ProviderUnavailableError, ProviderTimeoutError) as exc:
                if attempt == self.max_retries:
                    self.logger.error(
                        "Provider unavailable after retries", exc_info=exc
                    )
                    raise
                delay = self._backoff_delay(attempt)
                self.logger.warning("Provider unavailable, backing off", exc_info=exc)
                await self._sleep(delay)
            except ProviderError:
                raise
            except Exception as exc:
                self.logger.exception("Unexpected provider failure")
                raise ProviderError(
                    f"Unexpected provider failure: {exc}",
                    context={"provider": self.provider_id},
                ) from exc

        raise ProviderError("Failed to fetch quote")

    @abstractmethod
    async def _fetch_quote(self, request: QuoteRequest) -> ProviderQuote:
        """Provider-specific HTTP/on-chain interaction implemented by subclasses."""

    def log_request(self, request: QuoteRequest, attempt: int) -> None:
        self.logger.debug(
            "provider_request",
            extra={
                "provider": self.provider_id,
                "route": f"{request.source_chain}->{request.destination_chain}",
                "token": request.source_token,
                "attempt": attempt,
            },
        )

    def log_response(self, quote: ProviderQuote) -> None:
        self.logger.debug(
            "provider_response",
            extra={
                "provider": self.provider_id,
                "fee_usd": quote.total_fee_usd,
                "estimated_time_seconds": quote.estimated_time_seconds,
            },
        )

    def handle_rate_limit(self, error: ProviderRateLimitError, delay: float) -> None:
        """Allow subclasses to plug additional behavior when rate limited."""

        self.logger.warning(
            "Rate limited; backing off",
            extra={
                "delay": delay,
                "provider": self.provider_id,
                "context": getattr(error, "context", {}),
            },
        )

    def _backoff_delay(self, attempt: int) -> float:
        return self.backoff_factor * math.pow(2, attempt)

    async def _sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)


@dataclass(frozen=True)
class SupportedRoute:
    """One directional chain pair an adapter serves, with its token list."""

    source_chain: str
    destination_chain: str
    tokens: FrozenSet[str]

    @classmethod
    def of(
        cls, source_chain: str, destination_chain: str, tokens: Iterable[str]
    ) -> "SupportedRoute":
        return cls(
            source_chain=source_chain.lower(),
            destination_chain=destination_chain.lower(),
            tokens=frozenset(token.upper() for token in tokens),
        )

    def matches(self, source_chain: str, destination_chain: str, token: str) -> bool:
        return (
            self.source_chain == source_chain.lower()
            and self.destination_chain == destination_chain.lower()
            and token.upper() in self.tokens
        )


def route_supported(
    routes: Sequence[SupportedRoute],
    source_chain: str,
    destination_chain: str,
    token: str,
) -> bool:
    return any(
        route.matches(source_chain, destination_chain, token) for route in routes
    )
