"""Concurrent quote fan-out with per-provider deadlines."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from bridge_router.domain.exceptions import ProviderTimeoutError
from bridge_router.domain.models import QuoteErrorKind, QuoteRequest, RawQuote
from bridge_router.providers.registry import RegisteredProvider

DEFAULT_QUOTE_TIMEOUT_SECONDS = 10.0


class QuoteCollector:
    """Queries every eligible provider at once and settles all of them.

    Each provider call is bounded by its own deadline. Timeouts and provider
    errors are downgraded to failed ``RawQuote`` records so one slow or broken
    bridge never aborts or delays the rest of the batch.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_QUOTE_TIMEOUT_SECONDS,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        self._timeout = timeout_seconds
        self._logger = logger or logging.getLogger(__name__)

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    async def collect(
        self, request: QuoteRequest, providers: Sequence[RegisteredProvider]
    ) -> List[RawQuote]:
        """Return exactly one RawQuote per provider, in input order."""

        if not providers:
            return []

        started = time.monotonic()
        self._logger.info(
            "quotes_fetch_started",
            extra={
                "providers": [provider.id for provider in providers],
                "route": f"{request.source_chain}->{request.destination_chain}",
                "token": request.source_token,
                "amount": request.amount,
            },
        )

        results = await asyncio.gather(
            *(self._fetch_one(provider, request) for provider in providers)
        )

        succeeded = sum(1 for quote in results if quote.supported)
        self._logger.info(
            "quotes_fetch_settled",
            extra={
                "succeeded": succeeded,
                "failed": len(results) - succeeded,
                "elapsed_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return list(results)

    async def _fetch_one(
        self, provider: RegisteredProvider, request: QuoteRequest
    ) -> RawQuote:
        try:
            quote = await asyncio.wait_for(
                provider.adapter.get_quote(request), timeout=self._timeout
            )
            return RawQuote.success(provider.id, provider.name, quote)
        except asyncio.TimeoutError:
            message = (
                f"Timeout fetching quote from '{provider.id}' "
                f"after {self._timeout:g}s"
            )
            self._logger.warning(
                "provider_quote_timeout",
                extra={"provider": provider.id, "timeout_seconds": self._timeout},
            )
            return RawQuote.failure(
                provider.id, provider.name, message, QuoteErrorKind.TIMEOUT
            )
        except Exception as exc:
            kind = (
                QuoteErrorKind.TIMEOUT
                if isinstance(exc, ProviderTimeoutError)
                else QuoteErrorKind.PROVIDER_ERROR
            )
            self._logger.warning(
                "provider_quote_failed",
                extra={"provider": provider.id, "error": str(exc)},
            )
            return RawQuote.failure(
                provider.id, provider.name, str(exc) or type(exc).__name__, kind
            )
