"""Generic REST quote adapter built on top of ``BaseBridgeAdapter``."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from bridge_router.domain.exceptions import (
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from bridge_router.domain.models import ProviderQuote, QuoteRequest

from .base import BaseBridgeAdapter, ProviderConfig, SupportedRoute, route_supported


DEFAULT_QUOTE_PATH = "/v1/quote"


class HttpBridgeAdapter(BaseBridgeAdapter):
    """Speaks to a bridge's quote endpoint over an injected ``httpx.AsyncClient``.

    The endpoint is expected to answer ``GET {base_url}{quote_path}`` with a JSON
    body carrying ``outputAmount``, ``feeUsd`` and ``estimatedTimeSeconds`` plus
    the optional ``gasCostUsd``, ``liquidityUsd`` and ``steps`` fields.
    """

    def __init__(
        self,
        provider_id: str,
        http_client: httpx.AsyncClient,
        config: ProviderConfig,
        routes: Sequence[SupportedRoute],
        *,
        quote_path: str = DEFAULT_QUOTE_PATH,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(
            provider_id,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
            logger=logger,
        )
        self.config = config
        self._http = http_client
        self._routes = tuple(routes)
        self._endpoint = f"{config.base_url.rstrip('/')}/{quote_path.lstrip('/')}"

    def supports_route(
        self, source_chain: str, destination_chain: str, token: str
    ) -> bool:
        return route_supported(self._routes, source_chain, destination_chain, token)

    async def _fetch_quote(self, request: QuoteRequest) -> ProviderQuote:
        try:
            http_response = await self._http.get(
                self._endpoint,
                params=self._build_params(request),
                headers=self._build_headers(),
                timeout=self.config.timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(
                f"{self.provider_id} quote request timed out",
                context={"endpoint": self._endpoint},
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderUnavailableError(
                f"{self.provider_id} is unreachable",
                context={"endpoint": self._endpoint, "reason": str(exc)},
            ) from exc

        return self._map_response(http_response)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_params(self, request: QuoteRequest) -> Dict[str, Any]:
        return {
            "fromChain": request.source_chain,
            "toChain": request.destination_chain,
            "fromToken": request.source_token,
            "toToken": request.destination_token,
            "amount": str(request.amount),
        }

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def _map_response(self, http_response: httpx.Response) -> ProviderQuote:
        status = http_response.status_code

        if status == 429:
            raise ProviderRateLimitError(
                f"{self.provider_id} rate limit exceeded",
                context={"status_code": status},
            )
        if status >= 500:
            raise ProviderUnavailableError(
                f"{self.provider_id} service unavailable",
                context={"status_code": status},
            )
        if status >= 400:
            raise ProviderError(
                self._error_message(http_response)
                or f"{self.provider_id} quote request failed",
                context={"status_code": status},
            )

        try:
            data = http_response.json()
            return ProviderQuote(
                output_amount=float(data["outputAmount"]),
                fee_usd=float(data["feeUsd"]),
                estimated_time_seconds=float(data["estimatedTimeSeconds"]),
                gas_cost_usd=float(data.get("gasCostUsd") or 0.0),
                liquidity_usd=(
                    float(data["liquidityUsd"])
                    if data.get("liquidityUsd") is not None
                    else None
                ),
                steps=tuple(data.get("steps") or ()),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(
                f"Malformed {self.provider_id} quote response",
                context={"body": http_response.text[:200]},
            ) from exc

    @staticmethod
    def _error_message(http_response: httpx.Response) -> Optional[str]:
        try:
            data = http_response.json()
        except ValueError:
            return None
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict):
                return error.get("message")
            if isinstance(error, str):
                return error
            return data.get("message")
        return None
