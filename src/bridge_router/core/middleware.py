"""Middleware system for quote-request cross-cutting concerns."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol, Sequence

from bridge_router.domain.models import QuoteRequest, QuoteResponse
from bridge_router.utils.validators import validate_request


class IMiddleware(Protocol):
    """Protocol describing middleware hooks."""

    def process_request(self, request: QuoteRequest) -> QuoteRequest: ...

    def process_response(self, response: QuoteResponse) -> QuoteResponse: ...


class LoggingMiddleware(IMiddleware):
    """Logs inbound quote requests and outbound ranked responses."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def process_request(self, request: QuoteRequest) -> QuoteRequest:
        self._logger.info(
            "quote_request",
            extra={
                "route": f"{request.source_chain}->{request.destination_chain}",
                "token": request.source_token,
                "amount": request.amount,
                "mode": request.optimization_mode.value,
            },
        )
        return request

    def process_response(self, response: QuoteResponse) -> QuoteResponse:
        best = response.best_route
        self._logger.info(
            "quote_response",
            extra={
                "best_provider": best.provider_id if best else None,
                "successful": response.successful_provider_count,
                "total": response.total_provider_count,
                "fetch_duration_ms": response.fetch_duration_ms,
            },
        )
        return response


class ValidationMiddleware(IMiddleware):
    """Rejects requests the engine should never see."""

    def process_request(self, request: QuoteRequest) -> QuoteRequest:
        validate_request(request)
        return request

    def process_response(self, response: QuoteResponse) -> QuoteResponse:
        return response


class MiddlewareChain:
    """Applies middleware around an async handler using chain of responsibility."""

    def __init__(self, middlewares: Sequence[IMiddleware]) -> None:
        self._middlewares = list(middlewares)

    async def execute(
        self,
        request: QuoteRequest,
        handler: Callable[[QuoteRequest], Awaitable[QuoteResponse]],
    ) -> QuoteResponse:
        for middleware in self._middlewares:
            request = middleware.process_request(request)

        response = await handler(request)

        for middleware in reversed(self._middlewares):
            response = middleware.process_response(response)

        return response
