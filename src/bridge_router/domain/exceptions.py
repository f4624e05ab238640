"""Exception hierarchy for domain-specific bridge routing failures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Sequence

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .models import RawQuote


class BridgeRouterError(Exception):
    """Base class for all domain-level errors in the bridge router."""

    default_message = "Bridge router error occurred"

    def __init__(
        self, message: str | None = None, *, context: Mapping[str, Any] | None = None
    ):
        self.message = message or self.default_message
        self.context: Mapping[str, Any] = dict(context or {})
        formatted = self._format_message()
        super().__init__(formatted)

    def _format_message(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ProviderError(BridgeRouterError):
    """Generic provider-related issues (availability, rate limits, bad payloads)."""

    default_message = "Provider error"


class ProviderUnavailableError(ProviderError):
    """Provider service is down or unreachable."""

    default_message = "Provider is unavailable"


class ProviderRateLimitError(ProviderError):
    """Provider refuses request due to rate limiting."""

    default_message = "Provider rate limit exceeded"


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within its quote deadline."""

    default_message = "Provider quote timed out"


class RoutingError(BridgeRouterError):
    """Failures while aggregating or ranking routes."""

    default_message = "Routing error"
    status_code = 500


class RouteNotSupportedError(RoutingError):
    """No registered provider supports the requested chain/token route."""

    default_message = "No bridge providers support the requested route"
    status_code = 404


class AllProvidersFailedError(RoutingError):
    """Every eligible provider failed; carries the failed quotes for diagnostics."""

    default_message = "All bridge providers failed to respond"
    status_code = 503

    def __init__(
        self,
        message: str | None = None,
        *,
        failed_quotes: Sequence["RawQuote"] = (),
        context: Mapping[str, Any] | None = None,
    ):
        self.failed_quotes = tuple(failed_quotes)
        super().__init__(message, context=context)


class InvalidWeightsError(RoutingError):
    """Raised when ranking weights cannot be normalized."""

    default_message = "Invalid ranking weights"


class ReliabilityError(BridgeRouterError):
    """Raised when the reliability stores cannot be read or written."""

    default_message = "Reliability store error"

