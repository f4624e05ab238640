import asyncio
import time

import pytest

from bridge_router.domain.exceptions import ProviderTimeoutError
from bridge_router.domain.models import (
    ProviderDescriptor,
    ProviderQuote,
    QuoteErrorKind,
    QuoteRequest,
)
from bridge_router.providers.registry import RegisteredProvider
from bridge_router.routing.collector import QuoteCollector


class _FakeAdapter:
    def __init__(self, *, delay: float = 0.0, error: Exception | None = None, fee: float = 1.0):
        self.delay = delay
        self.error = error
        self.fee = fee
        self.calls = 0
        self.cancelled = False

    def supports_route(self, source_chain, destination_chain, token):
        return True

    async def get_quote(self, request: QuoteRequest) -> ProviderQuote:
        self.calls += 1
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error:
            raise self.error
        return ProviderQuote(
            output_amount=request.amount - self.fee,
            fee_usd=self.fee,
            estimated_time_seconds=60,
        )


def _provider(provider_id: str, adapter: _FakeAdapter) -> RegisteredProvider:
    return RegisteredProvider(
        adapter=adapter,
        descriptor=ProviderDescriptor(
            id=provider_id,
            display_name=provider_id.title(),
            supported_chains={"ethereum", "polygon"},
            supported_tokens={"USDC"},
        ),
    )


@pytest.fixture
def request_() -> QuoteRequest:
    return QuoteRequest(
        source_chain="ethereum",
        destination_chain="polygon",
        source_token="USDC",
        amount=1_000,
    )


@pytest.mark.asyncio
async def test_collect_returns_one_result_per_provider_in_order(request_):
    providers = [
        _provider("alpha", _FakeAdapter(fee=3)),
        _provider("beta", _FakeAdapter(error=RuntimeError("bad gateway"))),
        _provider("gamma", _FakeAdapter(fee=1)),
    ]

    results = await QuoteCollector(timeout_seconds=1).collect(request_, providers)

    assert [quote.provider_id for quote in results] == ["alpha", "beta", "gamma"]
    assert [quote.supported for quote in results] == [True, False, True]
    assert results[1].error == "bad gateway"
    assert results[1].error_kind is QuoteErrorKind.PROVIDER_ERROR
    assert results[2].total_fee_usd == 1


@pytest.mark.asyncio
async def test_slow_provider_times_out_without_delaying_the_batch(request_):
    slow = _FakeAdapter(delay=5)
    providers = [_provider("fast", _FakeAdapter()), _provider("slow", slow)]
    collector = QuoteCollector(timeout_seconds=0.05)

    started = time.monotonic()
    results = await collector.collect(request_, providers)
    elapsed = time.monotonic() - started

    assert elapsed < 1.0
    assert results[0].supported
    timed_out = results[1]
    assert not timed_out.supported
    assert timed_out.error_kind is QuoteErrorKind.TIMEOUT
    assert timed_out.error == "Timeout fetching quote from 'slow' after 0.05s"
    assert slow.cancelled


@pytest.mark.asyncio
async def test_calls_run_concurrently(request_):
    providers = [_provider(f"p{i}", _FakeAdapter(delay=0.2)) for i in range(5)]

    started = time.monotonic()
    results = await QuoteCollector(timeout_seconds=2).collect(request_, providers)
    elapsed = time.monotonic() - started

    assert all(quote.supported for quote in results)
    assert elapsed < 0.9


@pytest.mark.asyncio
async def test_provider_timeout_error_is_reported_as_timeout(request_):
    providers = [_provider("slow", _FakeAdapter(error=ProviderTimeoutError()))]

    (result,) = await QuoteCollector().collect(request_, providers)

    assert result.error_kind is QuoteErrorKind.TIMEOUT
    assert result.error == ProviderTimeoutError.default_message


@pytest.mark.asyncio
async def test_empty_provider_list_makes_no_calls(request_):
    assert await QuoteCollector().collect(request_, []) == []


def test_timeout_must_be_positive():
    with pytest.raises(ValueError):
        QuoteCollector(timeout_seconds=0)
    assert QuoteCollector().timeout_seconds == 10.0
