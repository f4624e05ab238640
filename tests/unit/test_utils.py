import pytest

from bridge_router.domain.models import QuoteRequest
from bridge_router.utils.validators import (
    MAX_TRANSFER_AMOUNT,
    validate_amount,
    validate_request,
    validate_slippage_tolerance,
)


def _request(**overrides) -> QuoteRequest:
    payload = {
        "source_chain": "ethereum",
        "destination_chain": "stellar",
        "source_token": "USDC",
        "amount": 100,
    }
    payload.update(overrides)
    return QuoteRequest(**payload)


def test_validate_request_accepts_cross_chain_transfer():
    validate_request(_request(slippage_tolerance=0.5))


def test_validate_request_rejects_same_chain_route():
    with pytest.raises(ValueError):
        validate_request(_request(destination_chain="Ethereum"))


def test_validate_amount_bounds():
    with pytest.raises(ValueError):
        validate_amount(0)
    with pytest.raises(ValueError):
        validate_amount(MAX_TRANSFER_AMOUNT * 2)
    validate_amount(MAX_TRANSFER_AMOUNT)


def test_validate_slippage_tolerance_bounds():
    validate_slippage_tolerance(0)
    with pytest.raises(ValueError):
        validate_slippage_tolerance(75)
    with pytest.raises(ValueError):
        validate_request(_request(slippage_tolerance=60))
