"""Input validation helpers used across the router."""

from __future__ import annotations

from bridge_router.domain.models import QuoteRequest

MAX_TRANSFER_AMOUNT = 1_000_000_000_000
MAX_SLIPPAGE_TOLERANCE = 50.0


def validate_request(request: QuoteRequest) -> None:
    if request.source_chain == request.destination_chain:
        raise ValueError("source_chain and destination_chain must differ")
    validate_amount(request.amount)
    if request.slippage_tolerance is not None:
        validate_slippage_tolerance(request.slippage_tolerance)


def validate_amount(amount: float) -> None:
    if amount <= 0:
        raise ValueError("amount must be greater than zero")
    if amount > MAX_TRANSFER_AMOUNT:
        raise ValueError("amount exceeds maximum supported transfer size")


def validate_slippage_tolerance(tolerance: float) -> None:
    if not 0 <= tolerance <= MAX_SLIPPAGE_TOLERANCE:
        raise ValueError(
            f"slippage_tolerance must be between 0 and {MAX_SLIPPAGE_TOLERANCE:g}"
        )
