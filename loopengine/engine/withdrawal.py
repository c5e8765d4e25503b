"""Withdrawal bounds against pool liquidity and the user's own deposit."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from ..decimal_math import ZERO, Number, dmax, dmin, engine_context, to_decimal, to_human
from ..errors import ErrorKind, InvalidAmountFormat
from ..models import MarketSnapshot, ValidationResult

logger = logging.getLogger(__name__)

# Partial withdrawals are checked 1% high to absorb interest accrual and
# rounding between display and execution.
WITHDRAW_BUFFER = Decimal("1.01")

INSUFFICIENT_LIQUIDITY = "Insufficient liquidity in pool. Try a smaller amount."


def find_market(snapshots: Iterable[MarketSnapshot], denom: str) -> MarketSnapshot | None:
    """First snapshot for ``denom``, or ``None``."""
    for snapshot in snapshots:
        if snapshot.denom == denom:
            return snapshot
    return None


def available_liquidity(market: MarketSnapshot) -> Decimal:
    """collateral_total - debt_total in smallest units, never negative."""
    with engine_context():
        liquidity = market.collateral_total - market.debt_total
    if liquidity < 0:
        logger.warning(
            "Negative liquidity for %s (collateral=%s debt=%s); clamping to 0",
            market.denom or "market",
            market.collateral_total,
            market.debt_total,
        )
    return dmax(ZERO, liquidity)


def validate(
    requested_amount: Number | None,
    market: MarketSnapshot | None,
    user_deposited_amount: Number | None,
) -> ValidationResult:
    """Check a withdrawal request.

    Args:
        requested_amount: Amount in human units, usually raw input text;
            blank means zero.
        market: Snapshot of the asset's market, ``None`` when unknown.
        user_deposited_amount: The user's deposit in smallest units.

    Withdrawing exactly the full deposit is compared as-is; any other amount
    is inflated by 1% first.
    """
    if market is None:
        return ValidationResult(
            is_valid=False,
            max_withdrawable=ZERO,
            error=ErrorKind.MARKET_NOT_FOUND,
            message="Market not found",
        )

    try:
        requested = to_decimal(requested_amount)
        deposited = to_human(to_decimal(user_deposited_amount), market.decimals)
    except InvalidAmountFormat:
        return ValidationResult(
            is_valid=False,
            max_withdrawable=ZERO,
            error=ErrorKind.INVALID_AMOUNT_FORMAT,
            message="Invalid amount format",
        )

    liquidity = to_human(available_liquidity(market), market.decimals)
    max_withdrawable = dmin(deposited, liquidity)

    with engine_context():
        compared = requested if requested == deposited else requested * WITHDRAW_BUFFER
    is_valid = compared <= max_withdrawable

    return ValidationResult(
        is_valid=is_valid,
        max_withdrawable=max_withdrawable,
        error=None,
        message="" if is_valid else INSUFFICIENT_LIQUIDITY,
    )
