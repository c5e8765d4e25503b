"""Leveraged loop position economics: pure functions, no I/O."""
from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

from ..decimal_math import ONE, ZERO, Number, dmax, engine_context, safe_div, to_decimal
from ..errors import InvalidLeverage, InvalidPrincipal
from ..models import MarketSnapshot, PositionMetrics

logger = logging.getLogger(__name__)

# Kept below the theoretical liquidation leverage 1 / (1 - ltv).
MAX_LEVERAGE_SAFETY_BUFFER = Decimal("0.5")
INFINITE_HEALTH = Decimal("Infinity")


def compute(
    principal: Number,
    leverage: Number,
    collateral_apy: Number,
    debt_apy: Number,
    max_leverage: Number | None = None,
) -> PositionMetrics:
    """Economics of ``principal`` looped at ``leverage``.

    APYs are fractions (0.05 = 5%). Earnings are in the principal's unit.

    Raises:
        InvalidPrincipal: principal is negative.
        InvalidLeverage: leverage is below 1x or above ``max_leverage``.
    """
    principal = to_decimal(principal)
    leverage = to_decimal(leverage)
    collateral_apy = to_decimal(collateral_apy)
    debt_apy = to_decimal(debt_apy)

    if principal < 0:
        raise InvalidPrincipal(f"Principal must not be negative, got {principal}")
    if leverage < 1:
        raise InvalidLeverage(f"Leverage must be at least 1x, got {leverage}")
    if max_leverage is not None and leverage > to_decimal(max_leverage):
        raise InvalidLeverage(
            f"Leverage {leverage}x exceeds the maximum of {max_leverage}x"
        )

    with engine_context():
        leveraged_apy = leverage * collateral_apy - (leverage - 1) * debt_apy
        spread = collateral_apy - debt_apy
        return PositionMetrics(
            borrow_amount=principal * (leverage - 1),
            total_position=principal * leverage,
            leveraged_apy=leveraged_apy,
            base_apy=spread,
            yield_spread=spread,
            estimated_yearly_earnings=principal * leveraged_apy,
        )


def calculate_max_leverage(max_ltv: Number) -> Decimal:
    """Highest multiplier offered for a collateral with ``max_ltv``.

    max(1, 1 / (1 - ltv) - 0.5); no leverage when ``ltv <= 0``. An LTV of
    1 or more has no finite bound and also yields 1.
    """
    ltv = to_decimal(max_ltv)
    if ltv <= 0:
        return ONE
    with engine_context():
        return dmax(ONE, safe_div(ONE, ONE - ltv) - MAX_LEVERAGE_SAFETY_BUFFER)


def max_leverage_by_denom(snapshots: Iterable[MarketSnapshot]) -> dict[str, Decimal]:
    """Max leverage for every market, keyed by denom."""
    results: dict[str, Decimal] = {}
    for snapshot in snapshots:
        results[snapshot.denom] = calculate_max_leverage(snapshot.max_ltv)
        logger.debug(
            "Max leverage %s: ltv=%s -> %sx",
            snapshot.symbol or snapshot.denom,
            snapshot.max_ltv,
            results[snapshot.denom],
        )
    return results


def current_leverage(collateral_usd: Number, debt_usd: Number) -> Decimal:
    """collateral / (collateral - debt); ``0`` without positive equity."""
    collateral = to_decimal(collateral_usd)
    with engine_context():
        equity = collateral - to_decimal(debt_usd)
    if equity <= 0:
        return ZERO
    return safe_div(collateral, equity)


def health_factor(collateral_usd: Number, debt_usd: Number, max_ltv: Number) -> Decimal:
    """(collateral * ltv) / debt; infinite without debt."""
    debt = to_decimal(debt_usd)
    if debt <= 0:
        return INFINITE_HEALTH
    with engine_context():
        return to_decimal(collateral_usd) * to_decimal(max_ltv) / debt
