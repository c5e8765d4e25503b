"""Kinked utilization interest-rate model: pure functions, no I/O."""
from __future__ import annotations

from decimal import Decimal

from ..decimal_math import (
    HUNDRED,
    ONE,
    Number,
    engine_context,
    round_places,
    safe_div,
    to_decimal,
)
from ..models import InterestRateCurve

DEFAULT_COMPOUNDING_PERIODS = 365


def utilization(collateral_total: Number, debt_total: Number) -> Decimal:
    """Debt over collateral; ``0`` for an empty market."""
    return safe_div(to_decimal(debt_total), to_decimal(collateral_total))


def borrow_rate(curve: InterestRateCurve, utilization: Number) -> Decimal:
    """Borrow APR for ``utilization`` on ``curve``.

    Below the kink:  base + (u / u*) * slope_1
    Above the kink:  base + slope_1 + ((u - u*) / (1 - u*)) * slope_2
    """
    u = to_decimal(utilization)
    optimal = curve.optimal_utilization

    with engine_context():
        if u <= optimal:
            # u* == 0 only reaches here with u == 0
            return curve.base + safe_div(u, optimal) * curve.slope_1

        excess = safe_div(u - optimal, ONE - optimal)
        return curve.base + curve.slope_1 + excess * curve.slope_2


def supply_rate(curve: InterestRateCurve, utilization: Number, borrow_rate: Number) -> Decimal:
    """Supply APR: borrow_rate * u * (1 - reserve_factor)."""
    with engine_context():
        return (
            to_decimal(borrow_rate)
            * to_decimal(utilization)
            * (ONE - curve.reserve_factor)
        )


def apr_to_apy(apr: Number, periods: int = DEFAULT_COMPOUNDING_PERIODS) -> Decimal:
    """Compound ``apr`` over ``periods`` equal periods per year.

    Borrow and supply APRs must go through the same ``periods`` so the spread
    between them stays meaningful.
    """
    if periods <= 0:
        raise ValueError(f"Compounding periods must be positive, got {periods}")
    with engine_context():
        return (ONE + to_decimal(apr) / periods) ** periods - ONE


def format_rate(rate: Number, places: int = 2) -> Decimal:
    """Fractional rate → percentage rounded to ``places`` (display only)."""
    with engine_context():
        return round_places(to_decimal(rate) * HUNDRED, places)


def rate_curve(
    curve: InterestRateCurve, steps: int = 100
) -> list[tuple[Decimal, Decimal, Decimal]]:
    """Sample ``(utilization, borrow_apr, supply_apr)`` over [0, 1]."""
    if steps <= 0:
        raise ValueError(f"steps must be positive, got {steps}")

    points: list[tuple[Decimal, Decimal, Decimal]] = []
    for i in range(steps + 1):
        with engine_context():
            u = Decimal(i) / steps
        borrow = borrow_rate(curve, u)
        points.append((u, borrow, supply_rate(curve, u, borrow)))
    return points
