"""Leverage changes: swap deltas, price impact and min-receive; no I/O.

Swap amounts arrive in each asset's smallest unit. Every cross-asset step
shifts by that asset's own decimals first; position balances are human
units.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from ..decimal_math import (
    HUNDRED,
    ONE,
    ZERO,
    Number,
    ceil_units,
    clamp,
    dmax,
    engine_context,
    floor_units,
    safe_div,
    to_base_units,
    to_decimal,
    to_human,
)
from ..errors import EngineError, InvalidLeverage
from ..models import (
    AssetPair,
    LeverageChange,
    LeverageCheck,
    Position,
    RebalanceDirection,
    RebalancePlan,
    SwapQuote,
)
from .position import current_leverage, health_factor

logger = logging.getLogger(__name__)

DEFAULT_SLIPPAGE_PCT = Decimal("0.5")


# ---------------------------------------------------------------------------
# Swap arithmetic
# ---------------------------------------------------------------------------


def _check_slippage(slippage_pct: Number) -> Decimal:
    slippage = to_decimal(slippage_pct)
    if not ZERO <= slippage <= HUNDRED:
        raise ValueError(f"Slippage must be within [0, 100]%, got {slippage}")
    return slippage


def price_impact_pct(
    amount_in: Number, amount_out: Number, from_decimals: int, to_decimals: int
) -> Decimal:
    """(out - in) / in * 100 with both sides in human units.

    An empty input is "no trade" and reports zero impact.
    """
    input_normalized = to_human(amount_in, from_decimals)
    output_normalized = to_human(amount_out, to_decimals)
    with engine_context():
        ratio = safe_div(output_normalized - input_normalized, input_normalized)
        return ratio * HUNDRED


def min_receive(amount_out: Number, slippage_pct: Number) -> Decimal:
    """Smallest acceptable swap output, rounded down to whole base units."""
    slippage = _check_slippage(slippage_pct)
    with engine_context():
        bounded = to_decimal(amount_out) * (ONE - slippage / HUNDRED)
    return floor_units(bounded)


# ---------------------------------------------------------------------------
# Rebalance plans
# ---------------------------------------------------------------------------


def _plan(
    direction: RebalanceDirection,
    position: Position,
    quote: SwapQuote | None,
    pair: AssetPair,
    slippage_pct: Number,
) -> RebalancePlan:
    _check_slippage(slippage_pct)

    if quote is None or not quote.is_complete:
        return RebalancePlan(
            direction=direction,
            new_collateral=position.collateral_amount,
            new_debt=position.debt_amount,
            price_impact_pct=ZERO,
            min_receive=ZERO,
        )

    if direction is RebalanceDirection.INCREASE:
        # debt asset in, collateral asset out
        from_decimals, to_decimals = pair.debt.decimals, pair.collateral.decimals
        with engine_context():
            new_debt = position.debt_amount + to_human(quote.amount_in, pair.debt.decimals)
    else:
        # collateral asset in, debt asset out
        from_decimals, to_decimals = pair.collateral.decimals, pair.debt.decimals
        with engine_context():
            new_debt = position.debt_amount - to_human(quote.amount_out, pair.debt.decimals)

    plan = RebalancePlan(
        direction=direction,
        new_collateral=position.collateral_amount,
        new_debt=new_debt,
        price_impact_pct=price_impact_pct(
            quote.amount_in, quote.amount_out, from_decimals, to_decimals
        ),
        min_receive=min_receive(quote.amount_out, slippage_pct),
    )
    logger.debug(
        "Rebalance %s: debt %s -> %s, impact %s%%, min_receive %s",
        direction.value,
        position.debt_amount,
        plan.new_debt,
        plan.price_impact_pct,
        plan.min_receive,
    )
    return plan


def plan_increase(
    position: Position,
    quote: SwapQuote | None,
    pair: AssetPair,
    slippage_pct: Number = DEFAULT_SLIPPAGE_PCT,
) -> RebalancePlan:
    """Borrow more debt asset and swap it into collateral.

    Collateral is left as-is; the swapped proceeds land in a following step
    that the caller reconciles against ``quote.amount_out``.
    """
    return _plan(RebalanceDirection.INCREASE, position, quote, pair, slippage_pct)


def plan_decrease(
    position: Position,
    quote: SwapQuote | None,
    pair: AssetPair,
    slippage_pct: Number = DEFAULT_SLIPPAGE_PCT,
) -> RebalancePlan:
    """Swap collateral into debt asset and repay with the proceeds."""
    return _plan(RebalanceDirection.DECREASE, position, quote, pair, slippage_pct)


# ---------------------------------------------------------------------------
# Leverage targets (USD values)
# ---------------------------------------------------------------------------


def _equity(collateral_usd: Decimal, debt_usd: Decimal) -> Decimal:
    with engine_context():
        equity = collateral_usd - debt_usd
    if equity <= 0:
        raise InvalidLeverage("Invalid position: negative or zero equity")
    return equity


def _check_target(target_leverage: Number) -> Decimal:
    target = to_decimal(target_leverage)
    if target < 1:
        raise InvalidLeverage(f"Target leverage must be at least 1x, got {target}")
    return target


def additional_borrow(
    collateral_usd: Number, debt_usd: Number, target_leverage: Number
) -> Decimal:
    """Extra debt (USD) reaching ``target_leverage``: (L - 1) * equity - debt."""
    collateral = to_decimal(collateral_usd)
    debt = to_decimal(debt_usd)
    target = _check_target(target_leverage)
    equity = _equity(collateral, debt)
    with engine_context():
        return dmax(ZERO, (target - 1) * equity - debt)


def collateral_to_withdraw(
    collateral_usd: Number, debt_usd: Number, target_leverage: Number
) -> Decimal:
    """Collateral (USD) to sell so collateral becomes L * equity."""
    collateral = to_decimal(collateral_usd)
    debt = to_decimal(debt_usd)
    target = _check_target(target_leverage)
    if debt <= 0:
        raise InvalidLeverage("Cannot decrease leverage with zero debt")
    equity = _equity(collateral, debt)
    with engine_context():
        return clamp(collateral - target * equity, ZERO, collateral)


def debt_to_repay(
    collateral_usd: Number, debt_usd: Number, target_leverage: Number
) -> Decimal:
    """Debt (USD) to repay, collateral fixed, to reach ``target_leverage``.

    target_debt = collateral - collateral / L
    """
    collateral = to_decimal(collateral_usd)
    debt = to_decimal(debt_usd)
    target = _check_target(target_leverage)
    if debt <= 0:
        raise InvalidLeverage("Cannot decrease leverage with zero debt")
    _equity(collateral, debt)
    with engine_context():
        target_debt = collateral - collateral / target
        return clamp(debt - target_debt, ZERO, debt)


def leverage_change_amounts(
    collateral_amount: Number,
    debt_amount: Number,
    collateral_price: Number,
    debt_price: Number,
    target_leverage: Number,
    pair: AssetPair,
) -> LeverageChange:
    """Translate a leverage target into swap input amounts (smallest units).

    Increasing yields the debt asset to borrow, rounded down. Decreasing
    yields the collateral to withdraw (rounded down) and the debt to repay
    (rounded up, so the repayment never falls short).
    """
    collateral_price = to_decimal(collateral_price)
    debt_price = to_decimal(debt_price)
    with engine_context():
        collateral_usd = to_human(collateral_amount, pair.collateral.decimals) * collateral_price
        debt_usd = to_human(debt_amount, pair.debt.decimals) * debt_price

    target = _check_target(target_leverage)
    is_increasing = target > current_leverage(collateral_usd, debt_usd)

    if is_increasing:
        borrow_usd = additional_borrow(collateral_usd, debt_usd, target)
        borrow = floor_units(
            to_base_units(safe_div(borrow_usd, debt_price), pair.debt.decimals)
        )
        return LeverageChange(is_increasing=True, additional_borrow_amount=borrow)

    if debt_usd <= 0:
        # already unlevered; nothing to unwind
        return LeverageChange(
            is_increasing=False, collateral_to_withdraw=ZERO, debt_to_repay=ZERO
        )

    withdraw_usd = collateral_to_withdraw(collateral_usd, debt_usd, target)
    repay_usd = debt_to_repay(collateral_usd, debt_usd, target)
    return LeverageChange(
        is_increasing=False,
        collateral_to_withdraw=floor_units(
            to_base_units(
                safe_div(withdraw_usd, collateral_price), pair.collateral.decimals
            )
        ),
        debt_to_repay=ceil_units(
            to_base_units(safe_div(repay_usd, debt_price), pair.debt.decimals)
        ),
    )


def validate_leverage_change(
    collateral_usd: Number,
    debt_usd: Number,
    target_leverage: Number,
    max_ltv: Number,
    min_health_factor: Number = ONE,
) -> LeverageCheck:
    """Health factor after moving to ``target_leverage``; never raises."""
    try:
        collateral = to_decimal(collateral_usd)
        debt = to_decimal(debt_usd)
        target = _check_target(target_leverage)
        min_hf = to_decimal(min_health_factor)

        if target > current_leverage(collateral, debt):
            # borrowed amount is swapped into collateral
            delta = additional_borrow(collateral, debt, target)
            with engine_context():
                new_collateral = collateral + delta
                new_debt = debt + delta
        else:
            # withdrawn collateral is swapped and repays debt
            delta = (
                collateral_to_withdraw(collateral, debt, target) if debt > 0 else ZERO
            )
            with engine_context():
                new_collateral = collateral - delta
                new_debt = debt - delta

        new_hf = health_factor(new_collateral, new_debt, max_ltv)
    except EngineError as e:
        return LeverageCheck(is_valid=False, new_health_factor=ZERO, message=str(e))

    if new_hf < min_hf:
        return LeverageCheck(
            is_valid=False,
            new_health_factor=new_hf,
            message=(
                f"Target leverage would result in health factor of {new_hf:.2f}, "
                f"which is below the safe threshold of {min_hf:.2f}"
            ),
        )
    return LeverageCheck(is_valid=True, new_health_factor=new_hf)
