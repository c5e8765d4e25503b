"""Swap quote normalization and swap-action payloads."""
from __future__ import annotations

from decimal import ROUND_FLOOR
from typing import Any

from ..decimal_math import ZERO, Number, round_places, to_decimal, to_human
from ..models import AssetPair, RiskWarning, SwapQuote, SwapSummary
from .rebalancer import DEFAULT_SLIPPAGE_PCT, min_receive, price_impact_pct

DISPLAY_PLACES = 6

NEUTRAL_SUMMARY = SwapSummary(price_impact_pct=ZERO, min_receive_display=None)


def normalize(
    quote: SwapQuote | None,
    slippage_pct: Number,
    pair: AssetPair,
    is_increase: bool,
) -> SwapSummary:
    """Price impact and displayable min-receive for a quote.

    A missing quote is the normal "no route available" state, not an error.
    """
    if quote is None or not quote.is_complete:
        return NEUTRAL_SUMMARY

    if is_increase:
        from_decimals, to_decimals = pair.debt.decimals, pair.collateral.decimals
    else:
        from_decimals, to_decimals = pair.collateral.decimals, pair.debt.decimals

    floor = min_receive(quote.amount_out, slippage_pct)
    return SwapSummary(
        price_impact_pct=price_impact_pct(
            quote.amount_in, quote.amount_out, from_decimals, to_decimals
        ),
        min_receive_display=round_places(
            to_human(floor, to_decimals), DISPLAY_PLACES, rounding=ROUND_FLOOR
        ),
    )


def build_swap_action(
    coin_in_denom: str,
    coin_in_amount: Number,
    quote: SwapQuote,
    slippage_pct: Number = DEFAULT_SLIPPAGE_PCT,
) -> dict[str, Any]:
    """``swap_exact_in`` payload for the transaction layer.

    Amounts are integer strings in smallest units.
    """
    if not quote.is_complete:
        raise ValueError("Cannot build a swap action from an incomplete quote")

    amount_in = to_decimal(coin_in_amount)
    return {
        "swap_exact_in": {
            "coin_in": {"denom": coin_in_denom, "amount": f"{amount_in:f}"},
            "denom_out": quote.denom_out,
            "route": quote.route,
            "min_receive": f"{min_receive(quote.amount_out, slippage_pct):f}",
        }
    }


def price_impact_warning(impact_pct: Number) -> RiskWarning | None:
    """Severity of a price impact, ``None`` below 1%."""
    impact = abs(to_decimal(impact_pct))
    if impact >= 5:
        return RiskWarning(
            "danger",
            "Very high price impact detected! You will lose a significant amount "
            "due to price impact. Consider reducing your trade size.",
        )
    if impact >= 2:
        return RiskWarning(
            "warning",
            "High price impact detected. This trade will move the market price "
            "significantly against you.",
        )
    if impact >= 1:
        return RiskWarning(
            "info",
            "Moderate price impact. Your trade will affect the market price slightly.",
        )
    return None


def leverage_warning(
    leverage: Number, max_leverage: Number | None = None
) -> RiskWarning | None:
    """Liquidation-risk warning for a chosen multiplier."""
    lev = to_decimal(leverage)
    if max_leverage is not None and lev > to_decimal(max_leverage):
        max_lev = to_decimal(max_leverage)
        return RiskWarning(
            "danger",
            f"Leverage of {lev:.2f}x exceeds the maximum allowed leverage of "
            f"{max_lev:.2f}x for this strategy. Reduce leverage to stay within "
            f"safe limits.",
        )
    if lev >= 8:
        return RiskWarning(
            "danger",
            "EXTREME LEVERAGE: Your position is at high risk of liquidation. "
            "Even small price movements could result in liquidation.",
        )
    if lev >= 6:
        return RiskWarning(
            "warning",
            "HIGH LEVERAGE: Your position is at increased liquidation risk. "
            "Monitor your position closely.",
        )
    return None
