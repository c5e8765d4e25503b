"""Debounced, supersede-aware rebalance previews for interactive callers.

The engine itself is synchronous and pure. This service sits at the
boundary where quotes are fetched: it waits for input to settle, cancels
work for requests that have been replaced, and never hands back a plan built
for an outdated request.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from ..config import AppConfig
from ..decimal_math import ZERO, Number, to_base_units, to_decimal
from ..engine.rebalancer import (
    DEFAULT_SLIPPAGE_PCT,
    leverage_change_amounts,
    plan_decrease,
    plan_increase,
)
from ..errors import StaleQuote
from ..interfaces.quote_source import QuoteSource
from ..models import AssetPair, LeverageChange, Position, RebalancePlan, SwapQuote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebalancePreviewResult:
    change: LeverageChange
    quote: SwapQuote | None
    plan: RebalancePlan


class RebalancePreview:
    """Turn leverage-slider moves into rebalance plans, one live request at a time."""

    def __init__(
        self,
        quote_source: QuoteSource,
        pair: AssetPair,
        debounce_seconds: float = 0.3,
        slippage_pct: Number = DEFAULT_SLIPPAGE_PCT,
    ) -> None:
        self._quote_source = quote_source
        self._pair = pair
        self._debounce_seconds = debounce_seconds
        self._slippage_pct = to_decimal(slippage_pct)
        self._generation = 0
        self._pending: asyncio.Task[RebalancePreviewResult] | None = None

    @classmethod
    def from_config(
        cls, quote_source: QuoteSource, config: AppConfig, strategy_name: str
    ) -> RebalancePreview:
        """Build a preview for a configured strategy using engine settings."""
        return cls(
            quote_source,
            config.asset_pair(strategy_name),
            debounce_seconds=config.engine.debounce_ms / 1000,
            slippage_pct=config.engine.default_slippage_pct,
        )

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self) -> None:
        """Drop the in-flight request, if any."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()

    async def preview(
        self,
        position: Position,
        collateral_price: Number,
        debt_price: Number,
        target_leverage: Number,
    ) -> RebalancePreviewResult:
        """Plan for moving ``position`` to ``target_leverage``.

        A newer call supersedes this one: the older caller gets ``StaleQuote``.
        """
        self.cancel()
        self._generation += 1
        generation = self._generation

        task = asyncio.ensure_future(
            self._run(generation, position, collateral_price, debt_price, target_leverage)
        )
        self._pending = task

        try:
            return await task
        except asyncio.CancelledError:
            if generation != self._generation:
                raise StaleQuote(
                    f"Preview request {generation} superseded by {self._generation}"
                ) from None
            raise

    async def _run(
        self,
        generation: int,
        position: Position,
        collateral_price: Number,
        debt_price: Number,
        target_leverage: Number,
    ) -> RebalancePreviewResult:
        if self._debounce_seconds > 0:
            await asyncio.sleep(self._debounce_seconds)

        pair = self._pair
        change = leverage_change_amounts(
            to_base_units(position.collateral_amount, pair.collateral.decimals),
            to_base_units(position.debt_amount, pair.debt.decimals),
            collateral_price,
            debt_price,
            target_leverage,
            pair,
        )

        if change.is_increasing:
            denom_in, denom_out = pair.debt.denom, pair.collateral.denom
            amount = change.additional_borrow_amount or ZERO
        else:
            denom_in, denom_out = pair.collateral.denom, pair.debt.denom
            amount = change.collateral_to_withdraw or ZERO

        quote: SwapQuote | None = None
        if amount > 0:
            quote = await self._quote_source.fetch_quote(
                denom_in, denom_out, amount, self._slippage_pct
            )
            if quote is None:
                logger.info("No swap route for %s -> %s (%s)", denom_in, denom_out, amount)

        if generation != self._generation:
            raise StaleQuote(
                f"Quote for request {generation} arrived after request {self._generation}"
            )

        planner = plan_increase if change.is_increasing else plan_decrease
        plan = planner(position, quote, pair, self._slippage_pct)
        logger.debug(
            "Preview %d: %s %s %s -> %s, impact %s%%",
            generation,
            plan.direction.value,
            amount,
            denom_in,
            denom_out,
            plan.price_impact_pct,
        )
        return RebalancePreviewResult(change=change, quote=quote, plan=plan)
