"""Project market rates after a hypothetical deposit or borrow."""
from __future__ import annotations

import logging

from ..decimal_math import ZERO, engine_context
from ..errors import InvalidAmountFormat, UnsupportedAction
from ..models import ActionIntent, ActionKind, MarketSnapshot, ProjectedRates
from .interest_rate import (
    DEFAULT_COMPOUNDING_PERIODS,
    apr_to_apy,
    borrow_rate,
    supply_rate,
    utilization,
)

logger = logging.getLogger(__name__)


def project(
    snapshot: MarketSnapshot,
    intent: ActionIntent,
    compounding_periods: int = DEFAULT_COMPOUNDING_PERIODS,
) -> ProjectedRates:
    """Rates the market would show once ``intent`` has been applied.

    Withdrawals are rejected here: their legality depends on pool liquidity,
    which ``withdrawal.validate`` checks instead.
    """
    amount = intent.amount_base_units
    if amount < 0:
        raise InvalidAmountFormat(f"Action amount must not be negative, got {amount}")

    collateral = snapshot.collateral_total
    debt = snapshot.debt_total

    with engine_context():
        if intent.kind is ActionKind.DEPOSIT:
            collateral = collateral + amount
        elif intent.kind is ActionKind.BORROW:
            debt = debt + amount
        else:
            raise UnsupportedAction(
                f"Cannot project '{intent.kind.value}'; use withdrawal validation"
            )

    u = utilization(collateral, debt)
    borrow = borrow_rate(snapshot.curve, u)
    supply = supply_rate(snapshot.curve, u, borrow)

    logger.debug(
        "Projected %s %s on %s: utilization=%s borrow=%s supply=%s",
        intent.kind.value,
        amount,
        snapshot.denom or "market",
        u,
        borrow,
        supply,
    )

    return ProjectedRates(
        utilization=u,
        borrow_apr=borrow,
        supply_apr=supply,
        borrow_apy=apr_to_apy(borrow, compounding_periods),
        supply_apy=apr_to_apy(supply, compounding_periods),
    )


def current_rates(
    snapshot: MarketSnapshot,
    compounding_periods: int = DEFAULT_COMPOUNDING_PERIODS,
) -> ProjectedRates:
    """Rates of the snapshot as-is."""
    return project(
        snapshot, ActionIntent(ActionKind.DEPOSIT, ZERO), compounding_periods
    )
