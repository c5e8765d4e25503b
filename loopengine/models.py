"""Data models, all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from .decimal_math import ONE, ZERO, engine_context, to_decimal
from .errors import ErrorKind, InvalidLeverage, InvalidPrincipal


@dataclass(frozen=True)
class InterestRateCurve:
    """Kinked utilization curve parameters of one market."""

    base: Decimal
    optimal_utilization: Decimal
    slope_1: Decimal
    slope_2: Decimal
    reserve_factor: Decimal = ZERO

    def __post_init__(self) -> None:
        for name in ("base", "optimal_utilization", "slope_1", "slope_2", "reserve_factor"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        if not ZERO <= self.optimal_utilization <= ONE:
            raise ValueError(
                f"optimal_utilization must be within [0, 1], got {self.optimal_utilization}"
            )
        if not ZERO <= self.reserve_factor <= ONE:
            raise ValueError(
                f"reserve_factor must be within [0, 1], got {self.reserve_factor}"
            )
        if self.slope_1 < 0 or self.slope_2 < 0:
            raise ValueError("Curve slopes must not be negative")


@dataclass(frozen=True)
class MarketSnapshot:
    """Point-in-time market state supplied by the market data source.

    ``collateral_total`` and ``debt_total`` are in the asset's smallest unit.
    """

    collateral_total: Decimal
    debt_total: Decimal
    curve: InterestRateCurve
    price_usd: Decimal = ZERO
    decimals: int = 6
    denom: str = ""
    symbol: str = ""
    max_ltv: Decimal = Decimal("0.8")

    def __post_init__(self) -> None:
        for name in ("collateral_total", "debt_total", "price_usd", "max_ltv"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"decimals must fit in a u8, got {self.decimals}")


class ActionKind(str, Enum):
    DEPOSIT = "deposit"
    BORROW = "borrow"
    WITHDRAW = "withdraw"


@dataclass(frozen=True)
class ActionIntent:
    kind: ActionKind
    amount_base_units: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", ActionKind(self.kind))
        object.__setattr__(self, "amount_base_units", to_decimal(self.amount_base_units))


@dataclass(frozen=True)
class ProjectedRates:
    """Rates after a hypothetical action. APRs and APYs are fractions."""

    utilization: Decimal
    borrow_apr: Decimal
    supply_apr: Decimal
    borrow_apy: Decimal = ZERO
    supply_apy: Decimal = ZERO


@dataclass(frozen=True)
class Position:
    """Looped position.

    Amounts are human units of their own asset; ``principal`` and
    ``collateral_amount`` share the collateral asset, ``debt_amount`` is in the
    debt asset. For same-priced loops (BTC against a BTC derivative) the
    target-state identities hold across both.
    """

    principal: Decimal
    leverage: Decimal
    collateral_amount: Decimal
    debt_amount: Decimal

    @classmethod
    def at_leverage(cls, principal: Any, leverage: Any) -> Position:
        """Build the target state for ``principal`` looped ``leverage`` times."""
        principal = to_decimal(principal)
        leverage = to_decimal(leverage)
        if principal < 0:
            raise InvalidPrincipal(f"Principal must not be negative, got {principal}")
        if leverage < 1:
            raise InvalidLeverage(f"Leverage must be at least 1x, got {leverage}")
        with engine_context():
            return cls(
                principal=principal,
                leverage=leverage,
                collateral_amount=principal * leverage,
                debt_amount=principal * (leverage - 1),
            )

    @classmethod
    def from_balances(cls, collateral_amount: Any, debt_amount: Any) -> Position:
        """Build a position from observed balances (both in the same unit).

        Leverage is ``collateral / equity``; a position without positive
        equity reports leverage 0.
        """
        collateral = to_decimal(collateral_amount)
        debt = to_decimal(debt_amount)
        with engine_context():
            equity = collateral - debt
            leverage = collateral / equity if equity > 0 else ZERO
        return cls(
            principal=equity,
            leverage=leverage,
            collateral_amount=collateral,
            debt_amount=debt,
        )


@dataclass(frozen=True)
class PositionMetrics:
    borrow_amount: Decimal
    total_position: Decimal
    leveraged_apy: Decimal
    base_apy: Decimal
    yield_spread: Decimal
    estimated_yearly_earnings: Decimal


@dataclass(frozen=True)
class AssetInfo:
    denom: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class AssetPair:
    """Collateral and debt assets of a loop strategy."""

    collateral: AssetInfo
    debt: AssetInfo


@dataclass(frozen=True)
class SwapQuote:
    """Quote from the swap quoting service, amounts in smallest units.

    Either amount may be ``None`` when the service answered partially.
    """

    amount_in: Decimal | None
    amount_out: Decimal | None
    route: Any = None
    denom_in: str = ""
    denom_out: str = ""

    def __post_init__(self) -> None:
        for name in ("amount_in", "amount_out"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_decimal(value))

    @property
    def is_complete(self) -> bool:
        return self.amount_in is not None and self.amount_out is not None


class RebalanceDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


@dataclass(frozen=True)
class RebalancePlan:
    """Balances after a leverage change plus the swap's binding numbers."""

    direction: RebalanceDirection
    new_collateral: Decimal
    new_debt: Decimal
    price_impact_pct: Decimal
    min_receive: Decimal


@dataclass(frozen=True)
class LeverageChange:
    """Token amounts (smallest units) needed to reach a target leverage."""

    is_increasing: bool
    additional_borrow_amount: Decimal | None = None
    collateral_to_withdraw: Decimal | None = None
    debt_to_repay: Decimal | None = None


@dataclass(frozen=True)
class LeverageCheck:
    is_valid: bool
    new_health_factor: Decimal
    message: str = ""


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a withdrawal check; ``max_withdrawable`` in human units."""

    is_valid: bool
    max_withdrawable: Decimal
    error: ErrorKind | None = None
    message: str = ""


@dataclass(frozen=True)
class SwapSummary:
    price_impact_pct: Decimal
    min_receive_display: Decimal | None = None


@dataclass(frozen=True)
class RiskWarning:
    level: str
    message: str
