"""Unit tests for leverage rebalancing: swap deltas, impact and targets."""
from __future__ import annotations

from decimal import Decimal

import pytest

from loopengine.engine.rebalancer import (
    additional_borrow,
    collateral_to_withdraw,
    debt_to_repay,
    leverage_change_amounts,
    min_receive,
    plan_decrease,
    plan_increase,
    price_impact_pct,
    validate_leverage_change,
)
from loopengine.errors import InvalidLeverage
from loopengine.models import AssetPair, Position, RebalanceDirection, SwapQuote


class TestPriceImpact:
    def test_shifts_each_side_by_its_own_decimals(self) -> None:
        # 1 unit of an 18-decimal token for 1 unit of a 6-decimal token
        assert price_impact_pct(10**18, 10**6, 18, 6) == 0

    def test_one_percent_loss(self) -> None:
        assert price_impact_pct(10_000_000, 99 * 10**15, 8, 18) == Decimal(-1)

    def test_gain_is_positive(self) -> None:
        assert price_impact_pct(100, 102, 0, 0) == Decimal(2)

    def test_empty_input_is_zero(self) -> None:
        assert price_impact_pct(0, 100, 6, 6) == 0


class TestMinReceive:
    def test_rounds_down(self) -> None:
        # 12345 * 0.99 = 12221.55
        assert min_receive(12345, 1) == Decimal(12221)

    def test_zero_slippage(self) -> None:
        assert min_receive(12345, 0) == Decimal(12345)

    def test_full_slippage(self) -> None:
        assert min_receive(12345, 100) == 0

    @pytest.mark.parametrize("slippage", [-1, 101])
    def test_out_of_range_slippage(self, slippage: int) -> None:
        with pytest.raises(ValueError, match="Slippage"):
            min_receive(100, slippage)


# ---------------------------------------------------------------------------
# Rebalance plans
# ---------------------------------------------------------------------------


class TestPlanIncrease:
    def test_adds_swap_input_to_debt(
        self, two_x_position: Position, btc_pair: AssetPair
    ) -> None:
        quote = SwapQuote(amount_in=10_000_000, amount_out=99 * 10**15)
        plan = plan_increase(two_x_position, quote, btc_pair, "0.5")

        assert plan.direction is RebalanceDirection.INCREASE
        assert plan.new_debt == Decimal("1.1")
        assert plan.new_collateral == two_x_position.collateral_amount
        assert plan.price_impact_pct == Decimal(-1)
        assert plan.min_receive == Decimal(98505000000000000)

    def test_missing_quote_leaves_balances(
        self, two_x_position: Position, btc_pair: AssetPair
    ) -> None:
        plan = plan_increase(two_x_position, None, btc_pair)
        assert plan.new_debt == two_x_position.debt_amount
        assert plan.new_collateral == two_x_position.collateral_amount
        assert plan.price_impact_pct == 0
        assert plan.min_receive == 0

    def test_partial_quote_leaves_balances(
        self, two_x_position: Position, btc_pair: AssetPair
    ) -> None:
        quote = SwapQuote(amount_in=10_000_000, amount_out=None)
        plan = plan_increase(two_x_position, quote, btc_pair)
        assert plan.new_debt == two_x_position.debt_amount
        assert plan.min_receive == 0

    def test_invalid_slippage_rejected_without_quote(
        self, two_x_position: Position, btc_pair: AssetPair
    ) -> None:
        with pytest.raises(ValueError):
            plan_increase(two_x_position, None, btc_pair, 150)


class TestPlanDecrease:
    def test_subtracts_swap_output_from_debt(
        self, two_x_position: Position, btc_pair: AssetPair
    ) -> None:
        quote = SwapQuote(amount_in=10**17, amount_out=9_900_000)
        plan = plan_decrease(two_x_position, quote, btc_pair, "0.5")

        assert plan.direction is RebalanceDirection.DECREASE
        assert plan.new_debt == Decimal("0.901")
        assert plan.new_collateral == two_x_position.collateral_amount
        assert plan.price_impact_pct == Decimal(-1)
        # 9_900_000 * 0.995 = 9_850_500
        assert plan.min_receive == Decimal(9_850_500)


# ---------------------------------------------------------------------------
# Leverage targets
# ---------------------------------------------------------------------------


class TestTargetAmounts:
    def test_additional_borrow(self) -> None:
        # equity 50k, target debt 2 * 50k
        assert additional_borrow(100_000, 50_000, 3) == Decimal(50_000)

    def test_additional_borrow_never_negative(self) -> None:
        assert additional_borrow(100_000, 50_000, "1.5") == 0

    def test_collateral_to_withdraw(self) -> None:
        assert collateral_to_withdraw(100_000, 50_000, "1.5") == Decimal(25_000)

    def test_debt_to_repay(self) -> None:
        # target debt = 100k - 100k / 1.5
        repay = debt_to_repay(100_000, 50_000, "1.5")
        assert Decimal("16666.6666") < repay < Decimal("16666.6667")

    def test_zero_equity_rejected(self) -> None:
        with pytest.raises(InvalidLeverage, match="negative or zero equity"):
            additional_borrow(100, 100, 2)

    def test_target_below_one_rejected(self) -> None:
        with pytest.raises(InvalidLeverage):
            additional_borrow(100_000, 50_000, "0.9")

    def test_decrease_without_debt_rejected(self) -> None:
        with pytest.raises(InvalidLeverage, match="zero debt"):
            collateral_to_withdraw(100, 0, 1)
        with pytest.raises(InvalidLeverage, match="zero debt"):
            debt_to_repay(100, 0, 1)


class TestLeverageChangeAmounts:
    def test_increase(self, btc_usdc_pair: AssetPair) -> None:
        # 1 BTC at 100k against 50k USDC: 2x -> 3x borrows another 50k USDC
        change = leverage_change_amounts(
            100_000_000, 50_000_000_000, 100_000, 1, 3, btc_usdc_pair
        )
        assert change.is_increasing is True
        assert change.additional_borrow_amount == Decimal(50_000_000_000)
        assert change.collateral_to_withdraw is None

    def test_decrease(self, btc_usdc_pair: AssetPair) -> None:
        change = leverage_change_amounts(
            100_000_000, 50_000_000_000, 100_000, 1, "1.5", btc_usdc_pair
        )
        assert change.is_increasing is False
        assert change.collateral_to_withdraw == Decimal(25_000_000)
        assert change.debt_to_repay == Decimal(16_666_666_667)
        assert change.additional_borrow_amount is None

    def test_same_leverage_is_a_no_op_decrease(self, btc_usdc_pair: AssetPair) -> None:
        change = leverage_change_amounts(
            100_000_000, 50_000_000_000, 100_000, 1, 2, btc_usdc_pair
        )
        assert change.is_increasing is False
        assert change.collateral_to_withdraw == 0
        assert change.debt_to_repay == 0

    def test_unlevered_position_decrease_is_zero(self, btc_usdc_pair: AssetPair) -> None:
        change = leverage_change_amounts(100_000_000, 0, 100_000, 1, 1, btc_usdc_pair)
        assert change.is_increasing is False
        assert change.collateral_to_withdraw == 0
        assert change.debt_to_repay == 0

    def test_amounts_are_whole_units(self, btc_usdc_pair: AssetPair) -> None:
        change = leverage_change_amounts(
            123_456_789, 33_333_333_333, "97123.45", "0.9998", "2.7", btc_usdc_pair
        )
        amount = change.additional_borrow_amount
        assert amount is not None
        assert amount == amount.to_integral_value()


class TestValidateLeverageChange:
    def test_moderate_increase_is_valid(self) -> None:
        check = validate_leverage_change(100_000, 50_000, 3, "0.8")
        assert check.is_valid is True
        assert check.new_health_factor == Decimal("1.2")
        assert check.message == ""

    def test_boundary_is_valid(self) -> None:
        check = validate_leverage_change(100_000, 50_000, 5, "0.8")
        assert check.is_valid is True
        assert check.new_health_factor == Decimal(1)

    def test_excessive_leverage_is_invalid(self) -> None:
        check = validate_leverage_change(100_000, 50_000, 6, "0.8")
        assert check.is_valid is False
        assert check.new_health_factor == Decimal("0.96")
        assert "health factor of 0.96" in check.message
        assert "safe threshold of 1.00" in check.message

    def test_decrease_improves_health(self) -> None:
        check = validate_leverage_change(100_000, 50_000, "1.5", "0.8")
        assert check.is_valid is True
        # 75k * 0.8 / 25k
        assert check.new_health_factor == Decimal("2.4")

    def test_decrease_to_one_x_clears_debt(self) -> None:
        check = validate_leverage_change(100_000, 50_000, 1, "0.8")
        assert check.is_valid is True
        assert check.new_health_factor == Decimal("Infinity")

    def test_negative_equity_reported_not_raised(self) -> None:
        check = validate_leverage_change(100, 150, 3, "0.8")
        assert check.is_valid is False
        assert check.new_health_factor == 0
        assert "negative or zero equity" in check.message

    def test_custom_threshold(self) -> None:
        check = validate_leverage_change(
            100_000, 50_000, 3, "0.8", min_health_factor="1.5"
        )
        assert check.is_valid is False
