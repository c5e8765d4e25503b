"""Unit tests for action projection."""
from __future__ import annotations

from decimal import Decimal

import pytest

from loopengine.engine.interest_rate import apr_to_apy
from loopengine.engine.projector import current_rates, project
from loopengine.errors import ErrorKind, InvalidAmountFormat, UnsupportedAction
from loopengine.models import ActionIntent, ActionKind, MarketSnapshot


class TestProject:
    def test_zero_deposit_matches_current_state(self, kink_market: MarketSnapshot) -> None:
        rates = project(kink_market, ActionIntent(ActionKind.DEPOSIT, 0))
        assert rates.utilization == Decimal("0.8")
        assert rates.borrow_apr == Decimal("0.1")
        assert rates.supply_apr == Decimal("0.072")

    def test_deposit_lowers_utilization(self, kink_market: MarketSnapshot) -> None:
        rates = project(kink_market, ActionIntent(ActionKind.DEPOSIT, 600_000))
        assert rates.utilization == Decimal("0.5")
        assert rates.borrow_apr == Decimal("0.0625")

    def test_borrow_crosses_kink(self, kink_market: MarketSnapshot) -> None:
        rates = project(kink_market, ActionIntent(ActionKind.BORROW, 100_000))
        assert rates.utilization == Decimal("0.9")
        assert rates.borrow_apr == Decimal("1.6")

    def test_apys_use_compounding_periods(self, kink_market: MarketSnapshot) -> None:
        rates = project(kink_market, ActionIntent(ActionKind.DEPOSIT, 0), 12)
        assert rates.borrow_apy == apr_to_apy(rates.borrow_apr, 12)
        assert rates.supply_apy == apr_to_apy(rates.supply_apr, 12)

    def test_snapshot_is_not_mutated(self, kink_market: MarketSnapshot) -> None:
        project(kink_market, ActionIntent(ActionKind.BORROW, 100_000))
        assert kink_market.debt_total == Decimal(800_000)

    def test_withdraw_is_unsupported(self, kink_market: MarketSnapshot) -> None:
        with pytest.raises(UnsupportedAction) as exc_info:
            project(kink_market, ActionIntent(ActionKind.WITHDRAW, 1))
        assert exc_info.value.kind is ErrorKind.UNSUPPORTED_ACTION

    def test_negative_amount_rejected(self, kink_market: MarketSnapshot) -> None:
        with pytest.raises(InvalidAmountFormat):
            project(kink_market, ActionIntent(ActionKind.DEPOSIT, -1))

    def test_zero_deposit_on_zero_collateral(self, kink_market: MarketSnapshot) -> None:
        empty = MarketSnapshot(
            collateral_total=0, debt_total=0, curve=kink_market.curve
        )
        rates = project(empty, ActionIntent(ActionKind.DEPOSIT, 0))
        assert rates.utilization == 0
        assert rates.borrow_apr == kink_market.curve.base
        assert rates.supply_apr == 0
        assert rates.borrow_apy == 0

    def test_borrow_on_empty_market(self, kink_market: MarketSnapshot) -> None:
        empty = MarketSnapshot(
            collateral_total=0, debt_total=0, curve=kink_market.curve
        )
        rates = project(empty, ActionIntent(ActionKind.BORROW, 10))
        assert rates.utilization == 0
        assert rates.borrow_apr == 0


class TestCurrentRates:
    def test_matches_zero_deposit(self, kink_market: MarketSnapshot) -> None:
        assert current_rates(kink_market) == project(
            kink_market, ActionIntent(ActionKind.DEPOSIT, 0)
        )
