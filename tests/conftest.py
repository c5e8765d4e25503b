"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from loopengine.config import AppConfig, EngineConfig, StrategyConfig
from loopengine.models import (
    AssetInfo,
    AssetPair,
    InterestRateCurve,
    MarketSnapshot,
    Position,
)


# ---------------------------------------------------------------------------
# Market fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def kink_curve() -> InterestRateCurve:
    return InterestRateCurve(
        base=Decimal("0"),
        optimal_utilization=Decimal("0.8"),
        slope_1=Decimal("0.1"),
        slope_2=Decimal("3.0"),
        reserve_factor=Decimal("0.1"),
    )


@pytest.fixture()
def kink_market(kink_curve: InterestRateCurve) -> MarketSnapshot:
    """Market sitting exactly at the kink (utilization 0.8)."""
    return MarketSnapshot(
        collateral_total=Decimal("1000000"),
        debt_total=Decimal("800000"),
        curve=kink_curve,
        price_usd=Decimal("100000"),
        decimals=8,
        denom="maxbtc",
        symbol="maxBTC",
        max_ltv=Decimal("0.8"),
    )


@pytest.fixture()
def usdc_market(kink_curve: InterestRateCurve) -> MarketSnapshot:
    """6-decimal market holding 100 USDC of collateral and no debt."""
    return MarketSnapshot(
        collateral_total=Decimal("100000000"),
        debt_total=Decimal("0"),
        curve=kink_curve,
        price_usd=Decimal("1"),
        decimals=6,
        denom="usdc",
        symbol="USDC",
    )


# ---------------------------------------------------------------------------
# Asset pair / position fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def btc_pair() -> AssetPair:
    """18-decimal collateral looped against an 8-decimal debt asset."""
    return AssetPair(
        collateral=AssetInfo(denom="maxbtc", symbol="maxBTC", decimals=18),
        debt=AssetInfo(denom="wbtc", symbol="WBTC", decimals=8),
    )


@pytest.fixture()
def btc_usdc_pair() -> AssetPair:
    return AssetPair(
        collateral=AssetInfo(denom="maxbtc", symbol="maxBTC", decimals=8),
        debt=AssetInfo(denom="usdc", symbol="USDC", decimals=6),
    )


@pytest.fixture()
def two_x_position() -> Position:
    """1 BTC of principal looped to 2x."""
    return Position.at_leverage(Decimal("1"), Decimal("2"))


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config(kink_market: MarketSnapshot, usdc_market: MarketSnapshot) -> AppConfig:
    return AppConfig(
        engine=EngineConfig(
            compounding_periods=365,
            display_places=2,
            default_slippage_pct=Decimal("0.5"),
            debounce_ms=300,
        ),
        markets={"maxbtc": kink_market, "usdc": usdc_market},
        strategies=(StrategyConfig(name="maxbtc-usdc", collateral="maxbtc", debt="usdc"),),
    )


SAMPLE_YAML = textwrap.dedent("""\
    engine:
      compounding_periods: 365
      display_places: 2
      default_slippage_pct: 0.5
      debounce_ms: 250
    markets:
      maxbtc:
        symbol: maxBTC
        decimals: 8
        price_usd: "100000"
        max_ltv: 0.8
        collateral_total: "1000000"
        debt_total: "800000"
        interest_rate_model:
          base: 0
          optimal_utilization: 0.8
          slope_1: 0.1
          slope_2: 3.0
          reserve_factor: 0.1
      usdc:
        symbol: USDC
        decimals: 6
        price_usd: 1
        max_ltv: 0.75
        collateral_total: "100000000"
        debt_total: "0"
        interest_rate_model:
          base: 0
          optimal_utilization: 0.8
          slope_1: 0.07
          slope_2: 3.0
          reserve_factor: 0.1
    strategies:
      - name: maxbtc-usdc
        collateral: maxbtc
        debt: usdc
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
