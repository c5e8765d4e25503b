"""Configuration loader: reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .decimal_math import to_decimal
from .models import AssetInfo, AssetPair, InterestRateCurve, MarketSnapshot

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    compounding_periods: int = 365
    display_places: int = 2
    default_slippage_pct: Decimal = Decimal("0.5")
    debounce_ms: int = 300


@dataclass(frozen=True)
class StrategyConfig:
    name: str = ""
    collateral: str = ""
    debt: str = ""


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    markets: dict[str, MarketSnapshot] = field(default_factory=dict)
    strategies: tuple[StrategyConfig, ...] = ()

    def asset_pair(self, strategy_name: str) -> AssetPair:
        """Collateral/debt assets of a configured strategy."""
        for strategy in self.strategies:
            if strategy.name == strategy_name:
                return AssetPair(
                    collateral=_asset_info(self.markets[strategy.collateral]),
                    debt=_asset_info(self.markets[strategy.debt]),
                )
        raise KeyError(f"Unknown strategy '{strategy_name}'")


def _asset_info(market: MarketSnapshot) -> AssetInfo:
    return AssetInfo(denom=market.denom, symbol=market.symbol, decimals=market.decimals)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    return EngineConfig(
        compounding_periods=int(raw.get("compounding_periods", 365)),
        display_places=int(raw.get("display_places", 2)),
        default_slippage_pct=to_decimal(raw.get("default_slippage_pct", "0.5")),
        debounce_ms=int(raw.get("debounce_ms", 300)),
    )


def _build_curve(raw: dict[str, Any]) -> InterestRateCurve:
    return InterestRateCurve(
        base=to_decimal(raw.get("base", 0)),
        optimal_utilization=to_decimal(raw.get("optimal_utilization", 0)),
        slope_1=to_decimal(raw.get("slope_1", 0)),
        slope_2=to_decimal(raw.get("slope_2", 0)),
        reserve_factor=to_decimal(raw.get("reserve_factor", 0)),
    )


def _build_markets(raw: dict[str, Any]) -> dict[str, MarketSnapshot]:
    markets: dict[str, MarketSnapshot] = {}
    for denom, cfg in raw.items():
        markets[denom] = MarketSnapshot(
            collateral_total=to_decimal(cfg.get("collateral_total", 0)),
            debt_total=to_decimal(cfg.get("debt_total", 0)),
            curve=_build_curve(cfg.get("interest_rate_model", {})),
            price_usd=to_decimal(cfg.get("price_usd", 0)),
            decimals=int(cfg.get("decimals", 6)),
            denom=denom,
            symbol=cfg.get("symbol", denom.upper()),
            max_ltv=to_decimal(cfg.get("max_ltv", "0.8")),
        )
    return markets


def _build_strategies(raw: list[dict[str, Any]]) -> tuple[StrategyConfig, ...]:
    strategies: list[StrategyConfig] = []
    for s in raw:
        strategies.append(
            StrategyConfig(
                name=s.get("name", ""),
                collateral=s.get("collateral", ""),
                debt=s.get("debt", ""),
            )
        )
    return tuple(strategies)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=_build_engine(raw.get("engine") or {}),
        markets=_build_markets(raw.get("markets") or {}),
        strategies=_build_strategies(raw.get("strategies") or []),
    )

    _validate(cfg)
    logger.info(
        "Configuration loaded from %s (%d markets, %d strategies)",
        config_path,
        len(cfg.markets),
        len(cfg.strategies),
    )
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if not cfg.markets:
        raise ValueError("At least one market must be configured")

    if cfg.engine.compounding_periods <= 0:
        raise ValueError("engine.compounding_periods must be positive")
    if not 0 <= cfg.engine.default_slippage_pct <= 100:
        raise ValueError("engine.default_slippage_pct must be within [0, 100]")
    if cfg.engine.debounce_ms < 0:
        raise ValueError("engine.debounce_ms must not be negative")

    for strategy in cfg.strategies:
        if not strategy.name:
            raise ValueError("Every strategy needs a name")
        for denom in (strategy.collateral, strategy.debt):
            if denom not in cfg.markets:
                raise ValueError(
                    f"Strategy '{strategy.name}' references unknown market '{denom}'"
                )
