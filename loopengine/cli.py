"""Command-line interface for offline rate and position simulation."""
from __future__ import annotations

import argparse
import logging
import sys
from decimal import Decimal

from .config import AppConfig, load_config
from .decimal_math import to_base_units, to_decimal
from .engine import interest_rate, position, projector, swap, withdrawal
from .errors import EngineError, MarketNotFound
from .logging_setup import configure_logging
from .models import ActionIntent, ActionKind, MarketSnapshot

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="loop-engine",
        description="Interest-rate and leveraged position simulator",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    sub = parser.add_subparsers(dest="command")

    rates = sub.add_parser("rates", help="Current utilization and rates of a market")
    rates.add_argument("denom")

    project = sub.add_parser("project", help="Rates after a hypothetical action")
    project.add_argument("denom")
    project.add_argument("action", choices=[k.value for k in ActionKind])
    project.add_argument("amount", help="Amount in human units")

    pos = sub.add_parser("position", help="Economics of a looped position")
    pos.add_argument("principal")
    pos.add_argument("leverage")
    pos.add_argument("--collateral-apy", required=True, help="Fraction, e.g. 0.05")
    pos.add_argument("--debt-apy", required=True, help="Fraction, e.g. 0.03")
    pos.add_argument(
        "--collateral-denom",
        default=None,
        help="Cap leverage by this market's max LTV",
    )

    sub.add_parser("max-leverage", help="Max leverage of every configured market")

    wd = sub.add_parser("withdraw", help="Validate a withdrawal request")
    wd.add_argument("denom")
    wd.add_argument("amount", help="Requested amount in human units")
    wd.add_argument(
        "--deposited", required=True, help="User's deposit in human units"
    )

    curve = sub.add_parser("curve", help="Sample a market's interest-rate curve")
    curve.add_argument("denom")
    curve.add_argument("--steps", type=_positive_int, default=10)

    return parser


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _pct(rate: Decimal, config: AppConfig) -> str:
    return f"{interest_rate.format_rate(rate, config.engine.display_places)}%"


def _market(config: AppConfig, denom: str) -> MarketSnapshot:
    market = config.markets.get(denom)
    if market is None:
        raise MarketNotFound(f"Market '{denom}' is not configured")
    return market


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_rates(args: argparse.Namespace, config: AppConfig) -> None:
    market = _market(config, args.denom)
    rates = projector.current_rates(market, config.engine.compounding_periods)
    print(f"{market.symbol} ({market.denom})")
    print(f"  Utilization: {_pct(rates.utilization, config)}")
    print(f"  Borrow APR:  {_pct(rates.borrow_apr, config)}  APY: {_pct(rates.borrow_apy, config)}")
    print(f"  Supply APR:  {_pct(rates.supply_apr, config)}  APY: {_pct(rates.supply_apy, config)}")


def _cmd_project(args: argparse.Namespace, config: AppConfig) -> None:
    market = _market(config, args.denom)
    amount = to_base_units(to_decimal(args.amount), market.decimals)
    before = projector.current_rates(market, config.engine.compounding_periods)
    after = projector.project(
        market,
        ActionIntent(ActionKind(args.action), amount),
        config.engine.compounding_periods,
    )
    print(f"{args.action} {args.amount} {market.symbol}")
    print(f"  Utilization: {_pct(before.utilization, config)} -> {_pct(after.utilization, config)}")
    print(f"  Borrow APY:  {_pct(before.borrow_apy, config)} -> {_pct(after.borrow_apy, config)}")
    print(f"  Supply APY:  {_pct(before.supply_apy, config)} -> {_pct(after.supply_apy, config)}")


def _cmd_position(args: argparse.Namespace, config: AppConfig) -> None:
    max_leverage = None
    if args.collateral_denom:
        max_leverage = position.calculate_max_leverage(
            _market(config, args.collateral_denom).max_ltv
        )

    metrics = position.compute(
        args.principal,
        args.leverage,
        args.collateral_apy,
        args.debt_apy,
        max_leverage=max_leverage,
    )
    print(f"Position {args.principal} @ {args.leverage}x")
    print(f"  Borrow amount:     {metrics.borrow_amount}")
    print(f"  Total position:    {metrics.total_position}")
    print(f"  Leveraged APY:     {_pct(metrics.leveraged_apy, config)}")
    print(f"  Yield spread:      {_pct(metrics.yield_spread, config)}")
    print(f"  Yearly earnings:   {metrics.estimated_yearly_earnings}")

    warning = swap.leverage_warning(args.leverage, max_leverage)
    if warning:
        print(f"  [{warning.level}] {warning.message}")


def _cmd_max_leverage(args: argparse.Namespace, config: AppConfig) -> None:
    results = position.max_leverage_by_denom(config.markets.values())
    for denom, max_lev in sorted(results.items()):
        print(f"  {config.markets[denom].symbol:<10} {max_lev:.2f}x")


def _cmd_withdraw(args: argparse.Namespace, config: AppConfig) -> None:
    market = _market(config, args.denom)
    deposited = to_base_units(to_decimal(args.deposited), market.decimals)
    result = withdrawal.validate(args.amount, market, deposited)
    status = "OK" if result.is_valid else "REJECTED"
    print(f"Withdraw {args.amount} {market.symbol}: {status}")
    print(f"  Max withdrawable: {result.max_withdrawable}")
    if result.message:
        print(f"  {result.message}")


def _cmd_curve(args: argparse.Namespace, config: AppConfig) -> None:
    market = _market(config, args.denom)
    print(f"{'utilization':>12} {'borrow':>10} {'supply':>10}")
    for u, borrow, supply in interest_rate.rate_curve(market.curve, args.steps):
        print(f"{_pct(u, config):>12} {_pct(borrow, config):>10} {_pct(supply, config):>10}")


_COMMANDS = {
    "rates": _cmd_rates,
    "project": _cmd_project,
    "position": _cmd_position,
    "max-leverage": _cmd_max_leverage,
    "withdraw": _cmd_withdraw,
    "curve": _cmd_curve,
}


def run(args: argparse.Namespace) -> int:
    """Execute the selected command; returns the process exit code."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    try:
        _COMMANDS[args.command](args, config)
    except EngineError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error ({e.kind.value}): {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(run(args))
