"""Command-line interface for the AlphaLend accounting mirror."""
from __future__ import annotations

import argparse
import asyncio
import sys
from decimal import Decimal

from .config import load_config
from .logging_setup import configure_logging
from .models import Market, Portfolio, ProtocolStats
from .services import LendingService


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="alphalend-mirror",
        description="Off-chain AlphaLend market and portfolio accounting",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--no-accrue",
        dest="accrue",
        action="store_false",
        default=None,
        help="Show markets as last written on chain, without accruing interest",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("markets", help="Market utilization, APRs and limits")
    sub.add_parser("stats", help="Protocol-wide supplied and borrowed USD")

    portfolio_parser = sub.add_parser("portfolio", help="Value a wallet's positions")
    portfolio_parser.add_argument(
        "address",
        nargs="?",
        default=None,
        help="Wallet address (default: every wallet in config)",
    )

    return parser


def _pct(value: Decimal) -> str:
    if value.is_infinite():
        return "∞"
    return f"{float(value) * 100:.2f}%"


def format_markets(markets: tuple[Market, ...]) -> str:
    lines = [
        f"{'ID':>4}  {'Asset':<8} {'Utilization':>11} {'Supply APR':>10} "
        f"{'Borrow APR':>10} {'LTV':>7} {'Liq. Thr.':>9}"
    ]
    for m in markets:
        lines.append(
            f"{m.market_id:>4}  {m.symbol:<8} {_pct(m.utilization_rate):>11} "
            f"{_pct(m.supply_apr):>10} {_pct(m.borrow_apr):>10} "
            f"{_pct(m.ltv):>7} {_pct(m.liquidation_threshold):>9}"
        )
    return "\n".join(lines)


def format_portfolio(portfolio: Portfolio) -> str:
    hf = portfolio.health_factor
    health = "∞" if hf.is_infinite() else f"{float(hf):.2f}"
    lines = [
        f"Position {portfolio.position_id}",
        f"  Supplied:          ${float(portfolio.total_supplied_usd):,.2f}",
        f"  Borrowed:          ${float(portfolio.total_borrowed_usd):,.2f}",
        f"  Net worth:         ${float(portfolio.net_worth):,.2f}",
        f"  Safe borrow limit: ${float(portfolio.safe_borrow_limit):,.2f}",
        f"  Liquidation limit: ${float(portfolio.liquidation_limit):,.2f}",
        f"  Borrow limit used: {_pct(portfolio.borrow_limit_used)}",
        f"  Health factor:     {health}"
        + ("  🚨 LIQUIDATABLE" if portfolio.is_liquidatable else ""),
        f"  Net APR:           {_pct(portfolio.net_apr)}",
    ]
    for exclusion in portfolio.excluded:
        lines.append(
            f"  ⚠️ excluded {exclusion.kind} in market {exclusion.entity_id}: "
            f"{exclusion.reason}"
        )
    return "\n".join(lines)


def format_stats(stats: ProtocolStats) -> str:
    lines = [
        f"Markets priced:  {stats.market_count}",
        f"Total supplied:  ${float(stats.total_supplied_usd):,.2f}",
        f"Total borrowed:  ${float(stats.total_borrowed_usd):,.2f}",
    ]
    for exclusion in stats.excluded:
        lines.append(f"  ⚠️ market {exclusion.entity_id} skipped: {exclusion.reason}")
    return "\n".join(lines)


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    service = LendingService(config)
    snapshot = await service.load_snapshot(accrue=args.accrue)

    if args.command == "markets":
        print(format_markets(snapshot.markets.markets))
        for exclusion in snapshot.markets.excluded:
            print(f"⚠️ market {exclusion.entity_id} skipped: {exclusion.reason}")
    elif args.command == "stats":
        stats = await service.get_protocol_stats(snapshot)
        print(format_stats(stats))
    elif args.command == "portfolio":
        addresses = [args.address] if args.address else list(config.wallets)
        for address in addresses:
            report = await service.get_portfolios(address, snapshot)
            if not report.portfolios:
                print(f"{address}: no active positions found.")
            for portfolio in report.portfolios:
                print(format_portfolio(portfolio))
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
