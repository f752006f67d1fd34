"""Command-line interface for the liquidation keeper.

``check`` exits with status 2 when any position is liquidatable, so it can
gate cron jobs and health checks.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace

from .config import AppConfig, load_config
from .logging_setup import configure_logging
from .services import Keeper

EXIT_LIQUIDATABLE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="collateral-engine",
        description="Collateralized position valuation and liquidation keeper",
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List liquidatable positions without liquidating (overrides keeper.dry_run)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("check", help="Report position health; exit 2 if any is liquidatable")

    liquidate = sub.add_parser("liquidate", help="Run a single liquidation pass")
    liquidate.add_argument(
        "position_ids",
        nargs="*",
        type=int,
        metavar="POSITION_ID",
        help="Positions to consider (default: every open position)",
    )

    monitor = sub.add_parser("monitor", help="Liquidate continuously")
    monitor.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Minutes between passes (overrides keeper.check_interval_minutes)",
    )

    return parser


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Fold command-line flags into the loaded configuration."""
    if args.dry_run:
        config = replace(config, keeper=replace(config.keeper, dry_run=True))
    return config


async def _run(args: argparse.Namespace) -> int:
    configure_logging(args.log_level)
    keeper = Keeper(apply_overrides(load_config(args.config), args))

    if args.command == "check":
        report = await keeper.check_positions()
        return EXIT_LIQUIDATABLE if any(h.is_liquidatable for h in report) else 0
    if args.command == "liquidate":
        await keeper.liquidate_once(args.position_ids or None)
        return 0
    await keeper.run_continuous(args.interval)
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))
