"""
Application entry point.

This module defines a simple command-line interface for the trading
journal.  It leverages the modules under `journal/` to load
configuration, import broker executions into round-trip trades,
value a single trade by hand, edit journaled trades and print the
journal statistics.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from typing import Any, Dict, List, Optional
import pandas as pd

from .config.schema import Config, load_config
from .data.execution_csv import ExecutionParser
from .execution.reconstruct import PositionReconstructor
from .execution.valuation import estimate_trade, revalue
from .reporting.metrics import account_health, compute_metrics, filter_by_period, filter_trades
from .reporting.report import generate_import_report
from .utils.persistence import load_trades, merge_trades, save_trades
from .utils.timeutils import localize


logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def _load(args: argparse.Namespace) -> Config:
    config = load_config(args.config) if os.path.exists(args.config) else Config()
    if args.real is not None:
        config.account.is_real = args.real
    return config


def run_import(config: Config, csv_path: str, out_dir: str, journal_path: Optional[str]) -> int:
    """Parse an execution export, rebuild trades and write the report."""
    result = ExecutionParser(config.data.timezone).load(csv_path)
    if not result.ok:
        logger.error("Import failed: %s", result.error)
        for warning in result.warnings:
            logger.warning(warning)
        return 1

    trades = PositionReconstructor(config).run(result.executions)
    health = account_health(trades, config.account)
    paths = generate_import_report(trades, out_dir=out_dir, warnings=result.warnings,
                                   extra={'account': health})
    if journal_path:
        save_trades(journal_path, merge_trades(load_trades(journal_path), trades))

    logger.info("Imported %d consolidated trades from %d executions.",
                len(trades), len(result.executions))
    for warning in result.warnings:
        logger.warning(warning)
    logger.info("Report written to %s", paths['summary'])
    return 0


def run_value(config: Config, args: argparse.Namespace) -> int:
    """Print the live valuation of a single hand-entered trade."""
    estimate = estimate_trade(
        asset=args.asset,
        direction=args.direction,
        entry_price=args.entry,
        exit_price=args.exit,
        quantity=args.quantity,
        account_is_real=config.account.is_real,
        stop_loss=args.stop,
        goal=config.account.goal,
        resolver=config.build_resolver(),
    )
    print(json.dumps(estimate.to_dict(), indent=2))
    return 0


def run_edit(config: Config, args: argparse.Namespace) -> int:
    """Apply edits to one journaled trade and revalue it."""
    trades = load_trades(args.journal)
    changes: Dict[str, Any] = {}
    for name in ('entry_price', 'exit_price', 'quantity', 'stop_loss', 'asset', 'direction',
                 'notes', 'emotions', 'rating', 'session'):
        value = getattr(args, name)
        if value is not None:
            changes[name] = value
    for name in ('entry_time', 'exit_time'):
        value = getattr(args, name)
        if value is not None:
            changes[name] = localize(pd.Timestamp(value), config.data.timezone)

    for index, trade in enumerate(trades):
        if trade.id == args.id:
            trades[index] = revalue(trade, changes, config.account.is_real,
                                    config.data.timezone, config.build_resolver())
            save_trades(args.journal, trades)
            print(json.dumps(trades[index].to_dict(), indent=2))
            return 0
    logger.error("No trade with id %s in %s", args.id, args.journal)
    return 1


def run_summary(config: Config, args: argparse.Namespace) -> int:
    """Print statistics for the journaled trades."""
    trades = load_trades(args.journal)
    trades = filter_trades(trades, status=args.status, asset=args.asset, search=args.search)
    now = pd.Timestamp.now(tz=config.data.timezone)
    trades = filter_by_period(trades, args.period, now,
                              start=pd.Timestamp(args.start) if args.start else None,
                              end=pd.Timestamp(args.end) if args.end else None)
    summary = compute_metrics(trades)
    summary['account'] = account_health(trades, config.account, now=now)
    print(json.dumps(summary, indent=2, default=str))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trading journal")
    parser.add_argument('--config', default='config.yaml', help="Path to configuration YAML file")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    account = parser.add_mutually_exclusive_group()
    account.add_argument('--real', dest='real', action='store_true', default=None,
                         help="Treat the account as live (commissions apply)")
    account.add_argument('--demo', dest='real', action='store_false', default=None,
                         help="Treat the account as demo (no commissions)")
    sub = parser.add_subparsers(dest='mode', required=True)

    imp = sub.add_parser('import', help="Import a broker execution CSV")
    imp.add_argument('csv', help="Execution export file")
    imp.add_argument('--out', default=None, help="Report directory")
    imp.add_argument('--journal', default=None, help="Journal JSON file to merge trades into")

    val = sub.add_parser('value', help="Value a single trade")
    val.add_argument('--asset', required=True)
    val.add_argument('--direction', required=True, choices=['long', 'short'])
    val.add_argument('--entry', required=True, type=float)
    val.add_argument('--exit', required=True, type=float)
    val.add_argument('--quantity', required=True, type=float)
    val.add_argument('--stop', type=float, default=None)

    edit = sub.add_parser('edit', help="Edit a journaled trade")
    edit.add_argument('--journal', required=True)
    edit.add_argument('--id', required=True)
    edit.add_argument('--entry-price', dest='entry_price', type=float)
    edit.add_argument('--exit-price', dest='exit_price', type=float)
    edit.add_argument('--quantity', type=float)
    edit.add_argument('--stop-loss', dest='stop_loss', type=float)
    edit.add_argument('--asset')
    edit.add_argument('--direction', choices=['long', 'short'])
    edit.add_argument('--entry-time', dest='entry_time')
    edit.add_argument('--exit-time', dest='exit_time')
    edit.add_argument('--session', choices=['NY', 'London', 'Asia'])
    edit.add_argument('--notes')
    edit.add_argument('--emotions')
    edit.add_argument('--rating', type=int, choices=[1, 2, 3])

    summ = sub.add_parser('summary', help="Show journal statistics")
    summ.add_argument('--journal', required=True)
    summ.add_argument('--status', choices=['win', 'loss', 'breakeven'])
    summ.add_argument('--asset')
    summ.add_argument('--search')
    summ.add_argument('--period', default='all', choices=['all', 'today', 'week', 'month', 'custom'])
    summ.add_argument('--start')
    summ.add_argument('--end')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Parse command-line arguments and dispatch to the appropriate mode."""
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    config = _load(args)

    if args.mode == 'import':
        return run_import(config, args.csv, args.out or config.report.out_dir, args.journal)
    if args.mode == 'value':
        return run_value(config, args)
    if args.mode == 'edit':
        return run_edit(config, args)
    return run_summary(config, args)


if __name__ == '__main__':
    raise SystemExit(main())
