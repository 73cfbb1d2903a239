import os
import sys
import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from journal.config.schema import AccountConfig
from journal.execution.models import Trade, LONG, WIN, LOSS, BREAKEVEN
from journal.execution.valuation import classify_status
from journal.reporting.metrics import (
    account_health,
    compute_metrics,
    equity_curve,
    filter_by_period,
    filter_trades,
)

import unittest

TZ = "America/New_York"


def trade(tid: str, net: float, day: str, asset: str = "ES", notes: str = "") -> Trade:
    entry = pd.Timestamp(f"{day} 10:00", tz=TZ)
    return Trade(
        id=tid,
        asset=asset,
        direction=LONG,
        entry_time=entry,
        exit_time=entry + pd.Timedelta(minutes=30),
        entry_price=100.0,
        exit_price=100.0,
        quantity=1.0,
        gross_profit=net,
        total_commission=0.0,
        net_profit=net,
        status=classify_status(net),
        session="NY",
        notes=notes,
    )


JOURNAL = [
    trade("a", 300.0, "2024-06-03", notes="clean breakout"),
    trade("b", -100.0, "2024-06-04", asset="NQ"),
    trade("c", 0.0, "2024-06-05"),
    trade("d", 100.0, "2024-06-12", asset="NQ", notes="late entry"),
    trade("e", -200.0, "2024-05-20"),
]


class TestComputeMetrics(unittest.TestCase):
    def test_buckets_and_ratios(self) -> None:
        metrics = compute_metrics(JOURNAL)
        self.assertEqual(metrics['total'], {'count': 5, 'pnl': 100.0})
        self.assertEqual(metrics['wins'], {'count': 2, 'pnl': 400.0, 'best': 300.0, 'worst': 100.0})
        self.assertEqual(metrics['losses'], {'count': 2, 'pnl': -300.0, 'best': -100.0, 'worst': -200.0})
        self.assertEqual(metrics['breakeven'], {'count': 1, 'pnl': 0.0})
        self.assertEqual(metrics['win_rate'], 40.0)
        self.assertAlmostEqual(metrics['profit_factor'], 400.0 / 300.0)
        self.assertAlmostEqual(metrics['expectancy'], 0.4 * 200.0 - 0.4 * 150.0)
        self.assertEqual(metrics['avg_trade'], 20.0)
        self.assertEqual(metrics['best_trade'], 300.0)
        self.assertEqual(metrics['worst_trade'], -200.0)

    def test_every_trade_lands_in_exactly_one_bucket(self) -> None:
        metrics = compute_metrics(JOURNAL)
        counted = metrics['wins']['count'] + metrics['losses']['count'] + metrics['breakeven']['count']
        self.assertEqual(counted, len(JOURNAL))
        for t in JOURNAL:
            self.assertEqual(
                [t.status == WIN, t.status == LOSS, t.status == BREAKEVEN].count(True), 1
            )

    def test_empty_journal(self) -> None:
        metrics = compute_metrics([])
        self.assertEqual(metrics['total'], {'count': 0, 'pnl': 0})
        self.assertEqual(metrics['win_rate'], 0.0)
        self.assertEqual(metrics['profit_factor'], 0.0)


class TestEquityCurve(unittest.TestCase):
    def test_cumulative_in_entry_order(self) -> None:
        curve = equity_curve(JOURNAL)
        self.assertEqual([p.equity for p in curve], [-200.0, 100.0, 0.0, 0.0, 100.0])


class TestAccountHealth(unittest.TestCase):
    def test_cushion_and_deadline(self) -> None:
        account = AccountConfig(initial_balance=50_000.0, max_drawdown_limit=2_000.0,
                                goal=1_000.0, deadline="2024-06-30")
        health = account_health(JOURNAL, account, now=pd.Timestamp("2024-06-20 12:00", tz=TZ))
        self.assertEqual(health['balance'], 50_100.0)
        self.assertEqual(health['liquidation_level'], 48_000.0)
        self.assertEqual(health['cushion'], 2_100.0)
        self.assertAlmostEqual(health['health_pct'], 105.0)
        self.assertAlmostEqual(health['goal_progress_pct'], 10.0)
        self.assertEqual(health['days_remaining'], 10)

    def test_no_countdown_without_now(self) -> None:
        health = account_health([], AccountConfig(deadline="2024-06-30"))
        self.assertNotIn('days_remaining', health)


class TestFilters(unittest.TestCase):
    def test_status_asset_and_search(self) -> None:
        self.assertEqual([t.id for t in filter_trades(JOURNAL, status=WIN)], ["a", "d"])
        self.assertEqual([t.id for t in filter_trades(JOURNAL, asset="NQ")], ["b", "d"])
        self.assertEqual([t.id for t in filter_trades(JOURNAL, search="LATE")], ["d"])
        self.assertEqual([t.id for t in filter_trades(JOURNAL, search="nq", status=LOSS)], ["b"])

    def test_periods(self) -> None:
        now = pd.Timestamp("2024-06-05 15:00", tz=TZ)  # a Wednesday
        self.assertEqual(len(filter_by_period(JOURNAL, 'all', now)), 5)
        self.assertEqual([t.id for t in filter_by_period(JOURNAL, 'today', now)], ["c"])
        self.assertEqual([t.id for t in filter_by_period(JOURNAL, 'week', now)], ["a", "b", "c"])
        self.assertEqual([t.id for t in filter_by_period(JOURNAL, 'month', now)], ["a", "b", "c", "d"])
        custom = filter_by_period(JOURNAL, 'custom', now,
                                  start=pd.Timestamp("2024-06-04"), end=pd.Timestamp("2024-06-05"))
        self.assertEqual([t.id for t in custom], ["b", "c"])
        with self.assertRaises(ValueError):
            filter_by_period(JOURNAL, 'decade', now)


if __name__ == '__main__':
    unittest.main()
