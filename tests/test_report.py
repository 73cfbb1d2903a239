import json
import os
import sys
import tempfile
import pandas as pd

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from journal.execution.models import Trade, LONG, WIN
from journal.reporting.report import generate_import_report

import unittest


class TestImportReport(unittest.TestCase):
    def test_writes_csv_summary_and_chart(self) -> None:
        entry = pd.Timestamp("2024-01-15 10:00", tz="America/New_York")
        trades = [Trade(
            id="t1", asset="ES", direction=LONG, entry_time=entry,
            exit_time=entry + pd.Timedelta(minutes=30), entry_price=4501.0, exit_price=4510.0,
            quantity=2.0, gross_profit=900.0, total_commission=10.0, net_profit=890.0,
            status=WIN, session="NY",
        )]
        with tempfile.TemporaryDirectory() as tmp:
            out_dir = os.path.join(tmp, "report")
            paths = generate_import_report(trades, out_dir=out_dir, warnings=["Row 5: quantity is zero"],
                                           extra={'account': {'balance': 50_890.0}})
            for key in ('trades', 'summary', 'chart'):
                self.assertTrue(os.path.exists(paths[key]), key)

            df = pd.read_csv(paths['trades'])
            self.assertEqual(list(df['id']), ["t1"])
            self.assertEqual(float(df['netProfit'][0]), 890.0)

            with open(paths['summary'], encoding='utf-8') as fh:
                summary = json.load(fh)
            self.assertEqual(summary['total'], {'count': 1, 'pnl': 890.0})
            self.assertEqual(summary['warnings'], ["Row 5: quantity is zero"])
            self.assertEqual(summary['account']['balance'], 50_890.0)

    def test_empty_import_still_writes_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            paths = generate_import_report([], out_dir=tmp)
            self.assertTrue(os.path.exists(paths['chart']))
            with open(paths['summary'], encoding='utf-8') as fh:
                self.assertEqual(json.load(fh)['total']['count'], 0)


if __name__ == '__main__':
    unittest.main()
