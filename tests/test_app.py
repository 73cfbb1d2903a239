import io
import json
import os
import sys
import tempfile
from contextlib import redirect_stdout

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from journal.app import main

import unittest

EXPORT = (
    "Instrument,Action,Quantity,Price,Time\n"
    "/ES,Buy,1,4500,2024-01-15 10:00:00\n"
    "/ES,Buy,1,4502,2024-01-15 10:05:00\n"
    "/ES,Sell,2,4510,2024-01-15 10:30:00\n"
)


class TestCommandLine(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.dir = tmp.name
        self.config = os.path.join(self.dir, "missing.yaml")
        self.journal = os.path.join(self.dir, "journal.json")

    def _write(self, name: str, text: str) -> str:
        path = os.path.join(self.dir, name)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(text)
        return path

    def _run(self, *argv: str):
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(['--config', self.config] + list(argv))
        return code, buf.getvalue()

    def test_import_merges_into_journal(self) -> None:
        csv_path = self._write("fills.csv", EXPORT)
        out_dir = os.path.join(self.dir, "out")
        code, _ = self._run('--real', 'import', csv_path, '--out', out_dir, '--journal', self.journal)
        self.assertEqual(code, 0)
        with open(self.journal, encoding="utf-8") as fh:
            stored = json.load(fh)['trades']
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0]['netProfit'], 890.0)
        self.assertEqual(stored[0]['session'], "NY")

        # importing the same export again keeps one trade
        code, _ = self._run('--real', 'import', csv_path, '--out', out_dir, '--journal', self.journal)
        self.assertEqual(code, 0)
        with open(self.journal, encoding="utf-8") as fh:
            self.assertEqual(len(json.load(fh)['trades']), 1)

        code, out = self._run('--real', 'edit', '--journal', self.journal, '--id', stored[0]['id'],
                              '--exit-price', '4495')
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)['netProfit'], -610.0)

        code, out = self._run('summary', '--journal', self.journal, '--status', 'loss')
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)['total']['count'], 1)

    def test_failed_import_returns_error_code(self) -> None:
        csv_path = self._write("empty.csv", "")
        code, _ = self._run('import', csv_path, '--out', os.path.join(self.dir, "out"))
        self.assertEqual(code, 1)

    def test_edit_unknown_id(self) -> None:
        code, _ = self._run('edit', '--journal', self.journal, '--id', 'nope', '--notes', 'x')
        self.assertEqual(code, 1)

    def test_value_prints_estimate(self) -> None:
        code, out = self._run('--demo', 'value', '--asset', 'MNQ', '--direction', 'short',
                              '--entry', '21000', '--exit', '20990', '--quantity', '3', '--stop', '21005')
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data['netProfit'], 60.0)
        self.assertEqual(data['totalCommission'], 0.0)
        self.assertEqual(data['rewardRiskRatio'], 2.0)


if __name__ == '__main__':
    unittest.main()
