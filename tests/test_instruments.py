import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from journal.config.schema import Config
from journal.instruments.resolver import (
    InstrumentResolver,
    MICRO_ROOTS,
    normalize_symbol,
    resolve,
    root_symbol,
)

import unittest


class TestSymbolNormalisation(unittest.TestCase):
    def test_leading_slash_and_case_are_dropped(self) -> None:
        self.assertEqual(normalize_symbol(" /es "), "ES")
        self.assertEqual(root_symbol("/mnq 03-25"), "MNQ")
        self.assertEqual(root_symbol(""), "")


class TestResolver(unittest.TestCase):
    def test_exact_match_with_and_without_slash(self) -> None:
        for symbol in ("ES", "/ES", "es", "ES 12-24"):
            spec = resolve(symbol)
            self.assertEqual(spec.root, "ES")
            self.assertEqual(spec.multiplier, 50.0)
            self.assertEqual(spec.tick_size, 0.25)
            self.assertEqual(spec.commission_rate, 5.0)
            self.assertTrue(spec.known)

    def test_prefix_match_prefers_micro_contracts(self) -> None:
        self.assertEqual(resolve("MESZ4").root, "MES")
        self.assertEqual(resolve("MESZ4").multiplier, 5.0)
        self.assertEqual(resolve("ESZ4").root, "ES")
        self.assertEqual(resolve("MNQH5").root, "MNQ")
        self.assertEqual(resolve("NQH5").multiplier, 20.0)

    def test_substring_match_for_vendor_prefixes(self) -> None:
        spec = resolve("@NQH5")
        self.assertEqual(spec.root, "NQ")
        self.assertEqual(resolve("F.US.MCLE").root, "MCL")

    def test_unknown_symbol_falls_back_to_default(self) -> None:
        spec = resolve("AAPL")
        self.assertEqual(spec.root, "AAPL")
        self.assertEqual(spec.multiplier, 1.0)
        self.assertEqual(spec.tick_size, 0.01)
        self.assertEqual(spec.commission_rate, 5.0)
        self.assertFalse(spec.known)

    def test_micro_roots_get_discounted_rate(self) -> None:
        for root in MICRO_ROOTS:
            self.assertEqual(resolve(root).commission_rate, 0.5, root)
        for root in ("ES", "NQ", "CL", "GC", "6E"):
            self.assertEqual(resolve(root).commission_rate, 5.0, root)

    def test_custom_rates_and_instruments(self) -> None:
        resolver = InstrumentResolver(
            standard_commission=4.0,
            micro_commission=0.25,
            custom_instruments={
                "/ZN": {"multiplier": 1000, "tick_size": 0.015625},
                "MZN": {"multiplier": 100, "tick_size": 0.015625, "micro": True},
            },
        )
        self.assertEqual(resolver.resolve("ES").commission_rate, 4.0)
        self.assertEqual(resolver.resolve("MES").commission_rate, 0.25)
        zn = resolver.resolve("ZN")
        self.assertEqual(zn.multiplier, 1000.0)
        self.assertEqual(zn.commission_rate, 4.0)
        self.assertEqual(resolver.resolve("MZN").commission_rate, 0.25)

    def test_config_builds_resolver_from_its_tables(self) -> None:
        cfg = Config()
        cfg.commissions.standard = 3.5
        cfg.instruments = {"BTC": {"multiplier": 5, "tick_size": 5}}
        resolver = cfg.build_resolver()
        self.assertEqual(resolver.resolve("BTC").multiplier, 5.0)
        self.assertEqual(resolver.resolve("CL").commission_rate, 3.5)


if __name__ == '__main__':
    unittest.main()
