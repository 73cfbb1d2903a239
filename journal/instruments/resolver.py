"""
Instrument metadata resolver.

Every place that values a trade needs the same three numbers for an
instrument: the point value (multiplier), the minimum price increment
(tick size) and the per-contract commission.  This module is the only
source of those numbers.  The batch reconstructor, the interactive
valuation path and the trade editor all receive an
`InstrumentResolver` instance so that a rate change is made in one
place.

Resolution order for a symbol:

1. exact match of the normalised root (``"/ES"`` -> ``"ES"``), then of
   the raw upper-cased symbol, against the instrument table;
2. prefix, then substring match against the known futures families
   (index, metals, energy, currencies), micro contracts first;
3. a fixed default of multiplier 1, tick size 0.01 and the standard
   commission rate.

Commission is binary: roots in `MICRO_ROOTS` pay the micro rate, every
other symbol pays the standard rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple, Any

STANDARD_COMMISSION = 5.00
MICRO_COMMISSION = 0.50

DEFAULT_MULTIPLIER = 1.0
DEFAULT_TICK_SIZE = 0.01

# root -> (multiplier, tick size)
INSTRUMENT_TABLE: Dict[str, Tuple[float, float]] = {
    # Equity index futures
    'ES': (50.0, 0.25),
    'MES': (5.0, 0.25),
    'NQ': (20.0, 0.25),
    'MNQ': (2.0, 0.25),
    'YM': (5.0, 1.0),
    'MYM': (0.5, 1.0),
    'RTY': (50.0, 0.10),
    'M2K': (5.0, 0.10),
    # Energy
    'CL': (1000.0, 0.01),
    'MCL': (100.0, 0.01),
    # Metals
    'GC': (100.0, 0.10),
    'MGC': (10.0, 0.10),
    'SI': (5000.0, 0.005),
    'SIL': (1000.0, 0.005),
    'HG': (25000.0, 0.0005),
    'MHG': (2500.0, 0.0005),
    # Currencies
    '6E': (125000.0, 0.00005),
}

MICRO_ROOTS = frozenset({'MES', 'MNQ', 'MYM', 'M2K', 'MCL', 'MGC', 'SIL', 'MHG'})

# Checked in order: micro contracts precede the full-size root they contain.
FAMILY_ROOTS: Tuple[str, ...] = (
    'MNQ', 'NQ',
    'MES', 'ES',
    'MYM', 'YM',
    'M2K', 'RTY',
    'MCL', 'CL',
    'MGC', 'GC',
    'SIL', 'SI',
    'MHG', 'HG',
)


@dataclass(frozen=True)
class InstrumentSpec:
    """Resolved metadata for one instrument.

    Attributes
    ----------
    root : str
        Normalised instrument root (``"ES"``, ``"MNQ"``...).  Unknown
        symbols keep their normalised first token.
    multiplier : float
        Dollar value of a full one-point move for one contract.
    tick_size : float
        Minimum price increment.
    commission_rate : float
        Per-contract commission charged on live accounts.
    known : bool
        ``False`` when the fixed default was used.
    """

    root: str
    multiplier: float
    tick_size: float
    commission_rate: float
    known: bool = True


def normalize_symbol(symbol: str) -> str:
    """Upper-case `symbol`, trim it and drop a leading ``/`` root marker."""
    text = (symbol or '').strip().upper()
    if text.startswith('/'):
        text = text[1:]
    return text.strip()


def root_symbol(symbol: str) -> str:
    """Return the instrument root, e.g. ``"ES"`` for ``"/es 12-24"``."""
    normalized = normalize_symbol(symbol)
    parts = normalized.split()
    return parts[0] if parts else normalized


class InstrumentResolver:
    """Map instrument symbols to `InstrumentSpec` values.

    Parameters
    ----------
    standard_commission : float
        Per-contract commission for full-size contracts and unknown
        symbols.
    micro_commission : float
        Per-contract commission for roots in `MICRO_ROOTS` (or custom
        instruments flagged ``micro``).
    custom_instruments : mapping, optional
        Extra roots, each mapping to a dict with ``multiplier``,
        ``tick_size`` and optionally ``micro``.  Custom entries take
        precedence over the built-in table on exact match.
    """

    def __init__(
        self,
        standard_commission: float = STANDARD_COMMISSION,
        micro_commission: float = MICRO_COMMISSION,
        custom_instruments: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> None:
        self.standard_commission = float(standard_commission)
        self.micro_commission = float(micro_commission)
        self._table: Dict[str, Tuple[float, float]] = dict(INSTRUMENT_TABLE)
        self._micro = set(MICRO_ROOTS)
        for raw_root, params in (custom_instruments or {}).items():
            key = normalize_symbol(raw_root)
            self._table[key] = (
                float(params.get('multiplier', DEFAULT_MULTIPLIER)),
                float(params.get('tick_size', DEFAULT_TICK_SIZE)),
            )
            if params.get('micro'):
                self._micro.add(key)
            else:
                self._micro.discard(key)

    def commission_rate(self, root: str) -> float:
        return self.micro_commission if root in self._micro else self.standard_commission

    def _spec(self, root: str) -> InstrumentSpec:
        multiplier, tick_size = self._table[root]
        return InstrumentSpec(
            root=root,
            multiplier=multiplier,
            tick_size=tick_size,
            commission_rate=self.commission_rate(root),
        )

    def _match_family(self, root: str) -> Optional[str]:
        for family in FAMILY_ROOTS:
            if root.startswith(family):
                return family
        for family in FAMILY_ROOTS:
            if family in root:
                return family
        return None

    def resolve(self, symbol: str) -> InstrumentSpec:
        """Resolve `symbol` to its metadata.  Never raises.

        Parameters
        ----------
        symbol : str
            Broker symbol such as ``"/ES"``, ``"MNQ 03-25"`` or ``"ESZ4"``.

        Returns
        -------
        InstrumentSpec
            Metadata from the table, a family match or the default.
        """
        root = root_symbol(symbol)
        for candidate in (root, (symbol or '').strip().upper()):
            if candidate in self._table:
                return self._spec(candidate)

        family = self._match_family(root)
        if family is not None:
            return self._spec(family)

        return InstrumentSpec(
            root=root,
            multiplier=DEFAULT_MULTIPLIER,
            tick_size=DEFAULT_TICK_SIZE,
            commission_rate=self.standard_commission,
            known=False,
        )


_default_resolver = InstrumentResolver()


def default_resolver() -> InstrumentResolver:
    """Return the resolver built from the standard rate table."""
    return _default_resolver


def resolve(symbol: str) -> InstrumentSpec:
    """Resolve `symbol` with the default resolver."""
    return _default_resolver.resolve(symbol)
