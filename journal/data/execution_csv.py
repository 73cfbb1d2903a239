"""
Broker execution CSV parser.

Turns an execution export (NinjaTrader, Tradovate and similar
platforms) into `Execution` records.  Vendors name their columns
differently, so each column is found by keyword: a header is accepted
for a field when it equals one of the field's keywords or, failing
that, contains one (case-insensitive).  ``"Instrument"``,
``"Instrument Name"`` and ``"instrumento"`` all resolve to the
instrument column.

Required columns are instrument, action/side and price.  Without them
the import fails as a whole.  Quantity, time and commission columns
are optional at header level, but a row whose quantity, price or time
cannot be read is skipped with a warning instead of failing the
import.  Rows keep their file order and are not deduplicated.  Rows
are tokenised with the `csv` module so every warning can name the
line of the file it came from; pandas then holds the rows by line
number.  A trailing comma on data rows is tolerated, and rows made of
empty fields only are skipped silently.

Naive timestamps are read as wall-clock time in the configured
timezone.
"""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
import pandas as pd

from ..execution.models import Execution, BUY, SELL
from ..utils.timeutils import localize


logger = logging.getLogger(__name__)

COLUMN_KEYWORDS: Dict[str, Sequence[str]] = {
    'instrument': ('instrument', 'symbol', 'asset', 'contract', 'instrumento'),
    'side': ('action', 'side', 'b/s', 'buy/sell', 'direction', 'tipo'),
    'quantity': ('quantity', 'qty', 'filled', 'size', 'cantidad'),
    'price': ('price', 'precio'),
    'time': ('time', 'date', 'fecha', 'hora'),
    'commission': ('commission', 'comm', 'fee', 'comision'),
}

REQUIRED_COLUMNS = ('instrument', 'side', 'price')

BUY_WORDS = ('buy', 'bot', 'long', 'compra', 'cover')
SELL_WORDS = ('sell', 'sld', 'short', 'venta')

ERROR_EMPTY = "empty input: no header row found"
ERROR_NO_ROWS = "no valid rows found"


@dataclass
class ParseResult:
    """Outcome of parsing one export.

    Attributes
    ----------
    executions : list of Execution
        Parsed fills in file order.  Empty whenever `error` is set.
    warnings : list of str
        One human-readable message per skipped row.
    error : str or None
        Reason the whole import failed, if it did.
    columns : dict
        Resolved field -> header mapping, for diagnostics.
    """

    executions: List[Execution] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    columns: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_columns(headers: Sequence[str]) -> Dict[str, str]:
    """Map each known field to the first header that names it.

    Exact keyword matches win over substring matches, so a plain
    ``"Price"`` column is preferred to ``"Stop price"``.  A header is
    never assigned to two fields.
    """
    lowered = [(h, str(h).strip().lower()) for h in headers]
    resolved: Dict[str, str] = {}
    used = set()
    for name, keywords in COLUMN_KEYWORDS.items():
        match = next((h for h, low in lowered if h not in used and low in keywords), None)
        if match is None:
            match = next(
                (h for h, low in lowered if h not in used and any(k in low for k in keywords)),
                None,
            )
        if match is not None:
            resolved[name] = match
            used.add(match)
    return resolved


def _clean(value: object) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and math.isnan(value):
        return ''
    return str(value).strip().strip('"').strip("'").strip()


def parse_number(value: object) -> Optional[float]:
    """Parse a numeric cell, ignoring ``$`` and thousands separators.

    ``"(1.25)"`` is read as ``-1.25``.  Returns `None` for empty or
    unreadable cells.
    """
    text = _clean(value).replace('$', '').replace(',', '').replace(' ', '')
    if not text:
        return None
    negative = text.startswith('(') and text.endswith(')')
    if negative:
        text = text[1:-1]
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return -number if negative else number


def parse_side(value: object) -> Optional[str]:
    """Return ``'buy'``/``'sell'`` for an action cell, or `None`."""
    text = _clean(value).lower()
    if not text:
        return None
    if text in ('b', 'buy'):
        return BUY
    if text in ('s', 'sell'):
        return SELL
    if any(word in text for word in SELL_WORDS):
        return SELL
    if any(word in text for word in BUY_WORDS):
        return BUY
    return None


def parse_timestamp(value: object, tz_name: str) -> Optional[pd.Timestamp]:
    text = _clean(value)
    if not text:
        return None
    try:
        ts = pd.Timestamp(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    ts = localize(ts, tz_name)
    if pd.isna(ts):
        return None
    return ts


def _unique_headers(headers: List[str]) -> List[str]:
    """Suffix repeated header names (``Price``, ``Price.1``) so each column stays addressable."""
    seen: Dict[str, int] = {}
    out = []
    for name in headers:
        count = seen.get(name, 0)
        seen[name] = count + 1
        out.append(name if count == 0 else f"{name}.{count}")
    return out


def _split_rows(text: str) -> Tuple[Optional[List[str]], List[Tuple[int, List[str]]], List[Tuple[int, List[str]]]]:
    """Tokenise `text` into the header, data rows and malformed rows.

    Rows are paired with their line number in the file.  Lines whose
    fields are all empty (blank lines, ``",,,,"`` padding) are skipped.
    Extra trailing fields that are empty, as left by a trailing comma,
    are dropped; a row with extra non-empty fields is malformed.  Short
    rows are padded with empty cells.
    """
    reader = csv.reader(io.StringIO(text), skipinitialspace=True)
    headers: Optional[List[str]] = None
    records: List[Tuple[int, List[str]]] = []
    malformed: List[Tuple[int, List[str]]] = []
    for fields in reader:
        line = reader.line_num
        if not any(f.strip() for f in fields):
            continue
        if headers is None:
            headers = _unique_headers([_clean(f) for f in fields])
            continue
        width = len(headers)
        if len(fields) > width:
            if any(f.strip() for f in fields[width:]):
                malformed.append((line, fields))
                continue
            fields = fields[:width]
        elif len(fields) < width:
            fields = fields + [''] * (width - len(fields))
        records.append((line, fields))
    return headers, records, malformed


class ExecutionParser:
    """Parse broker execution exports.

    Parameters
    ----------
    timezone : str
        IANA timezone the export's naive timestamps are written in.
    """

    def __init__(self, timezone: str) -> None:
        self.timezone = timezone

    def load(self, path: str) -> ParseResult:
        """Read and parse the export at `path`."""
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Execution file not found: {file_path}")
        text = file_path.read_text(encoding="utf-8-sig")
        return self.parse(text)

    def parse(self, text: str) -> ParseResult:
        """Parse delimited `text` with a header row.

        Warnings name the physical line of the file (the header being
        line 1 when it is the first line), so blank or malformed lines
        never shift the numbers of the rows after them.
        """
        text = (text or "").lstrip("\ufeff")
        if not text.strip():
            return ParseResult(error=ERROR_EMPTY)

        headers, records, malformed = _split_rows(text)
        if headers is None:
            return ParseResult(error=ERROR_EMPTY)

        columns = resolve_columns(headers)
        missing = [name for name in REQUIRED_COLUMNS if name not in columns]
        if missing:
            reason = f"missing required columns: {', '.join(missing)} (found: {headers})"
            logger.error("Cannot import executions, %s", reason)
            return ParseResult(error=reason, columns=columns)

        df = pd.DataFrame(
            [fields for _, fields in records],
            columns=headers,
            index=[line for line, _ in records],
            dtype=str,
        )

        result = ParseResult(columns=columns)
        problems: List[Tuple[int, str]] = [
            (line, f"malformed row skipped ({len(fields)} fields, expected {len(headers)}): {','.join(fields)}")
            for line, fields in malformed
        ]
        for line, row in df.iterrows():
            execution, problem = self._parse_row(row.to_dict(), columns)
            if problem is not None:
                problems.append((int(line), problem))
                continue
            result.executions.append(execution)

        for line, problem in sorted(problems, key=lambda item: item[0]):
            message = f"Row {line}: {problem}"
            logger.warning("Skipping execution row. %s", message)
            result.warnings.append(message)

        if not result.executions:
            result.error = ERROR_NO_ROWS
        logger.info(
            "Parsed %d executions (%d warnings)", len(result.executions), len(result.warnings)
        )
        return result

    def _parse_row(
        self, row: Dict[str, object], columns: Dict[str, str]
    ) -> Tuple[Optional[Execution], Optional[str]]:
        instrument = _clean(row.get(columns['instrument'])).upper()
        if not instrument:
            return None, "missing instrument"

        side = parse_side(row.get(columns['side']))
        if side is None:
            return None, f"unrecognised action {_clean(row.get(columns['side']))!r}"

        price = parse_number(row.get(columns['price']))
        if price is None:
            return None, "missing or invalid price"

        if 'quantity' in columns:
            quantity = parse_number(row.get(columns['quantity']))
            if quantity is None:
                return None, "missing or invalid quantity"
            quantity = abs(quantity)
            if quantity == 0:
                return None, "quantity is zero"
        else:
            quantity = 1.0

        timestamp = None
        if 'time' in columns:
            timestamp = parse_timestamp(row.get(columns['time']), self.timezone)
        if timestamp is None:
            return None, "missing or invalid timestamp"

        commission = 0.0
        if 'commission' in columns:
            commission = abs(parse_number(row.get(columns['commission'])) or 0.0)

        return Execution(
            instrument=instrument,
            side=side,
            quantity=quantity,
            price=price,
            timestamp=timestamp,
            commission=commission,
        ), None


def parse_executions(text: str, timezone: str) -> ParseResult:
    """Parse execution export `text` whose naive times are in `timezone`."""
    return ExecutionParser(timezone).parse(text)
