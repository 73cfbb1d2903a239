"""
Journal file persistence.

Trades are kept between runs in a JSON file holding their serialised
form (`Trade.to_dict`).  Loading validates every record first and
refuses the whole file if any record is incomplete, so a damaged file
never half-loads.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from ..execution.models import Trade

JOURNAL_VERSION = 1

REQUIRED_TRADE_KEYS = ('id', 'asset', 'direction', 'entryTimestamp', 'entryPrice', 'exitPrice', 'quantity')


def validate_journal(data: Any) -> List[str]:
    """Return a list of problems with a decoded journal document."""
    errors: List[str] = []
    if not isinstance(data, dict):
        return ["journal file does not contain a JSON object"]
    trades = data.get('trades')
    if not isinstance(trades, list):
        return ['missing "trades" field (must be a list)']
    for index, trade in enumerate(trades, start=1):
        if not isinstance(trade, dict):
            errors.append(f"Trade #{index}: not an object")
            continue
        for key in REQUIRED_TRADE_KEYS:
            if trade.get(key) in (None, ''):
                errors.append(f'Trade #{index}: missing "{key}"')
    return errors


def load_trades(path: str) -> List[Trade]:
    """Load the trades stored at `path`.

    Returns an empty list when the file does not exist yet.  Raises
    `ValueError` listing every problem when the file is invalid.
    """
    file_path = Path(path)
    if not file_path.exists():
        return []
    with file_path.open("r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ValueError(f"journal file {file_path} is not valid JSON: {exc}") from exc
    errors = validate_journal(data)
    if errors:
        raise ValueError("invalid journal file:\n" + "\n".join(errors))
    return [Trade.from_dict(item) for item in data['trades']]


def save_trades(path: str, trades: List[Trade]) -> None:
    """Write `trades` to `path`, creating parent directories."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    state: Dict[str, Any] = {
        'version': JOURNAL_VERSION,
        'trades': [t.to_dict() for t in trades],
    }
    with file_path.open("w", encoding="utf-8") as fh:
        json.dump(state, fh, ensure_ascii=False, indent=2, sort_keys=True)


def merge_trades(existing: List[Trade], imported: List[Trade]) -> List[Trade]:
    """Add `imported` trades whose id is not already journaled.

    Re-importing the same export therefore does not duplicate trades.
    The result is ordered by entry time, most recent first.
    """
    known = {t.id for t in existing}
    merged = list(existing) + [t for t in imported if t.id not in known]
    merged.sort(key=lambda t: t.entry_time, reverse=True)
    return merged
