"""
Execution and trade models.

`Execution` is one raw broker fill and only lives for the duration of
an import.  `Trade` is the consolidated round trip that the journal
stores and displays.  Trades serialise to a flat dictionary with the
camelCase keys used by the storage and display layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import pandas as pd

BUY = 'buy'
SELL = 'sell'

LONG = 'long'
SHORT = 'short'

WIN = 'win'
LOSS = 'loss'
BREAKEVEN = 'breakeven'


@dataclass(frozen=True)
class Execution:
    """A single broker-reported fill."""
    instrument: str
    side: str  # 'buy' or 'sell'
    quantity: float
    price: float
    timestamp: pd.Timestamp
    commission: float = 0.0

    @property
    def signed_quantity(self) -> float:
        return self.quantity if self.side == BUY else -self.quantity


@dataclass
class Trade:
    """A completed flat-to-flat round trip on one instrument.

    `net_profit` always equals `gross_profit - total_commission` and
    `status` follows the sign of `net_profit`.  Both are produced by
    the valuation module; edits go through
    `journal.execution.valuation.revalue`.
    """
    id: str
    asset: str
    direction: str  # 'long' or 'short'
    entry_time: pd.Timestamp
    exit_time: Optional[pd.Timestamp]
    entry_price: float
    exit_price: float
    quantity: float
    gross_profit: float
    total_commission: float
    net_profit: float
    status: str  # 'win', 'loss' or 'breakeven'
    session: str
    stop_loss: Optional[float] = None
    notes: str = ""
    emotions: str = ""
    rating: Optional[int] = None
    screenshots: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the camelCase record consumed by storage and UI."""
        return {
            'id': self.id,
            'asset': self.asset,
            'direction': self.direction,
            'entryTimestamp': self.entry_time.isoformat(),
            'exitTimestamp': self.exit_time.isoformat() if self.exit_time is not None else None,
            'entryPrice': self.entry_price,
            'exitPrice': self.exit_price,
            'quantity': self.quantity,
            'grossProfit': self.gross_profit,
            'totalCommission': self.total_commission,
            'netProfit': self.net_profit,
            'status': self.status,
            'session': self.session,
            'stopLoss': self.stop_loss,
            'notes': self.notes,
            'emotions': self.emotions,
            'rating': self.rating,
            'screenshots': list(self.screenshots),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Trade':
        """Rebuild a trade from `to_dict` output."""
        exit_raw = data.get('exitTimestamp')
        stop_raw = data.get('stopLoss')
        rating_raw = data.get('rating')
        return cls(
            id=str(data['id']),
            asset=str(data['asset']),
            direction=str(data['direction']).lower(),
            entry_time=pd.Timestamp(data['entryTimestamp']),
            exit_time=pd.Timestamp(exit_raw) if exit_raw else None,
            entry_price=float(data['entryPrice']),
            exit_price=float(data['exitPrice']),
            quantity=float(data['quantity']),
            gross_profit=float(data.get('grossProfit', 0.0)),
            total_commission=float(data.get('totalCommission', 0.0)),
            net_profit=float(data.get('netProfit', 0.0)),
            status=str(data.get('status', BREAKEVEN)),
            session=str(data.get('session', '')),
            stop_loss=float(stop_raw) if stop_raw is not None else None,
            notes=str(data.get('notes') or ''),
            emotions=str(data.get('emotions') or ''),
            rating=int(rating_raw) if rating_raw is not None else None,
            screenshots=list(data.get('screenshots') or []),
        )
