"""
Journal statistics.

This module provides helpers to compute summary statistics from a
list of trades: win/loss/breakeven buckets, profit factor and
expectancy, the cumulative equity curve and the account health
figures shown on the dashboard.  Filters for status, asset, free text
and date period are included so the same numbers can be computed for
any slice of the journal.

Nothing here reads the system clock: period filters and the goal
countdown take an explicit `now`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import pandas as pd

from ..config.schema import AccountConfig
from ..execution.models import Trade, WIN, LOSS, BREAKEVEN
from ..utils.timeutils import days_remaining

PERIODS = ('all', 'today', 'week', 'month', 'custom')


@dataclass
class EquityPoint:
    """Cumulative net P&L after a trade."""
    timestamp: pd.Timestamp
    equity: float


def _bucket(trades: List[Trade]) -> Dict[str, Any]:
    pnls = [t.net_profit for t in trades]
    return {
        'count': len(trades),
        'pnl': round(sum(pnls), 2),
        'best': max(pnls) if pnls else 0.0,
        'worst': min(pnls) if pnls else 0.0,
    }


def compute_metrics(trades: List[Trade]) -> Dict[str, Any]:
    """Compute a set of summary statistics for the given trades.

    Parameters
    ----------
    trades : list of Trade
        Trades with valuation already applied.

    Returns
    -------
    dict
        ``total``, ``wins``, ``losses`` and ``breakeven`` buckets plus
        win rate (percent), profit factor, expectancy, average trade,
        best/worst trade, gross P&L and total commission.
    """
    wins = [t for t in trades if t.status == WIN]
    losses = [t for t in trades if t.status == LOSS]
    breakeven = [t for t in trades if t.status == BREAKEVEN]
    total = len(trades)
    total_pnl = round(sum(t.net_profit for t in trades), 2)

    gross_wins = sum(t.net_profit for t in wins)
    gross_losses = -sum(t.net_profit for t in losses)
    profit_factor = gross_wins / gross_losses if gross_losses > 0 else 0.0

    win_rate = len(wins) / total * 100 if total else 0.0
    loss_rate = len(losses) / total * 100 if total else 0.0
    average_win = gross_wins / len(wins) if wins else 0.0
    average_loss = -gross_losses / len(losses) if losses else 0.0
    expectancy = (win_rate / 100 * average_win) + (loss_rate / 100 * average_loss)

    return {
        'total': {'count': total, 'pnl': total_pnl},
        'wins': _bucket(wins),
        'losses': _bucket(losses),
        'breakeven': {'count': len(breakeven), 'pnl': round(sum(t.net_profit for t in breakeven), 2)},
        'win_rate': win_rate,
        'profit_factor': profit_factor,
        'average_win': average_win,
        'average_loss': average_loss,
        'expectancy': expectancy,
        'avg_trade': total_pnl / total if total else 0.0,
        # Best/worst are floored/capped at zero, as on the dashboard
        'best_trade': max([0.0] + [t.net_profit for t in trades]),
        'worst_trade': min([0.0] + [t.net_profit for t in trades]),
        'gross_profit': round(sum(t.gross_profit for t in trades), 2),
        'total_commission': round(sum(t.total_commission for t in trades), 2),
    }


def equity_curve(trades: List[Trade]) -> List[EquityPoint]:
    """Running net P&L, ordered by entry time."""
    points: List[EquityPoint] = []
    running = 0.0
    for trade in sorted(trades, key=lambda t: t.entry_time):
        running += trade.net_profit
        points.append(EquityPoint(timestamp=trade.exit_time or trade.entry_time, equity=round(running, 2)))
    return points


def account_health(trades: List[Trade], account: AccountConfig,
                   now: Optional[pd.Timestamp] = None) -> Dict[str, Any]:
    """Balance, drawdown cushion and goal progress for an account.

    The cushion is the distance between the current balance and the
    liquidation level (initial balance minus the drawdown limit).
    ``days_remaining`` is only present when both a deadline and `now`
    are supplied.
    """
    total_pnl = round(sum(t.net_profit for t in trades), 2)
    balance = account.initial_balance + total_pnl
    liquidation_level = account.initial_balance - account.max_drawdown_limit
    cushion = balance - liquidation_level
    health = cushion / account.max_drawdown_limit * 100 if account.max_drawdown_limit else 0.0
    health_info: Dict[str, Any] = {
        'balance': round(balance, 2),
        'liquidation_level': round(liquidation_level, 2),
        'cushion': round(cushion, 2),
        'health_pct': health,
        'goal': account.goal,
        'goal_progress_pct': total_pnl / account.goal * 100 if account.goal else 0.0,
    }
    if account.deadline and now is not None:
        health_info['days_remaining'] = days_remaining(pd.Timestamp(account.deadline), now)
    return health_info


def filter_trades(
    trades: List[Trade],
    status: Optional[str] = None,
    asset: Optional[str] = None,
    search: Optional[str] = None,
) -> List[Trade]:
    """Filter by status, exact asset and case-insensitive text in asset or notes."""
    needle = (search or '').lower()
    out = []
    for trade in trades:
        if status and trade.status != status:
            continue
        if asset and trade.asset != asset:
            continue
        if needle and needle not in trade.asset.lower() and needle not in (trade.notes or '').lower():
            continue
        out.append(trade)
    return out


def filter_by_period(
    trades: List[Trade],
    period: str,
    now: pd.Timestamp,
    start: Optional[pd.Timestamp] = None,
    end: Optional[pd.Timestamp] = None,
) -> List[Trade]:
    """Keep trades whose entry falls in `period`.

    Parameters
    ----------
    period : str
        ``all``, ``today``, ``week`` (since Monday), ``month`` or
        ``custom`` (``start`` inclusive through the whole ``end`` day).
    now : pandas.Timestamp
        Reference time; its timezone defines calendar days.
    """
    if period not in PERIODS:
        raise ValueError(f"unknown period {period!r}, expected one of {PERIODS}")
    if period == 'all':
        return list(trades)

    now = pd.Timestamp(now)
    today = now.normalize()
    if period == 'today':
        lower, upper = today, today + pd.Timedelta(days=1)
    elif period == 'week':
        lower = today - pd.Timedelta(days=today.dayofweek)
        upper = lower + pd.Timedelta(days=7)
    elif period == 'month':
        lower = today.replace(day=1)
        upper = lower + pd.offsets.MonthBegin(1)
    else:
        lower = _align(pd.Timestamp(start), now) if start is not None else None
        upper = _align(pd.Timestamp(end), now).normalize() + pd.Timedelta(days=1) if end is not None else None

    out = []
    for trade in trades:
        entry = _align(trade.entry_time, now)
        if lower is not None and entry < lower:
            continue
        if upper is not None and entry >= upper:
            continue
        out.append(trade)
    return out


def _align(ts: pd.Timestamp, now: pd.Timestamp) -> pd.Timestamp:
    """Express `ts` in the same timezone awareness as `now`."""
    if now.tzinfo is None:
        return ts.tz_localize(None) if ts.tzinfo is not None else ts
    if ts.tzinfo is None:
        return ts.tz_localize(now.tzinfo)
    return ts.tz_convert(now.tzinfo)
