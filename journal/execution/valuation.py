"""
Trade valuation and risk metrics.

One set of functions values every trade in the journal, whether it
was rebuilt from broker fills by the reconstructor or typed in (or
edited) by hand.  Sharing the code path keeps the two results
identical for the same prices, size and instrument.

Money values are rounded to cents before the win/loss/breakeven
decision, so ``breakeven`` means exactly zero after rounding.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple
import logging
import pandas as pd

from ..instruments.resolver import InstrumentResolver, InstrumentSpec, default_resolver, root_symbol
from ..utils.timeutils import classify_session
from .models import Trade, LONG, SHORT, WIN, LOSS, BREAKEVEN


logger = logging.getLogger(__name__)

NO_STOP_MESSAGE = "define stop to see ratio"

REVALUE_FIELDS = ('entry_price', 'exit_price', 'quantity', 'asset', 'direction', 'stop_loss')


@dataclass(frozen=True)
class Valuation:
    """P&L of one trade."""
    gross_profit: float
    total_commission: float
    net_profit: float
    status: str


@dataclass(frozen=True)
class RiskMetrics:
    """Stop-loss derived figures.

    `risk_amount` keeps its sign: a stop on the wrong side of the entry
    gives a negative amount so the inconsistency stays visible.
    `reward_risk_ratio` is `None` when the risk per contract is not
    positive.
    """
    risk_per_contract: float
    risk_amount: float
    reward_risk_ratio: Optional[float]


@dataclass(frozen=True)
class TradeEstimate:
    """Everything the live entry form shows for a single trade."""
    valuation: Valuation
    risk: Optional[RiskMetrics]
    points: float
    ticks: int
    goal_impact: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            'grossProfit': self.valuation.gross_profit,
            'totalCommission': self.valuation.total_commission,
            'netProfit': self.valuation.net_profit,
            'status': self.valuation.status,
            'points': self.points,
            'ticks': self.ticks,
        }
        if self.goal_impact is not None:
            out['goalImpact'] = self.goal_impact
        if self.risk is not None:
            out['riskAmount'] = self.risk.risk_amount
            out['rewardRiskRatio'] = self.risk.reward_risk_ratio
        else:
            out['rewardRiskRatio'] = NO_STOP_MESSAGE
        return out


def _round_money(value: float) -> float:
    # + 0.0 turns a rounded -0.0 into 0.0
    return round(value, 2) + 0.0


def _check_direction(direction: str) -> str:
    normalized = str(direction).strip().lower()
    if normalized not in (LONG, SHORT):
        raise ValueError(f"direction must be 'long' or 'short', got {direction!r}")
    return normalized


def classify_status(net_profit: float) -> str:
    """Return ``win``, ``loss`` or ``breakeven`` from the sign of `net_profit`."""
    if net_profit > 0:
        return WIN
    if net_profit < 0:
        return LOSS
    return BREAKEVEN


def price_move(direction: str, entry_price: float, exit_price: float) -> float:
    """Signed per-contract move in the trade's favour."""
    if _check_direction(direction) == LONG:
        return exit_price - entry_price
    return entry_price - exit_price


def commission_for(spec: InstrumentSpec, quantity: float, account_is_real: bool,
                   reported_commission: Optional[float] = None) -> float:
    """Commission charged on a round trip.

    Demo accounts are never charged.  Live accounts pay what the broker
    reported on the fills when that is known, otherwise the instrument's
    per-contract rate times the quantity.
    """
    if not account_is_real:
        return 0.0
    if reported_commission:
        return abs(reported_commission)
    return spec.commission_rate * quantity


def value_trade(
    direction: str,
    entry_price: float,
    exit_price: float,
    quantity: float,
    spec: InstrumentSpec,
    account_is_real: bool,
    reported_commission: Optional[float] = None,
) -> Valuation:
    """Compute gross and net P&L for a trade.

    Parameters
    ----------
    direction : str
        ``'long'`` or ``'short'``.
    entry_price, exit_price : float
        Average entry and exit prices.
    quantity : float
        Contracts traded on the entry leg.
    spec : InstrumentSpec
        Resolved instrument metadata.
    account_is_real : bool
        Whether commissions apply.
    reported_commission : float, optional
        Commission the broker reported on the fills, if any.

    Returns
    -------
    Valuation
    """
    gross = price_move(direction, entry_price, exit_price) * quantity * spec.multiplier
    gross = _round_money(gross)
    commission = _round_money(commission_for(spec, quantity, account_is_real, reported_commission))
    net = _round_money(gross - commission)
    return Valuation(
        gross_profit=gross,
        total_commission=commission,
        net_profit=net,
        status=classify_status(net),
    )


def assess_risk(
    direction: str,
    entry_price: float,
    exit_price: float,
    stop_loss: Optional[float],
    quantity: float,
    spec: InstrumentSpec,
) -> Optional[RiskMetrics]:
    """Risk amount and reward:risk ratio for a stop-loss, or `None` without one.

    A stop of ``0`` is treated as "no stop".
    """
    if stop_loss is None or stop_loss == 0:
        return None
    if _check_direction(direction) == LONG:
        risk_per_contract = entry_price - stop_loss
    else:
        risk_per_contract = stop_loss - entry_price
    risk_amount = _round_money(risk_per_contract * quantity * spec.multiplier)
    ratio: Optional[float] = None
    if risk_per_contract > 0:
        ratio = abs(exit_price - entry_price) / risk_per_contract
    elif risk_per_contract < 0:
        logger.debug("Stop %.5f is on the wrong side of a %s entry at %.5f", stop_loss, direction, entry_price)
    return RiskMetrics(
        risk_per_contract=risk_per_contract,
        risk_amount=risk_amount,
        reward_risk_ratio=ratio,
    )


def points_and_ticks(entry_price: float, exit_price: float, spec: InstrumentSpec) -> Tuple[float, int]:
    """Absolute price distance travelled, in points and whole ticks."""
    points = abs(exit_price - entry_price)
    ticks = int(round(points / spec.tick_size)) if spec.tick_size > 0 else 0
    return points, ticks


def estimate_trade(
    asset: str,
    direction: str,
    entry_price: float,
    exit_price: float,
    quantity: float,
    account_is_real: bool,
    stop_loss: Optional[float] = None,
    goal: Optional[float] = None,
    resolver: Optional[InstrumentResolver] = None,
) -> TradeEstimate:
    """Live valuation for a single hand-entered trade.

    Produces the same P&L the reconstructor computes for an equivalent
    pair of fills.  Raises `ValueError` for an unknown direction or a
    non-positive quantity.
    """
    if quantity <= 0:
        raise ValueError(f"quantity must be positive, got {quantity}")
    resolver = resolver or default_resolver()
    spec = resolver.resolve(asset)
    valuation = value_trade(direction, entry_price, exit_price, quantity, spec, account_is_real)
    risk = assess_risk(direction, entry_price, exit_price, stop_loss, quantity, spec)
    points, ticks = points_and_ticks(entry_price, exit_price, spec)
    goal_impact = valuation.net_profit / goal * 100 if goal else None
    return TradeEstimate(
        valuation=valuation,
        risk=risk,
        points=points,
        ticks=ticks,
        goal_impact=goal_impact,
    )


def revalue(
    trade: Trade,
    changes: Dict[str, Any],
    account_is_real: bool,
    tz_name: str,
    resolver: Optional[InstrumentResolver] = None,
) -> Trade:
    """Apply user edits to `trade` and return the updated copy.

    Edits touching price, size, asset, direction or stop re-run the
    valuation so P&L and status never drift from the inputs.  A new
    entry time re-classifies the session unless a session is given
    explicitly.  Raises `ValueError` if the entry ends up after the exit.
    """
    unknown = set(changes) - {f for f in Trade.__dataclass_fields__ if f != 'id'}
    if unknown:
        raise ValueError(f"cannot edit unknown trade fields: {sorted(unknown)}")
    for derived in ('gross_profit', 'total_commission', 'net_profit', 'status'):
        if derived in changes:
            raise ValueError(f"{derived} is derived and cannot be edited directly")

    updated = replace(trade, **changes)
    if 'direction' in changes:
        updated = replace(updated, direction=_check_direction(updated.direction))
    if 'asset' in changes:
        updated = replace(updated, asset=root_symbol(updated.asset))
    if 'entry_time' in changes:
        updated = replace(updated, entry_time=pd.Timestamp(updated.entry_time))
        if 'session' not in changes:
            updated = replace(updated, session=classify_session(updated.entry_time, tz_name))
    if 'exit_time' in changes and updated.exit_time is not None:
        updated = replace(updated, exit_time=pd.Timestamp(updated.exit_time))
    if updated.exit_time is not None and updated.entry_time > updated.exit_time:
        raise ValueError("entry time cannot be later than exit time")
    if updated.quantity <= 0:
        raise ValueError(f"quantity must be positive, got {updated.quantity}")

    if any(name in changes for name in REVALUE_FIELDS):
        spec = (resolver or default_resolver()).resolve(updated.asset)
        valuation = value_trade(
            updated.direction,
            updated.entry_price,
            updated.exit_price,
            updated.quantity,
            spec,
            account_is_real,
        )
        updated = replace(
            updated,
            gross_profit=valuation.gross_profit,
            total_commission=valuation.total_commission,
            net_profit=valuation.net_profit,
            status=valuation.status,
        )
    return updated
