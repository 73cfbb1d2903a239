"""
Round-trip trade reconstruction.

This module contains the `PositionReconstructor` which turns an
unordered list of broker fills into completed trades.  Fills are
sorted chronologically (stable, so fills sharing a timestamp keep
their input order), grouped by instrument and folded one at a time
through `step`.  A cycle opens when the net position is flat, and a
trade is emitted the moment the net position returns to flat.

The fold is written as a pure transition, ``step(state, fill) ->
state``, over an explicit `ReconstructionState` holding the open
cycle (if any) and the trades completed so far.  Each instrument is
reduced independently.

Positions that never return to flat are dropped without error: only
closed round trips are reported.

A fill that overshoots the open quantity (selling 5 lots against a
2-lot long) is handled according to ``strict_overshoot``:

* ``False`` (default): the whole fill counts as exit volume of the
  current cycle and the position stays open on the other side until
  it is flat again.
* ``True``: the fill is split.  The part that flattens the position
  closes the current cycle, the remainder opens a new cycle in the
  opposite direction.  Its commission is split by quantity.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from itertools import groupby
from typing import Dict, Iterable, List, Optional, Tuple
import logging
import uuid
import pandas as pd

from ..config.schema import Config
from ..instruments.resolver import InstrumentResolver, default_resolver, normalize_symbol, root_symbol
from ..utils.timeutils import classify_session
from .models import Execution, Trade, BUY, LONG, SHORT
from .valuation import value_trade


logger = logging.getLogger(__name__)

FLAT_EPSILON = 0.0001

_TRADE_NAMESPACE = uuid.UUID("6f1b2a0e-3c4d-4e5f-9a7b-8c9d0e1f2a3b")


@dataclass(frozen=True)
class CycleState:
    """Accumulators for one open flat-to-flat cycle."""
    instrument: str
    direction: str  # 'long' or 'short'
    entry_time: pd.Timestamp
    last_time: pd.Timestamp
    net_position: float = 0.0
    entry_quantity: float = 0.0
    entry_cost: float = 0.0
    exit_quantity: float = 0.0
    exit_revenue: float = 0.0
    commission: float = 0.0

    @property
    def avg_entry(self) -> float:
        return self.entry_cost / self.entry_quantity if self.entry_quantity else 0.0

    @property
    def avg_exit(self) -> float:
        return self.exit_revenue / self.exit_quantity if self.exit_quantity else 0.0


@dataclass(frozen=True)
class ReconstructionState:
    """Fold accumulator: the open cycle and the trades closed so far."""
    open_cycle: Optional[CycleState] = None
    completed: Tuple[Trade, ...] = ()


@dataclass
class ReconstructionSettings:
    """Inputs the fold needs besides the fills themselves."""
    resolver: InstrumentResolver = field(default_factory=default_resolver)
    account_is_real: bool = False
    timezone: str = "America/New_York"
    strict_overshoot: bool = False
    flat_epsilon: float = FLAT_EPSILON


def is_flat(position: float, epsilon: float = FLAT_EPSILON) -> bool:
    return abs(position) < epsilon


def _open_cycle(fill: Execution) -> CycleState:
    return CycleState(
        instrument=fill.instrument,
        direction=LONG if fill.side == BUY else SHORT,
        entry_time=fill.timestamp,
        last_time=fill.timestamp,
    )


def _apply(cycle: CycleState, fill: Execution, quantity: float, commission: float) -> CycleState:
    """Add `quantity` lots of `fill` to the cycle's running totals."""
    signed = quantity if fill.side == BUY else -quantity
    is_entry_leg = (fill.side == BUY) == (cycle.direction == LONG)
    if is_entry_leg:
        return replace(
            cycle,
            net_position=cycle.net_position + signed,
            entry_quantity=cycle.entry_quantity + quantity,
            entry_cost=cycle.entry_cost + fill.price * quantity,
            commission=cycle.commission + commission,
            last_time=fill.timestamp,
        )
    return replace(
        cycle,
        net_position=cycle.net_position + signed,
        exit_quantity=cycle.exit_quantity + quantity,
        exit_revenue=cycle.exit_revenue + fill.price * quantity,
        commission=cycle.commission + commission,
        last_time=fill.timestamp,
    )


def trade_id(cycle: CycleState, index: int) -> str:
    """Deterministic id for the `index`-th trade closed on an instrument."""
    key = f"{cycle.instrument}|{cycle.entry_time.isoformat()}|{cycle.last_time.isoformat()}|{index}"
    return str(uuid.uuid5(_TRADE_NAMESPACE, key))


def close_cycle(cycle: CycleState, index: int, settings: ReconstructionSettings) -> Trade:
    """Value a flat cycle and build its `Trade`."""
    spec = settings.resolver.resolve(cycle.instrument)
    entry_price = cycle.avg_entry
    exit_price = cycle.avg_exit
    valuation = value_trade(
        cycle.direction,
        entry_price,
        exit_price,
        cycle.entry_quantity,
        spec,
        settings.account_is_real,
        reported_commission=cycle.commission,
    )
    return Trade(
        id=trade_id(cycle, index),
        asset=root_symbol(cycle.instrument),
        direction=cycle.direction,
        entry_time=cycle.entry_time,
        exit_time=cycle.last_time,
        entry_price=entry_price,
        exit_price=exit_price,
        quantity=cycle.entry_quantity,
        gross_profit=valuation.gross_profit,
        total_commission=valuation.total_commission,
        net_profit=valuation.net_profit,
        status=valuation.status,
        session=classify_session(cycle.entry_time, settings.timezone),
    )


def _finish(state: ReconstructionState, cycle: CycleState, settings: ReconstructionSettings) -> ReconstructionState:
    if is_flat(cycle.net_position, settings.flat_epsilon):
        trade = close_cycle(cycle, len(state.completed), settings)
        return ReconstructionState(open_cycle=None, completed=state.completed + (trade,))
    return ReconstructionState(open_cycle=cycle, completed=state.completed)


def step(state: ReconstructionState, fill: Execution, settings: ReconstructionSettings) -> ReconstructionState:
    """Fold one fill into the reconstruction state.

    Parameters
    ----------
    state : ReconstructionState
        State after the previous fill of the same instrument.
    fill : Execution
        Next fill in chronological order.
    settings : ReconstructionSettings
        Resolver, account type, timezone and overshoot policy.

    Returns
    -------
    ReconstructionState
        New state; `state` itself is left untouched.
    """
    cycle = state.open_cycle
    if cycle is None or is_flat(cycle.net_position, settings.flat_epsilon):
        cycle = _open_cycle(fill)

    open_quantity = abs(cycle.net_position)
    closes_position = (fill.side == BUY) != (cycle.net_position > 0) and open_quantity > 0
    overshoot = fill.quantity - open_quantity

    if settings.strict_overshoot and closes_position and overshoot > settings.flat_epsilon:
        closing_commission = fill.commission * open_quantity / fill.quantity
        closed = _apply(cycle, fill, open_quantity, closing_commission)
        state = _finish(state, closed, settings)
        logger.debug(
            "Splitting %s %s fill of %s at %s: %s closes, %s reverses",
            fill.instrument, fill.side, fill.quantity, fill.timestamp, open_quantity, overshoot,
        )
        reversed_cycle = _apply(_open_cycle(fill), fill, overshoot, fill.commission - closing_commission)
        return _finish(state, reversed_cycle, settings)

    return _finish(state, _apply(cycle, fill, fill.quantity, fill.commission), settings)


def reduce_instrument(fills: Iterable[Execution], settings: ReconstructionSettings) -> ReconstructionState:
    """Fold the chronologically ordered fills of a single instrument."""
    state = ReconstructionState()
    for fill in fills:
        state = step(state, fill, settings)
    return state


def sort_executions(executions: Iterable[Execution]) -> List[Execution]:
    """Chronological order; fills sharing a timestamp keep input order."""
    return sorted(executions, key=lambda e: e.timestamp)


def group_by_instrument(executions: List[Execution]) -> Dict[str, List[Execution]]:
    """Split sorted fills per instrument, preserving their order."""
    keyed = sorted(executions, key=lambda e: normalize_symbol(e.instrument))
    return {key: list(group) for key, group in groupby(keyed, key=lambda e: normalize_symbol(e.instrument))}


class PositionReconstructor:
    """Rebuild round-trip trades from broker fills.

    Parameters
    ----------
    config : Config
        Journal configuration; supplies the account type, timezone and
        overshoot policy.
    resolver : InstrumentResolver, optional
        Instrument metadata source.  Defaults to one built from
        ``config``.
    """

    def __init__(self, config: Config, resolver: Optional[InstrumentResolver] = None) -> None:
        self.config = config
        self.settings = ReconstructionSettings(
            resolver=resolver or config.build_resolver(),
            account_is_real=config.account.is_real,
            timezone=config.data.timezone,
            strict_overshoot=config.reconstruction.strict_overshoot,
            flat_epsilon=config.reconstruction.flat_epsilon,
        )

    def run(self, executions: Iterable[Execution]) -> List[Trade]:
        """Reconstruct every closed round trip in `executions`.

        Returns
        -------
        list of Trade
            Completed trades across all instruments, most recent entry
            first.
        """
        ordered = sort_executions(executions)
        trades: List[Trade] = []
        for instrument, fills in group_by_instrument(ordered).items():
            state = reduce_instrument(fills, self.settings)
            if state.open_cycle is not None:
                logger.info(
                    "Dropping open %s position of %s on %s (opened %s)",
                    state.open_cycle.direction,
                    abs(state.open_cycle.net_position),
                    instrument,
                    state.open_cycle.entry_time,
                )
            trades.extend(state.completed)
        trades.sort(key=lambda t: t.entry_time, reverse=True)
        logger.info("Reconstructed %d trades from %d executions", len(trades), len(ordered))
        return trades
