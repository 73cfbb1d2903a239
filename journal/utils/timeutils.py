"""
Timezone, session and duration utilities.

This module centralises all wall-clock handling.  Nothing here reads
the host clock or the host timezone: the timezone name and, where a
"now" is needed, the reference time are always passed in by the
caller.
"""

from __future__ import annotations

import math
from typing import Optional
import pandas as pd

NY = 'NY'
LONDON = 'London'
ASIA = 'Asia'

# (start hour inclusive, end hour exclusive, label); unmatched hours are Asia.
SESSION_HOURS = (
    (8, 17, NY),
    (2, 8, LONDON),
)


def localize(ts: pd.Timestamp, tz_name: str) -> pd.Timestamp:
    """Attach `tz_name` to a naive wall-clock timestamp.

    Broker exports carry local wall-clock times without an offset, so a
    naive timestamp is read as already being in `tz_name`.  Aware
    timestamps are converted.  Ambiguous or non-existent local times
    (DST transitions) come back as ``NaT``.
    """
    if not isinstance(ts, pd.Timestamp):
        ts = pd.Timestamp(ts)
    if ts is pd.NaT:
        return ts
    if ts.tzinfo is None:
        return ts.tz_localize(tz_name, ambiguous="NaT", nonexistent="NaT")
    return ts.tz_convert(tz_name)


def classify_session(entry_time: pd.Timestamp, tz_name: str) -> str:
    """Return the market session label for `entry_time`.

    The hour of day in `tz_name` decides: ``[8, 17)`` is ``"NY"``,
    ``[2, 8)`` is ``"London"`` and every other hour, including the
    ``[17, 18)`` gap, is ``"Asia"``.  Naive timestamps are taken as
    wall-clock time in `tz_name`.
    """
    if not isinstance(entry_time, pd.Timestamp):
        entry_time = pd.Timestamp(entry_time)
    local = entry_time if entry_time.tzinfo is None else entry_time.tz_convert(tz_name)
    hour = local.hour
    for start, end, label in SESSION_HOURS:
        if start <= hour < end:
            return label
    return ASIA


def trade_duration(entry_time: pd.Timestamp, exit_time: Optional[pd.Timestamp]) -> Optional[pd.Timedelta]:
    """Exit minus entry, or `None` when the trade has no exit time."""
    if exit_time is None or pd.isna(exit_time):
        return None
    return pd.Timestamp(exit_time) - pd.Timestamp(entry_time)


def format_duration(entry_time: pd.Timestamp, exit_time: Optional[pd.Timestamp]) -> str:
    """Bucket a trade's duration for display.

    Returns ``"-"`` without an exit, ``"< 1m"`` for a non-positive span,
    otherwise ``"2d 3h"``, ``"1h 5m"`` or ``"12m"``.
    """
    delta = trade_duration(entry_time, exit_time)
    if delta is None:
        return '-'
    if delta <= pd.Timedelta(0):
        return '< 1m'
    minutes = int(delta.total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    return f"{minutes}m"


def days_remaining(deadline: pd.Timestamp, now: pd.Timestamp) -> int:
    """Whole days from `now` until `deadline`, rounded up.

    Both values must be either naive or aware; a naive deadline given
    with an aware `now` is localised to `now`'s timezone.
    """
    deadline = pd.Timestamp(deadline)
    now = pd.Timestamp(now)
    if deadline.tzinfo is None and now.tzinfo is not None:
        deadline = deadline.tz_localize(now.tzinfo)
    seconds = (deadline - now).total_seconds()
    return math.ceil(seconds / 86400)
