"""
Report generation utilities.

This module turns an import into human-readable artefacts: a CSV of
the reconstructed trades, a JSON summary of journal statistics and a
PNG chart of the cumulative P&L.  Having a central place for report
generation makes it easy to extend the output formats in future
(e.g. HTML reports).
"""

from __future__ import annotations

import os
import json
from typing import Any, Dict, List, Optional
import pandas as pd
import matplotlib

# Use non-interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..execution.models import Trade
from .metrics import compute_metrics, equity_curve


def generate_import_report(
    trades: List[Trade],
    out_dir: str = "results",
    warnings: Optional[List[str]] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, str]:
    """Generate report files for an execution import.

    Creates the output directory if it does not exist and writes the
    following files:

    - `trades.csv` – serialised trades, most recent entry first
    - `summary.json` – journal statistics, import warnings and any
      `extra` figures (e.g. account health)
    - `equity_curve.png` – line chart of cumulative net P&L

    Returns
    -------
    dict
        Paths of the written files keyed by ``trades``, ``summary`` and
        ``chart``.
    """
    os.makedirs(out_dir, exist_ok=True)

    # Trades CSV
    trades_data = [t.to_dict() for t in trades]
    for row in trades_data:
        row['screenshots'] = len(row['screenshots'])
    df_trades = pd.DataFrame(trades_data)
    trades_path = os.path.join(out_dir, 'trades.csv')
    df_trades.to_csv(trades_path, index=False)

    # Summary JSON
    summary: Dict[str, Any] = compute_metrics(trades)
    summary['warnings'] = list(warnings or [])
    if extra:
        summary.update(extra)
    summary_path = os.path.join(out_dir, 'summary.json')
    with open(summary_path, 'w', encoding='utf-8') as fh:
        json.dump(summary, fh, indent=2, ensure_ascii=False, default=str)

    # Equity curve plot
    curve = equity_curve(trades)
    fig, ax = plt.subplots(figsize=(10, 4))
    if curve:
        ax.plot([pd.Timestamp(p.timestamp) for p in curve], [p.equity for p in curve], linewidth=1.5)
        ax.axhline(0.0, color='grey', linewidth=0.8, linestyle='--')
        ax.set_title('Cumulative Net P&L')
        ax.set_xlabel('Time')
        ax.set_ylabel('P&L')
        fig.autofmt_xdate()
    fig.tight_layout()
    plot_path = os.path.join(out_dir, 'equity_curve.png')
    fig.savefig(plot_path)
    plt.close(fig)

    return {'trades': trades_path, 'summary': summary_path, 'chart': plot_path}
