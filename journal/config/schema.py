"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (`config.yaml`).  A helper function
`load_config()` reads a YAML file from disk and returns an instance
of `Config` populated with reasonable defaults for any missing
fields.

Using dataclasses provides type hints and a clear contract for what
values are expected.  When extending the configuration, add new
fields to the appropriate dataclass and update `load_config()`
accordingly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import yaml

from ..instruments.resolver import InstrumentResolver, STANDARD_COMMISSION, MICRO_COMMISSION


@dataclass
class AccountConfig:
    """Describes the trading account the journal belongs to.

    Attributes
    ----------
    name : str
        Display name of the account.
    broker : str
        Broker or platform name (``NinjaTrader``, ``Tradovate``...).
    is_real : bool
        ``True`` for a live account.  Commissions are only charged on
        live accounts; demo and paper accounts always show zero.
    initial_balance : float
        Starting balance used for the account health figures.
    goal : float
        Profit target for the account.
    deadline : str or None
        Goal deadline in ``YYYY-MM-DD`` format.
    max_drawdown_limit : float
        Distance from the initial balance to the liquidation level.
    currency : str
        Account currency code.
    """

    name: str = "Default"
    broker: str = ""
    is_real: bool = False
    initial_balance: float = 50_000.0
    goal: float = 3_000.0
    deadline: Optional[str] = None
    max_drawdown_limit: float = 2_000.0
    currency: str = "USD"


@dataclass
class CommissionConfig:
    """Per-contract commission rates.

    Attributes
    ----------
    standard : float
        Rate for full-size contracts and unknown instruments.
    micro : float
        Rate for micro contracts.
    """

    standard: float = STANDARD_COMMISSION
    micro: float = MICRO_COMMISSION


@dataclass
class ReconstructionConfig:
    """Controls how fills are folded into round trips.

    Attributes
    ----------
    strict_overshoot : bool
        Split a fill that overshoots the open quantity into a closing
        part and a new opposite cycle.  Off by default.
    flat_epsilon : float
        Absolute tolerance under which a net position counts as flat.
    """

    strict_overshoot: bool = False
    flat_epsilon: float = 0.0001


@dataclass
class DataConfig:
    """Data source configuration.

    Attributes
    ----------
    timezone : str
        IANA timezone name used both for interpreting naive broker
        timestamps and for classifying trading sessions.
    """

    timezone: str = "America/New_York"


@dataclass
class ReportConfig:
    """Where import reports are written."""

    out_dir: str = "results"


@dataclass
class Config:
    """Root configuration for the trading journal.

    Attributes
    ----------
    account : AccountConfig
        Account details, including the live/demo flag.
    commissions : CommissionConfig
        Standard and micro commission rates.
    instruments : dict
        Extra instruments keyed by root, each with ``multiplier``,
        ``tick_size`` and optionally ``micro``.
    reconstruction : ReconstructionConfig
        Fill folding policy.
    data : DataConfig
        Timezone configuration.
    report : ReportConfig
        Report output configuration.
    """

    account: AccountConfig = field(default_factory=AccountConfig)
    commissions: CommissionConfig = field(default_factory=CommissionConfig)
    instruments: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    reconstruction: ReconstructionConfig = field(default_factory=ReconstructionConfig)
    data: DataConfig = field(default_factory=DataConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    def build_resolver(self) -> InstrumentResolver:
        """Create the instrument resolver every valuation should share."""
        return InstrumentResolver(
            standard_commission=self.commissions.standard,
            micro_commission=self.commissions.micro,
            custom_instruments=self.instruments,
        )


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    This helper is used when loading YAML into nested dataclasses.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: str) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Config
        A populated configuration object.  Missing fields are filled with
        sensible defaults defined in the dataclasses.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw: Dict[str, Any] = yaml.safe_load(fh) or {}

    # Build nested dictionaries representing the default dataclasses
    defaults: Dict[str, Any] = {
        'account': {
            'name': "Default",
            'broker': "",
            'is_real': False,
            'initial_balance': 50_000.0,
            'goal': 3_000.0,
            'deadline': None,
            'max_drawdown_limit': 2_000.0,
            'currency': "USD",
        },
        'commissions': {
            'standard': STANDARD_COMMISSION,
            'micro': MICRO_COMMISSION,
        },
        'instruments': {},
        'reconstruction': {
            'strict_overshoot': False,
            'flat_epsilon': 0.0001,
        },
        'data': {
            'timezone': 'America/New_York',
        },
        'report': {
            'out_dir': 'results',
        },
    }

    merged = _merge_dict(defaults, raw)

    account = merged['account']
    deadline = account.get('deadline')
    account_cfg = AccountConfig(
        name=str(account['name']),
        broker=str(account['broker']),
        is_real=bool(account['is_real']),
        initial_balance=float(account['initial_balance']),
        goal=float(account['goal']),
        # YAML reads an unquoted 2025-06-30 as a date
        deadline=str(deadline) if deadline is not None else None,
        max_drawdown_limit=float(account['max_drawdown_limit']),
        currency=str(account['currency']),
    )
    commissions_cfg = CommissionConfig(
        standard=float(merged['commissions']['standard']),
        micro=float(merged['commissions']['micro']),
    )
    reconstruction_cfg = ReconstructionConfig(
        strict_overshoot=bool(merged['reconstruction']['strict_overshoot']),
        flat_epsilon=float(merged['reconstruction']['flat_epsilon']),
    )
    data_cfg = DataConfig(**merged['data'])
    report_cfg = ReportConfig(**merged['report'])

    cfg = Config(
        account=account_cfg,
        commissions=commissions_cfg,
        instruments={str(k): dict(v or {}) for k, v in (merged.get('instruments') or {}).items()},
        reconstruction=reconstruction_cfg,
        data=data_cfg,
        report=report_cfg,
    )
    return cfg
