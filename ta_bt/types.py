"""Shared types for the backtest engine.

The guiding principle is to keep the runtime objects small and explicit.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class Bar:
    """OHLCV bar.

    All prices must be float (already adjusted to the desired currency scale).
    """

    date: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


@dataclass(frozen=True)
class Signal:
    """A per-bar trading instruction produced by a strategy."""

    date: datetime
    action: str  # 'buy'/'sell'/'hold'
    price: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class Trade:
    """A completed entry->exit cycle. Appended once, never mutated."""

    entry_date: datetime
    entry_price: float
    exit_date: datetime
    exit_price: float
    pnl: float
    pnl_percent: float
    hold_days: int
    side: str = "long"
    exit_reason: str = ""


@dataclass(frozen=True)
class EquityPoint:
    date: datetime
    equity: float
    drawdown: float  # <= 0
    benchmark: float


@dataclass(frozen=True)
class Metrics:
    """Summary statistics over a full run.

    ``profit_factor`` and ``calmar_ratio`` may be ``math.inf``; they are never NaN.
    """

    total_return: float = 0.0
    annualized_return: float = 0.0
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_duration: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    total_trades: int = 0
    avg_hold_days: float = 0.0
    avg_win_pnl: float = 0.0
    avg_loss_pnl: float = 0.0
    calmar_ratio: float = 0.0

    def to_dict(self, json_safe: bool = False) -> dict:
        """Return metrics as a plain dict.

        With ``json_safe=True`` infinities become the string ``"Infinity"`` so the
        output survives strict JSON encoders.
        """
        d = asdict(self)
        if json_safe:
            for k, v in d.items():
                if isinstance(v, float) and math.isinf(v):
                    d[k] = "Infinity" if v > 0 else "-Infinity"
        return d


@dataclass
class BacktestResult:
    trades: List[Trade] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)
    metrics: Metrics = field(default_factory=Metrics)
    signals: List[Signal] = field(default_factory=list)
