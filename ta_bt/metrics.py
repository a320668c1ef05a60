"""Performance metrics."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .types import EquityPoint, Metrics, Trade

TRADING_DAYS_PER_YEAR = 252
RISK_FREE_RATE = 0.025


def annualized_return(final_equity: float, initial_capital: float, trading_days: int) -> float:
    """Geometric annualization over ``trading_days`` bars (252 per year)."""
    if trading_days <= 0 or initial_capital <= 0:
        return 0.0
    try:
        growth = (final_equity / initial_capital) ** (TRADING_DAYS_PER_YEAR / trading_days)
    except OverflowError:
        # short runs with huge gains leave the float range; keep the inf sentinel
        return math.inf
    return float(growth - 1.0)


def daily_returns(equity: Sequence[float]) -> np.ndarray:
    """Simple bar-to-bar returns; bars following a non-positive equity are skipped."""
    x = np.asarray(equity, dtype=float)
    if len(x) < 2:
        return np.zeros(0, dtype=float)
    prev = x[:-1]
    cur = x[1:]
    mask = prev > 0
    return (cur[mask] - prev[mask]) / prev[mask]


def sharpe_ratio(ann_return: float, returns: np.ndarray) -> float:
    """(annualized return - rf) / (sample daily std * sqrt(252)); 0 when flat."""
    if len(returns) < 2:
        return 0.0
    std = float(np.std(returns, ddof=1))
    if not std > 0:
        return 0.0
    return (ann_return - RISK_FREE_RATE) / (std * math.sqrt(TRADING_DAYS_PER_YEAR))


def profit_factor(trades: Sequence[Trade]) -> float:
    gross_profit = sum(t.pnl for t in trades if t.pnl > 0)
    gross_loss = abs(sum(t.pnl for t in trades if t.pnl <= 0))
    if gross_loss > 0:
        return gross_profit / gross_loss
    return math.inf if gross_profit > 0 else 0.0


def calmar_ratio(ann_return: float, max_dd: float) -> float:
    if max_dd < 0:
        return ann_return / abs(max_dd)
    return math.inf if ann_return > 0 else 0.0


def _mean(xs: Sequence[float]) -> float:
    return float(sum(xs) / len(xs)) if xs else 0.0


def _round(x: float, places: int) -> float:
    # infinities pass through untouched
    return x if math.isinf(x) else round(float(x), places)


def compute_metrics(
    trades: Sequence[Trade],
    equity_curve: Sequence[EquityPoint],
    initial_capital: float,
    max_dd: float,
    max_dd_duration: int,
) -> Metrics:
    """Summary metrics over a completed run.

    ``max_dd`` (<= 0) and ``max_dd_duration`` come from the engine's running
    peak bookkeeping so the curve is not scanned again.
    """
    final_equity = equity_curve[-1].equity if equity_curve else initial_capital
    trading_days = len(equity_curve)

    total_return = (final_equity - initial_capital) / initial_capital if initial_capital > 0 else 0.0
    ann = annualized_return(final_equity, initial_capital, trading_days)
    sharpe = sharpe_ratio(ann, daily_returns([p.equity for p in equity_curve]))

    wins = [t for t in trades if t.pnl > 0]
    losses = [t for t in trades if t.pnl <= 0]
    win_rate = len(wins) / len(trades) if trades else 0.0

    return Metrics(
        total_return=_round(total_return, 6),
        annualized_return=_round(ann, 6),
        sharpe_ratio=_round(sharpe, 4),
        max_drawdown=_round(max_dd, 6),
        max_drawdown_duration=int(max_dd_duration),
        win_rate=_round(win_rate, 4),
        profit_factor=_round(profit_factor(trades), 4),
        total_trades=len(trades),
        avg_hold_days=_round(_mean([t.hold_days for t in trades]), 1),
        avg_win_pnl=_round(_mean([t.pnl_percent for t in wins]), 6),
        avg_loss_pnl=_round(_mean([t.pnl_percent for t in losses]), 6),
        calmar_ratio=_round(calmar_ratio(ann, max_dd), 4),
    )
