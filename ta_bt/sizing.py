"""Position sizing rules.

Each rule turns available cash and an effective (commission-inclusive) price
into a whole share count. Bad inputs give 0 shares, never an error.

- Full: everything the cash buys
- Fixed fractional: risk a fixed share of capital against the stop distance
- Kelly: f* = p - q / b from the run's own trade history, fractional and capped
- ATR: risk a fixed share of capital against a multiple of ATR
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .config import (
    AtrSizing,
    FixedFractionSizing,
    FullSizing,
    KellySizing,
    PercentStop,
    PositionSizing,
    StopLoss,
)
from .types import Trade

DEFAULT_STOP_LOSS_PERCENT = 0.05
KELLY_MIN_TRADES = 5
KELLY_MAX_FRACTION = 0.25
FALLBACK_FRACTION = 0.10


@dataclass(frozen=True)
class PositionSize:
    shares: int
    position_value: float
    risk_amount: float


_NO_TRADE = PositionSize(shares=0, position_value=0.0, risk_amount=0.0)


@dataclass(frozen=True)
class SizingContext:
    """Inputs the engine derives from its own state for the current bar."""

    atr: float = 0.0
    trades: Sequence[Trade] = field(default_factory=tuple)
    stop_loss: Optional[StopLoss] = None


def _max_shares(capital: float, price: float) -> int:
    if capital <= 0 or price <= 0:
        return 0
    return int(math.floor(capital / price))


def full_size(capital: float, price: float) -> PositionSize:
    shares = _max_shares(capital, price)
    return PositionSize(shares=shares, position_value=shares * price, risk_amount=shares * price)


def fixed_fractional_size(
    capital: float,
    price: float,
    risk_percent: float,
    stop_loss_percent: float = DEFAULT_STOP_LOSS_PERCENT,
) -> PositionSize:
    """shares = floor(capital * risk_percent / (price * stop_loss_percent))"""
    if capital <= 0 or price <= 0 or risk_percent <= 0 or stop_loss_percent <= 0:
        return _NO_TRADE

    risk_amount = capital * risk_percent
    per_share_risk = price * stop_loss_percent
    shares = min(int(math.floor(risk_amount / per_share_risk)), _max_shares(capital, price))
    return PositionSize(shares=shares, position_value=shares * price, risk_amount=shares * per_share_risk)


def kelly_size(
    capital: float,
    price: float,
    win_rate: float,
    avg_win: float,
    avg_loss: float,
    fraction: float = 0.5,
) -> PositionSize:
    """Fractional Kelly. ``avg_loss`` is negative (or zero, which means no trade)."""
    if capital <= 0 or price <= 0 or fraction <= 0:
        return _NO_TRADE
    if win_rate <= 0 or win_rate > 1 or avg_win <= 0 or avg_loss >= 0:
        return _NO_TRADE

    b = avg_win / abs(avg_loss)
    full_kelly = win_rate - (1.0 - win_rate) / b
    if full_kelly <= 0:
        return _NO_TRADE

    position_value = capital * full_kelly * fraction
    shares = min(int(math.floor(position_value / price)), _max_shares(capital, price))
    return PositionSize(
        shares=shares,
        position_value=shares * price,
        risk_amount=shares * price * abs(avg_loss),
    )


def atr_size(capital: float, price: float, atr: float, risk_percent: float, multiplier: float = 2.0) -> PositionSize:
    """shares = floor(capital * risk_percent / (multiplier * atr))"""
    if capital <= 0 or price <= 0 or risk_percent <= 0 or atr <= 0 or multiplier <= 0:
        return _NO_TRADE

    stop_distance = multiplier * atr
    shares = min(int(math.floor(capital * risk_percent / stop_distance)), _max_shares(capital, price))
    return PositionSize(shares=shares, position_value=shares * price, risk_amount=shares * stop_distance)


def _fallback_shares(capital: float, price: float) -> int:
    return _max_shares(capital * FALLBACK_FRACTION, price)


def _kelly_inputs(trades: Sequence[Trade]) -> tuple[float, float, float]:
    wins = [t for t in trades if t.pnl > 0]
    losses = [t for t in trades if t.pnl <= 0]
    win_rate = len(wins) / len(trades)
    avg_win = sum(abs(t.pnl_percent) for t in wins) / len(wins) if wins else 0.0
    # no losers yet: assume a 1% loss so the payoff ratio stays finite
    avg_loss = -(sum(abs(t.pnl_percent) for t in losses) / len(losses)) if losses else -0.01
    return win_rate, avg_win, avg_loss


def size_position(sizing: PositionSizing, cash: float, price: float, ctx: SizingContext) -> int:
    """Share count for ``sizing`` given available cash and an effective price.

    Never exceeds ``floor(cash / price)``.
    """
    if isinstance(sizing, FullSizing):
        return full_size(cash, price).shares

    if isinstance(sizing, FixedFractionSizing):
        sl_pct = ctx.stop_loss.value if isinstance(ctx.stop_loss, PercentStop) else DEFAULT_STOP_LOSS_PERCENT
        return fixed_fractional_size(cash, price, sizing.risk_percent, sl_pct).shares

    if isinstance(sizing, KellySizing):
        if len(ctx.trades) < KELLY_MIN_TRADES:
            return _fallback_shares(cash, price)
        win_rate, avg_win, avg_loss = _kelly_inputs(ctx.trades)
        res = kelly_size(cash, price, win_rate, avg_win, avg_loss, sizing.fraction)
        return min(res.shares, _max_shares(cash * KELLY_MAX_FRACTION, price))

    if isinstance(sizing, AtrSizing):
        if not ctx.atr > 0:
            return _fallback_shares(cash, price)
        return atr_size(cash, price, ctx.atr, sizing.risk_percent, sizing.multiplier).shares

    raise TypeError(f"Unknown position sizing variant: {sizing!r}")
