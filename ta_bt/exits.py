"""Per-bar exit checks for an open long position.

Fixed priority: stop-loss, then take-profit, then max holding period.
The first one that fires closes the whole position at that bar.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import AtrStop, BacktestConfig, PercentStop, PercentTakeProfit, TrailingStop
from .cost_model import apply_sell_cost
from .types import Bar


@dataclass(frozen=True)
class ExitDecision:
    price: float  # fill price, slippage included
    reason: str


def stop_loss_label(stop) -> str:
    if isinstance(stop, PercentStop):
        return "percent"
    if isinstance(stop, AtrStop):
        return "atr"
    if isinstance(stop, TrailingStop):
        return "trailing"
    raise TypeError(f"Unknown stop-loss variant: {stop!r}")


class ExitEvaluator:
    def __init__(self, cfg: BacktestConfig):
        self.cfg = cfg
        self.slippage = float(cfg.cost.slippage_rate)

    def initial_trailing_stop(self, close: float) -> float:
        """Trailing baseline stamped at entry from the entry bar's close."""
        stop = self.cfg.stop_loss
        if isinstance(stop, TrailingStop):
            return float(close) * (1.0 - stop.value)
        return 0.0

    def ratchet(self, trailing_stop_price: float, bar: Bar) -> float:
        """Raise the trailing stop with today's high; it never moves down."""
        stop = self.cfg.stop_loss
        if not isinstance(stop, TrailingStop):
            return trailing_stop_price
        return max(float(trailing_stop_price), float(bar.high) * (1.0 - stop.value))

    def check(
        self,
        bar: Bar,
        index: int,
        entry_price: float,
        entry_index: int,
        trailing_stop_price: float,
        atr: float,
    ) -> Optional[ExitDecision]:
        """Return the exit for this bar, or None to keep holding.

        ``trailing_stop_price`` must already include today's ratchet.
        """
        hit = self._check_stop_loss(bar, entry_price, trailing_stop_price, atr)
        if hit is not None:
            return hit

        tp = self.cfg.take_profit
        if isinstance(tp, PercentTakeProfit):
            tp_price = entry_price * (1.0 + tp.value)
            if bar.high >= tp_price:
                return ExitDecision(apply_sell_cost(min(bar.high, tp_price), self.slippage), "take profit")

        max_hold = self.cfg.max_hold_days
        if max_hold and index - entry_index >= max_hold:
            return ExitDecision(apply_sell_cost(bar.close, self.slippage), f"max hold days ({max_hold})")

        return None

    def _check_stop_loss(
        self, bar: Bar, entry_price: float, trailing_stop_price: float, atr: float
    ) -> Optional[ExitDecision]:
        stop = self.cfg.stop_loss
        if stop is None:
            return None

        if isinstance(stop, PercentStop):
            stop_px = entry_price * (1.0 - stop.value)
        elif isinstance(stop, AtrStop):
            stop_px = entry_price - stop.multiplier * atr
        elif isinstance(stop, TrailingStop):
            stop_px = trailing_stop_price
        else:
            raise TypeError(f"Unknown stop-loss variant: {stop!r}")

        if bar.low <= stop_px:
            fill = apply_sell_cost(max(bar.low, stop_px), self.slippage)
            return ExitDecision(fill, f"stop loss ({stop_loss_label(stop)})")
        return None
