"""Built-in plugins and the default registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .indicators import atr as atr_func, sma
from .registry import PluginRegistry
from .signals import BUY, HOLD, SELL
from .types import Bar, Signal


@dataclass(frozen=True)
class AtrParams:
    period: int = 14


class AtrIndicator:
    id = "indicator-atr"
    name = "ATR"
    category = "indicator"
    description = "Average True Range with Wilder smoothing; used for stop distance and sizing."
    params_type = AtrParams

    def compute(self, bars: Sequence[Bar], params: AtrParams = AtrParams()) -> np.ndarray:
        return atr_func(bars, int(params.period))


@dataclass(frozen=True)
class MaCrossParams:
    short_period: int = 5
    long_period: int = 20


class MaCrossStrategy:
    id = "strategy-ma-cross"
    name = "MA Cross"
    category = "strategy"
    description = "Buy when the short SMA crosses above the long SMA, sell on the opposite cross."
    params_type = MaCrossParams

    def generate_signals(self, bars: Sequence[Bar], params: MaCrossParams = MaCrossParams()) -> List[Signal]:
        closes = [b.close for b in bars]
        short_ma = sma(closes, int(params.short_period))
        long_ma = sma(closes, int(params.long_period))

        out: List[Signal] = []
        for i, bar in enumerate(bars):
            action, reason = HOLD, None
            if i > 0:
                ps, pl, cs, cl = short_ma[i - 1], long_ma[i - 1], short_ma[i], long_ma[i]
                if np.isfinite([ps, pl, cs, cl]).all():
                    if ps <= pl and cs > cl:
                        action, reason = BUY, "golden cross: short MA crossed above long MA"
                    elif ps >= pl and cs < cl:
                        action, reason = SELL, "death cross: short MA crossed below long MA"
            out.append(Signal(date=bar.date, action=action, price=float(bar.close), reason=reason))
        return out


def build_default_registry() -> PluginRegistry:
    """Construct a registry holding the built-in plugins. Call once at start-up."""
    registry = PluginRegistry()
    registry.register(AtrIndicator())
    registry.register(MaCrossStrategy())
    return registry
