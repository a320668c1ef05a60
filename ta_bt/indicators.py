"""Indicator computation utilities.

Values at index i only use bars 0..i, so the engine can read them bar-by-bar
without lookahead.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from .types import Bar


def true_range(bars: Sequence[Bar]) -> np.ndarray:
    """True range per bar. Index 0 has no previous close and uses high - low."""
    n = len(bars)
    if n == 0:
        return np.zeros(0, dtype=float)
    high = np.array([b.high for b in bars], dtype=float)
    low = np.array([b.low for b in bars], dtype=float)
    close = np.array([b.close for b in bars], dtype=float)
    prev_close = np.concatenate(([np.nan], close[:-1]))
    tr = np.fmax(high - low, np.fmax(np.abs(high - prev_close), np.abs(low - prev_close)))
    tr[0] = high[0] - low[0]
    return tr


def atr(bars: Sequence[Bar], window: int = 14) -> np.ndarray:
    """Average True Range aligned with ``bars``.

    - index 0: 0 (no true range against a previous close yet)
    - 1 <= i <= window: simple mean of TR[1..i] (partial window while warming up)
    - i > window: Wilder smoothing, (prev * (window - 1) + TR[i]) / window
    """
    if window <= 0:
        raise ValueError("window must be positive")
    tr = true_range(bars)
    n = len(tr)
    out = np.zeros(n, dtype=float)
    if n < 2:
        return out

    # warm-up: expanding mean over TR[1..i]
    head = min(n - 1, window)
    out[1 : head + 1] = np.cumsum(tr[1 : head + 1]) / np.arange(1, head + 1)

    for i in range(window + 1, n):
        out[i] = (out[i - 1] * (window - 1) + tr[i]) / window
    return out


def sma(values: Sequence[float], window: int) -> np.ndarray:
    """Simple moving average; NaN until the window is full."""
    if window <= 0:
        raise ValueError("window must be positive")
    s = pd.Series(np.asarray(values, dtype=float))
    return s.rolling(window=window, min_periods=window).mean().to_numpy()
