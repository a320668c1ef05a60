"""A-share execution constraints as an optional engine hook.

1. Price limits: main board +/-10%, STAR (688xxx) / ChiNext (300xxx) +/-20%.
   A bar closing at limit-up cannot be bought; at limit-down it cannot be sold.
2. T+1: shares bought on a bar cannot be sold on that same bar.

`SignalTrader` only asks `can_sell` for positions opened on an earlier bar, so
on daily bars T+1 already holds by construction and the check in `can_sell`
guards other callers (e.g. an intraday loop that re-enters the same bar).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from .types import Bar

MAIN_BOARD_LIMIT = 0.10
STAR_CHINEXT_LIMIT = 0.20
# tick-size rounding keeps limit closes slightly under the nominal limit
LIMIT_TOLERANCE = 0.0005


@dataclass(frozen=True)
class ExecutionCheck:
    can_execute: bool
    reason: str = ""


_OK = ExecutionCheck(can_execute=True)


class ExecutionGate(Protocol):
    def can_buy(self, bar: Bar, prev_bar: Optional[Bar]) -> ExecutionCheck: ...

    def can_sell(self, bar: Bar, prev_bar: Optional[Bar], entry_index: int, index: int) -> ExecutionCheck: ...


def _change(bar: Bar, prev_bar: Bar) -> float:
    if prev_bar.close <= 0:
        return 0.0
    return (bar.close - prev_bar.close) / prev_bar.close


class AShareExecutionGate:
    """Blocks fills on locked limit bars and same-bar round trips.

    ``limit_percent`` pins the board limit. When None it is guessed per bar: a
    move beyond ~10.5% can only happen on a 20% board.
    """

    def __init__(self, limit_percent: Optional[float] = None):
        self.limit_percent = limit_percent

    def _limit(self, change: float) -> float:
        if self.limit_percent is not None:
            return float(self.limit_percent)
        return STAR_CHINEXT_LIMIT if abs(change) > 0.105 else MAIN_BOARD_LIMIT

    def is_limit_up(self, bar: Bar, prev_bar: Bar) -> bool:
        change = _change(bar, prev_bar)
        return change >= self._limit(change) - LIMIT_TOLERANCE

    def is_limit_down(self, bar: Bar, prev_bar: Bar) -> bool:
        change = _change(bar, prev_bar)
        return change <= -(self._limit(change) - LIMIT_TOLERANCE)

    def can_buy(self, bar: Bar, prev_bar: Optional[Bar]) -> ExecutionCheck:
        if prev_bar is not None and self.is_limit_up(bar, prev_bar):
            return ExecutionCheck(False, "limit up - cannot buy")
        return _OK

    def can_sell(self, bar: Bar, prev_bar: Optional[Bar], entry_index: int, index: int) -> ExecutionCheck:
        if index <= entry_index:
            return ExecutionCheck(False, "T+1 rule - cannot sell on entry bar")
        if prev_bar is not None and self.is_limit_down(bar, prev_bar):
            return ExecutionCheck(False, "limit down - cannot sell")
        return _OK
