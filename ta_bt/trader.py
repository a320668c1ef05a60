"""Signal-driven single-symbol trader.

Bar-by-bar state machine, Flat <-> Long:
- exit checks (stop-loss / take-profit / max hold) run first on an open position
- an exit closes everything and skips signal processing for that bar
- otherwise today's buy/sell signal is executed at the signal price plus slippage
- equity is marked to the close of every bar
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Hashable, List, Optional, Sequence

from .config import BacktestConfig
from .cost_model import CostModel
from .execution import ExecutionGate
from .exits import ExitEvaluator
from .indicators import atr as atr_func
from .metrics import compute_metrics
from .signals import BUY, SELL
from .sizing import SizingContext, size_position
from .types import Bar, EquityPoint, Metrics, Signal, Trade

logger = logging.getLogger(__name__)

SIGNAL_EXIT_REASON = "strategy signal"


@dataclass
class _PositionState:
    entry_date: Optional[datetime] = None
    entry_price: float = 0.0
    entry_index: int = -1
    trailing_stop_price: float = 0.0


class SignalTrader:
    """Long-only, one-position-at-a-time trader driven by precomputed signals.

    A fresh instance holds all state for one run; nothing is shared between
    instances, so independent runs may execute in parallel.
    """

    def __init__(
        self,
        bars: Sequence[Bar],
        signal_lookup: Dict[Hashable, Signal],
        cfg: BacktestConfig,
        gate: Optional[ExecutionGate] = None,
    ):
        self.bars = bars
        self.signal_lookup = signal_lookup
        self.cfg = cfg
        self.gate = gate
        self.cost_model = CostModel(cfg.cost)
        self.exits = ExitEvaluator(cfg)

        self.initial_capital = float(cfg.initial_capital)
        self.cash = float(self.initial_capital)
        self.shares = 0

        self.state = _PositionState()
        self.trades: List[Trade] = []
        self.equity_curve: List[EquityPoint] = []

        self.first_close = float(bars[0].close) if len(bars) else 1.0
        self._atr = atr_func(bars, cfg.atr_window)

        # running drawdown bookkeeping (O(1) per bar)
        self.peak = float(self.initial_capital)
        self.max_drawdown = 0.0
        self.max_drawdown_duration = 0
        self._dd_start_index = -1

    # ---------- public API ----------

    @property
    def is_long(self) -> bool:
        return self.shares > 0

    def run_full_backtest(self) -> None:
        for t in range(len(self.bars)):
            self.step(t)

    def step(self, t: int) -> None:
        """Process bar index t."""
        bar = self.bars[t]
        prev_bar = self.bars[t - 1] if t > 0 else None

        # entries happen after this check, so an open position always predates bar t
        sell_blocked = False
        if self.is_long and self.gate is not None:
            check = self.gate.can_sell(bar, prev_bar, self.state.entry_index, t)
            if not check.can_execute:
                sell_blocked = True
                logger.debug("%s: exit blocked (%s)", bar.date, check.reason)

        # 1) Exit checks before any strategy signal
        if self.is_long:
            self.state.trailing_stop_price = self.exits.ratchet(self.state.trailing_stop_price, bar)
            if not sell_blocked:
                decision = self.exits.check(
                    bar,
                    t,
                    entry_price=self.state.entry_price,
                    entry_index=self.state.entry_index,
                    trailing_stop_price=self.state.trailing_stop_price,
                    atr=float(self._atr[t]),
                )
                if decision is not None:
                    self._close_position(t, decision.price, decision.reason)
                    self._append_equity(t)
                    return

        # 2) Strategy signal
        signal = self.signal_lookup.get(bar.date)
        if signal is not None:
            if signal.action == BUY and not self.is_long:
                self._maybe_enter(t, signal, prev_bar)
            elif signal.action == SELL and self.is_long and not sell_blocked:
                self._close_position(t, self.cost_model.sell_price(signal.price), SIGNAL_EXIT_REASON)

        # 3) Mark to market at the close
        self._append_equity(t)

    def metrics(self) -> Metrics:
        return compute_metrics(
            self.trades,
            self.equity_curve,
            self.initial_capital,
            self.max_drawdown,
            self.max_drawdown_duration,
        )

    # ---------- execution/accounting ----------

    def _maybe_enter(self, t: int, signal: Signal, prev_bar: Optional[Bar]) -> None:
        bar = self.bars[t]
        if self.gate is not None:
            check = self.gate.can_buy(bar, prev_bar)
            if not check.can_execute:
                logger.debug("%s: entry blocked (%s)", bar.date, check.reason)
                return

        exec_price = self.cost_model.buy_price(signal.price)
        effective_price = exec_price * (1.0 + self.cfg.cost.commission_rate)
        ctx = SizingContext(atr=float(self._atr[t]), trades=self.trades, stop_loss=self.cfg.stop_loss)
        shares = size_position(self.cfg.position_sizing, self.cash, effective_price, ctx)

        # float rounding must never leave cash negative
        while shares > 0 and self.cost_model.entry_cost(shares, exec_price) > self.cash:
            shares -= 1
        if shares <= 0:
            logger.debug("%s: buy signal skipped, sized to 0 shares", bar.date)
            return

        self.cash -= self.cost_model.entry_cost(shares, exec_price)
        self.shares = int(shares)
        self.state = _PositionState(
            entry_date=bar.date,
            entry_price=exec_price,
            entry_index=t,
            trailing_stop_price=self.exits.initial_trailing_stop(bar.close),
        )
        logger.debug("%s: BUY %d @ %.4f", bar.date, shares, exec_price)

    def _close_position(self, t: int, exit_price: float, reason: str) -> None:
        bar = self.bars[t]
        st = self.state

        self.cash += self.cost_model.net_proceeds(self.shares, exit_price)

        entry_cost = self.cost_model.entry_cost(self.shares, st.entry_price)
        pnl = self.cost_model.net_proceeds(self.shares, exit_price) - entry_cost
        pnl_percent = pnl / entry_cost if entry_cost > 0 else 0.0

        self.trades.append(
            Trade(
                entry_date=st.entry_date,
                entry_price=float(st.entry_price),
                exit_date=bar.date,
                exit_price=float(exit_price),
                pnl=round(pnl, 2),
                pnl_percent=round(pnl_percent, 6),
                hold_days=t - st.entry_index if st.entry_index >= 0 else 0,
                side="long",
                exit_reason=reason,
            )
        )
        logger.debug("%s: SELL %d @ %.4f (%s) pnl=%.2f", bar.date, self.shares, exit_price, reason, pnl)

        self.shares = 0
        self.state = _PositionState()

    def _append_equity(self, t: int) -> None:
        bar = self.bars[t]
        equity = self.cash + self.shares * float(bar.close)
        benchmark = self.initial_capital * (float(bar.close) / self.first_close) if self.first_close else 0.0

        if equity > self.peak:
            self.peak = equity
            self._dd_start_index = -1
        dd = (equity - self.peak) / self.peak if self.peak > 0 else 0.0
        if dd < 0 and self._dd_start_index == -1:
            self._dd_start_index = t
        if dd < self.max_drawdown:
            self.max_drawdown = dd
        if self._dd_start_index >= 0:
            self.max_drawdown_duration = max(self.max_drawdown_duration, t - self._dd_start_index)

        self.equity_curve.append(
            EquityPoint(
                date=bar.date,
                equity=round(equity, 2),
                drawdown=round(dd, 6),
                benchmark=round(benchmark, 2),
            )
        )
