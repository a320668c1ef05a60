"""Backtest entry point and runner utilities."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import pandas as pd

from .config import BacktestConfig
from .data_provider import load_bars_csv
from .execution import ExecutionGate
from .registry import PluginRegistry, params_from_dict
from .signals import build_signal_lookup
from .trader import SignalTrader
from .types import BacktestResult, Bar, Signal

logger = logging.getLogger(__name__)


def run_backtest(
    bars: Sequence[Bar],
    signals: Sequence[Signal],
    cfg: Optional[BacktestConfig] = None,
    gate: Optional[ExecutionGate] = None,
) -> BacktestResult:
    """Simulate ``signals`` over ``bars`` and return trades, equity curve and metrics.

    Bars must be sorted ascending by date. Pure over its inputs: no I/O and no
    state survives the call.
    """
    cfg = cfg or BacktestConfig()
    signals = list(signals)

    trader = SignalTrader(bars, build_signal_lookup(signals), cfg, gate=gate)
    trader.run_full_backtest()
    metrics = trader.metrics()

    logger.info(
        "Backtest done: bars=%d trades=%d total_return=%.4f sharpe=%.4f",
        len(bars),
        metrics.total_trades,
        metrics.total_return,
        metrics.sharpe_ratio,
    )
    return BacktestResult(
        trades=list(trader.trades),
        equity_curve=list(trader.equity_curve),
        metrics=metrics,
        signals=signals,
    )


def result_frames(result: BacktestResult) -> tuple[pd.DataFrame, pd.DataFrame]:
    """(equity, trades) DataFrames. Equity is indexed by date."""
    eq = pd.DataFrame([asdict(p) for p in result.equity_curve], columns=["date", "equity", "drawdown", "benchmark"])
    eq = eq.set_index("date")
    trade_cols = [
        "entry_date",
        "entry_price",
        "exit_date",
        "exit_price",
        "pnl",
        "pnl_percent",
        "hold_days",
        "side",
        "exit_reason",
    ]
    trades = pd.DataFrame([asdict(t) for t in result.trades], columns=trade_cols)
    return eq, trades


def write_result(result: BacktestResult, output_dir: str | Path, symbol: str) -> dict[str, Path]:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    eq, trades = result_frames(result)
    tag = symbol.replace(".", "_")
    eq_path = out_dir / f"equity_{tag}.csv"
    tr_path = out_dir / f"trades_{tag}.csv"
    mt_path = out_dir / f"metrics_{tag}.json"
    eq.to_csv(eq_path, encoding="utf-8")
    trades.to_csv(tr_path, index=False, encoding="utf-8")
    mt_path.write_text(json.dumps(result.metrics.to_dict(json_safe=True), indent=2), encoding="utf-8")

    return {"equity": eq_path, "trades": tr_path, "metrics": mt_path}


def run_strategy_from_csv(
    csv_path: str | Path,
    strategy_id: str,
    registry: PluginRegistry,
    params: Optional[Dict[str, Any]] = None,
    cfg: Optional[BacktestConfig] = None,
    output_dir: str | Path = "outputs",
    gate: Optional[ExecutionGate] = None,
) -> dict[str, Path]:
    """Load bars from CSV, generate signals with a registered strategy, run and write outputs."""
    symbol = Path(csv_path).stem
    bars = load_bars_csv(csv_path)

    strategy = registry.get(strategy_id)
    if strategy.category != "strategy":
        raise ValueError(f'Plugin "{strategy_id}" is a {strategy.category} plugin, not a strategy.')
    typed_params = params_from_dict(strategy.params_type, params)
    signals = strategy.generate_signals(bars, typed_params)

    result = run_backtest(bars, signals, cfg, gate=gate)
    return write_result(result, output_dir, symbol)
