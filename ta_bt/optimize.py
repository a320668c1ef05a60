"""Parameter search and walk-forward validation over the backtest engine.

Every evaluation is an independent ``run_backtest`` call, so a sweep may fan
out over a thread pool without any locking.
"""

from __future__ import annotations

import itertools
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .backtest import run_backtest
from .config import BacktestConfig
from .registry import StrategyPlugin, params_from_dict
from .types import Bar, Metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptResult:
    score: float
    params: Dict[str, Any]
    metrics: Metrics


@dataclass(frozen=True)
class WalkForwardSplit:
    train_start: int
    train_end: int  # inclusive
    test_start: int
    test_end: int  # inclusive


@dataclass(frozen=True)
class WalkForwardSplitResult:
    in_sample_sharpe: float
    out_of_sample_sharpe: float
    best_params: Dict[str, Any]


@dataclass(frozen=True)
class WalkForwardResult:
    splits: List[WalkForwardSplitResult] = field(default_factory=list)
    avg_in_sample_sharpe: float = 0.0
    avg_out_of_sample_sharpe: float = 0.0
    overfit_ratio: float = 0.0


def _expand_grid(grid: Dict[str, Sequence[Any]]) -> List[Dict[str, Any]]:
    keys = list(grid)
    return [dict(zip(keys, combo)) for combo in itertools.product(*(grid[k] for k in keys))]


def _evaluate(bars: Sequence[Bar], strategy: StrategyPlugin, params: Dict[str, Any], cfg: BacktestConfig) -> OptResult:
    typed = params_from_dict(strategy.params_type, params)
    result = run_backtest(bars, strategy.generate_signals(bars, typed), cfg)
    return OptResult(score=float(result.metrics.sharpe_ratio), params=dict(params), metrics=result.metrics)


def grid_search(
    bars: Sequence[Bar],
    strategy: StrategyPlugin,
    grid: Dict[str, Sequence[Any]],
    cfg: Optional[BacktestConfig] = None,
    max_workers: Optional[int] = None,
) -> List[OptResult]:
    """Exhaustive search over ``grid``, scored by Sharpe ratio, best-first.

    Ties keep grid order.
    """
    cfg = cfg or BacktestConfig()
    combos = _expand_grid(grid)

    if max_workers is not None and max_workers > 1 and len(combos) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda p: _evaluate(bars, strategy, p, cfg), combos))
    else:
        results = [_evaluate(bars, strategy, p, cfg) for p in combos]

    results.sort(key=lambda r: r.score, reverse=True)
    if results:
        logger.info("Grid search: %d evaluations, best score=%.4f params=%s", len(results), results[0].score, results[0].params)
    return results


def walk_forward_splits(data_length: int, train_size: int, test_size: int, step: int) -> List[WalkForwardSplit]:
    """Rolling train/test windows shifted by ``step`` bars.

    Example with 100 bars, train=60, test=20, step=10:
        train [0, 59]  test [60, 79]
        train [10, 69] test [70, 89]
        train [20, 79] test [80, 99]
    """
    if data_length <= 0 or train_size <= 0 or test_size <= 0 or step <= 0:
        return []
    if train_size + test_size > data_length:
        return []

    splits: List[WalkForwardSplit] = []
    train_start = 0
    while True:
        train_end = train_start + train_size - 1
        test_start = train_end + 1
        test_end = test_start + test_size - 1
        if test_end >= data_length:
            break
        splits.append(WalkForwardSplit(train_start, train_end, test_start, test_end))
        train_start += step
    return splits


def expanding_window_splits(data_length: int, min_train_size: int, test_size: int, step: int) -> List[WalkForwardSplit]:
    """Train windows anchored at 0 that grow by ``step`` bars each split."""
    if data_length <= 0 or min_train_size <= 0 or test_size <= 0 or step <= 0:
        return []
    if min_train_size + test_size > data_length:
        return []

    splits: List[WalkForwardSplit] = []
    train_end = min_train_size - 1
    while True:
        test_start = train_end + 1
        test_end = test_start + test_size - 1
        if test_end >= data_length:
            break
        splits.append(WalkForwardSplit(0, train_end, test_start, test_end))
        train_end += step
    return splits


def aggregate_walk_forward(split_results: Sequence[WalkForwardSplitResult]) -> WalkForwardResult:
    """Average IS/OOS Sharpe and overfit ratio = max(0, 1 - OOS/IS)."""
    if not split_results:
        return WalkForwardResult()

    n = len(split_results)
    avg_is = sum(s.in_sample_sharpe for s in split_results) / n
    avg_oos = sum(s.out_of_sample_sharpe for s in split_results) / n

    if abs(avg_is) < 1e-10:
        ratio = 1.0 if avg_oos < 0 else 0.0
    else:
        ratio = 1.0 - avg_oos / avg_is

    return WalkForwardResult(
        splits=list(split_results),
        avg_in_sample_sharpe=avg_is,
        avg_out_of_sample_sharpe=avg_oos,
        overfit_ratio=max(0.0, ratio),
    )


def walk_forward(
    bars: Sequence[Bar],
    strategy: StrategyPlugin,
    grid: Dict[str, Sequence[Any]],
    cfg: Optional[BacktestConfig] = None,
    train_size: int = 120,
    test_size: int = 40,
    step: int = 40,
    max_workers: Optional[int] = None,
) -> WalkForwardResult:
    """Pick the best params on each train window, then score them on the following test window."""
    cfg = cfg or BacktestConfig()
    results: List[WalkForwardSplitResult] = []
    for split in walk_forward_splits(len(bars), train_size, test_size, step):
        train = bars[split.train_start : split.train_end + 1]
        test = bars[split.test_start : split.test_end + 1]
        ranked = grid_search(train, strategy, grid, cfg, max_workers=max_workers)
        if not ranked:
            continue
        best = ranked[0]
        oos = _evaluate(test, strategy, best.params, cfg)
        results.append(
            WalkForwardSplitResult(
                in_sample_sharpe=best.score,
                out_of_sample_sharpe=oos.score,
                best_params=best.params,
            )
        )
    return aggregate_walk_forward(results)
