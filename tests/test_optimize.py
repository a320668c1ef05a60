import math
from datetime import datetime, timedelta

import pytest

from ta_bt.optimize import (
    WalkForwardSplit,
    WalkForwardSplitResult,
    aggregate_walk_forward,
    expanding_window_splits,
    grid_search,
    walk_forward,
    walk_forward_splits,
)
from ta_bt.plugins import MaCrossStrategy
from ta_bt.types import Bar

START = datetime(2020, 1, 1)


def _wave_bars(n: int) -> list[Bar]:
    bars = []
    for i in range(n):
        c = 10.0 + 2.0 * math.sin(i / 6.0) + 0.01 * i
        bars.append(Bar(date=START + timedelta(days=i), open=c, high=c * 1.01, low=c * 0.99, close=c, volume=1.0))
    return bars


def _split(is_sharpe: float, oos_sharpe: float) -> WalkForwardSplitResult:
    return WalkForwardSplitResult(in_sample_sharpe=is_sharpe, out_of_sample_sharpe=oos_sharpe, best_params={})


class TestSplits:
    def test_rolling(self):
        assert walk_forward_splits(100, 60, 20, 10) == [
            WalkForwardSplit(0, 59, 60, 79),
            WalkForwardSplit(10, 69, 70, 89),
            WalkForwardSplit(20, 79, 80, 99),
        ]

    def test_expanding(self):
        assert expanding_window_splits(100, 60, 20, 10) == [
            WalkForwardSplit(0, 59, 60, 79),
            WalkForwardSplit(0, 69, 70, 89),
            WalkForwardSplit(0, 79, 80, 99),
        ]

    @pytest.mark.parametrize(
        "args",
        [(0, 60, 20, 10), (100, 0, 20, 10), (100, 60, 0, 10), (100, 60, 20, 0), (50, 40, 20, 10)],
    )
    def test_invalid_inputs_give_no_splits(self, args):
        assert walk_forward_splits(*args) == []
        assert expanding_window_splits(*args) == []


class TestAggregate:
    def test_empty(self):
        res = aggregate_walk_forward([])
        assert res.splits == []
        assert res.overfit_ratio == 0.0

    def test_averages_and_ratio(self):
        res = aggregate_walk_forward([_split(2.0, 1.0), _split(1.0, 0.5)])
        assert res.avg_in_sample_sharpe == pytest.approx(1.5)
        assert res.avg_out_of_sample_sharpe == pytest.approx(0.75)
        assert res.overfit_ratio == pytest.approx(0.5)

    def test_oos_beating_is_clamps_to_zero(self):
        assert aggregate_walk_forward([_split(1.0, 2.0)]).overfit_ratio == 0.0

    def test_zero_in_sample(self):
        assert aggregate_walk_forward([_split(0.0, -0.5)]).overfit_ratio == 1.0
        assert aggregate_walk_forward([_split(0.0, 0.5)]).overfit_ratio == 0.0


class TestSearch:
    GRID = {"short_period": [3, 5], "long_period": [10, 20]}

    def test_grid_search_ranks_best_first(self):
        results = grid_search(_wave_bars(150), MaCrossStrategy(), self.GRID)
        assert len(results) == 4
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(set(r.params) == {"short_period", "long_period"} for r in results)

    def test_parallel_matches_sequential(self):
        bars = _wave_bars(150)
        seq = grid_search(bars, MaCrossStrategy(), self.GRID)
        par = grid_search(bars, MaCrossStrategy(), self.GRID, max_workers=4)
        assert [(r.score, r.params) for r in par] == [(r.score, r.params) for r in seq]

    def test_walk_forward(self):
        res = walk_forward(
            _wave_bars(200), MaCrossStrategy(), self.GRID, train_size=100, test_size=40, step=40, max_workers=2
        )
        assert len(res.splits) == 2
        assert res.overfit_ratio >= 0.0
        assert all(s.best_params for s in res.splits)
