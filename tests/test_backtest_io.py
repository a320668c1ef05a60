import json
import math
from datetime import datetime, timedelta

import pandas as pd
import pytest

from ta_bt.backtest import result_frames, run_backtest, run_strategy_from_csv, write_result
from ta_bt.data_provider import load_bars_csv
from ta_bt.plugins import build_default_registry
from ta_bt.types import BacktestResult, Bar, Metrics, Signal


def _write_csv(path, n: int = 80) -> None:
    start = datetime(2021, 1, 4)
    rows = []
    for i in range(n):
        c = 20.0 + 3.0 * math.sin(i / 5.0)
        rows.append({"Date": start + timedelta(days=i), "Open": c, "High": c * 1.01, "Low": c * 0.99, "Close": c, "Volume": 1e5})
    pd.DataFrame(rows).to_csv(path, index=False)


class TestLoadBars:
    def test_lowercase_columns_are_sorted(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text(
            "date,open,high,low,close,volume\n"
            "2024-01-03,11,12,10,11.5,200\n"
            "2024-01-02,10,11,9,10.5,100\n",
            encoding="utf-8",
        )
        bars = load_bars_csv(path)
        assert [b.date for b in bars] == [datetime(2024, 1, 2), datetime(2024, 1, 3)]
        assert bars[0] == Bar(date=datetime(2024, 1, 2), open=10.0, high=11.0, low=9.0, close=10.5, volume=100.0)

    def test_missing_volume_defaults_to_zero(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("Date,Open,High,Low,Close\n2024-01-02,10,11,9,10.5\n", encoding="utf-8")
        assert load_bars_csv(path)[0].volume == 0.0

    def test_duplicate_dates_keep_last_row(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text(
            "Timestamp,Open,High,Low,Adj Close\n"
            "2024-01-02,10,11,9,10.5\n"
            "2024-01-02,10,11,9,10.7\n",
            encoding="utf-8",
        )
        bars = load_bars_csv(path)
        assert len(bars) == 1
        assert bars[0].close == 10.7

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_bars_csv(tmp_path / "nope.csv")

    def test_missing_column(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("Date,Open,High,Close\n2024-01-02,10,11,10.5\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_bars_csv(path)


class TestOutputs:
    def test_result_frames(self):
        start = datetime(2024, 1, 2)
        bars = [Bar(date=start + timedelta(days=i), open=10.0, high=10.0, low=10.0, close=10.0) for i in range(5)]
        result = run_backtest(bars, [Signal(bars[1].date, "buy", 10.0), Signal(bars[3].date, "sell", 10.0)])

        eq, trades = result_frames(result)
        assert list(eq.columns) == ["equity", "drawdown", "benchmark"]
        assert len(eq) == 5
        assert len(trades) == 1
        assert trades.loc[0, "exit_reason"] == "strategy signal"

    def test_write_result_json_safe(self, tmp_path):
        result = BacktestResult(metrics=Metrics(profit_factor=math.inf, total_trades=1))
        paths = write_result(result, tmp_path / "out", "600519.SH")

        assert paths["equity"].name == "equity_600519_SH.csv"
        assert all(p.exists() for p in paths.values())
        text = paths["metrics"].read_text(encoding="utf-8")
        assert '"Infinity"' in text
        assert json.loads(text)["total_trades"] == 1

    def test_run_strategy_from_csv(self, tmp_path):
        csv_path = tmp_path / "demo.csv"
        _write_csv(csv_path)
        registry = build_default_registry()

        paths = run_strategy_from_csv(
            csv_path,
            "strategy-ma-cross",
            registry,
            params={"short_period": 3, "long_period": 10},
            output_dir=tmp_path / "out",
        )

        metrics = json.loads(paths["metrics"].read_text(encoding="utf-8"))
        assert metrics["total_trades"] > 0
        eq = pd.read_csv(paths["equity"])
        assert len(eq) == 80

    def test_run_strategy_rejects_non_strategy(self, tmp_path):
        csv_path = tmp_path / "demo.csv"
        _write_csv(csv_path, n=20)
        with pytest.raises(ValueError):
            run_strategy_from_csv(csv_path, "indicator-atr", build_default_registry(), output_dir=tmp_path)
