"""Grid-search the moving-average-cross strategy and check it walk-forward.

This script is intentionally simple and self-contained:
- loads daily OHLCV from a CSV
- runs every (short, long) pair on the full history, ranked by Sharpe
- runs a rolling walk-forward pass to estimate overfitting
- writes the ranked grid to CSV and a walk-forward summary to JSON

Example:
    python -m scripts.optimize_ma_cross --csv data/600519.csv --out outputs_opt --workers 4
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

import pandas as pd

from ta_bt.config import BacktestConfig
from ta_bt.data_provider import load_bars_csv
from ta_bt.optimize import grid_search, walk_forward
from ta_bt.plugins import build_default_registry

logger = logging.getLogger(__name__)


def main() -> None:
    p = argparse.ArgumentParser()
    p.add_argument("--csv", type=str, required=True)
    p.add_argument("--out", type=str, default="outputs_opt")
    p.add_argument("--short", type=str, default="3,5,8,10", help="Comma-separated short SMA periods.")
    p.add_argument("--long", type=str, default="20,30,60", help="Comma-separated long SMA periods.")
    p.add_argument("--train_size", type=int, default=250)
    p.add_argument("--test_size", type=int, default=60)
    p.add_argument("--step", type=int, default=60)
    p.add_argument("--workers", type=int, default=1)
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)

    bars = load_bars_csv(args.csv)
    strategy = build_default_registry().get("strategy-ma-cross")
    grid = {
        "short_period": [int(x) for x in args.short.split(",")],
        "long_period": [int(x) for x in args.long.split(",")],
    }
    cfg = BacktestConfig()

    ranked = grid_search(bars, strategy, grid, cfg, max_workers=args.workers)
    rows = []
    for r in ranked:
        row = dict(r.params)
        row.update(r.metrics.to_dict(json_safe=True))
        rows.append(row)
    pd.DataFrame(rows).to_csv(out_dir / "opt_results.csv", index=False, encoding="utf-8")

    wf = walk_forward(
        bars,
        strategy,
        grid,
        cfg,
        train_size=args.train_size,
        test_size=args.test_size,
        step=args.step,
        max_workers=args.workers,
    )
    (out_dir / "walk_forward.json").write_text(json.dumps(asdict(wf), indent=2), encoding="utf-8")

    logger.info("Saved: %s", out_dir / "opt_results.csv")
    if ranked:
        logger.info("Best params (full history): %s sharpe=%.4f", ranked[0].params, ranked[0].score)
    logger.info(
        "Walk-forward: splits=%d IS=%.4f OOS=%.4f overfit_ratio=%.4f",
        len(wf.splits),
        wf.avg_in_sample_sharpe,
        wf.avg_out_of_sample_sharpe,
        wf.overfit_ratio,
    )


if __name__ == "__main__":
    main()
