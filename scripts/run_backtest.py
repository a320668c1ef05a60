"""Run one strategy over a CSV of daily bars and write equity/trades/metrics.

Example:
    python -m scripts.run_backtest --csv data/600519.csv --strategy strategy-ma-cross \
      --params '{"short_period": 5, "long_period": 20}' --stop_loss percent:0.05 --sizing atr:0.01:3
"""

from __future__ import annotations

import argparse
import json
import logging

from ta_bt.backtest import run_strategy_from_csv
from ta_bt.config import BacktestConfig
from ta_bt.execution import AShareExecutionGate
from ta_bt.plugins import build_default_registry

STOP_TYPES = ("percent", "atr", "trailing")
# sizing type -> camelCase keys for the colon-separated values, in order
SIZING_KEYS = {
    "full": (),
    "fixed_fraction": ("riskPercent",),
    "kelly": ("kellyFraction",),
    "atr": ("riskPercent", "atrMultiplier"),
}


def _stop_dict(text: str | None) -> dict | None:
    """``percent:0.05`` -> ``{"type": "percent", "value": 0.05}``"""
    if not text:
        return None
    kind, _, value = text.partition(":")
    kind = kind.lower()
    if kind not in STOP_TYPES:
        raise argparse.ArgumentTypeError(f"unknown stop-loss type: {kind}")
    out = {"type": kind}
    if value:
        out["value"] = float(value)
    return out


def _sizing_dict(text: str) -> dict:
    """``atr:0.01:3`` -> ``{"type": "atr", "riskPercent": 0.01, "atrMultiplier": 3.0}``"""
    kind, *values = text.split(":")
    kind = kind.lower()
    if kind not in SIZING_KEYS:
        raise argparse.ArgumentTypeError(f"unknown sizing type: {kind}")
    keys = SIZING_KEYS[kind]
    if len(values) > len(keys):
        raise argparse.ArgumentTypeError(f"sizing {kind} takes at most {len(keys)} value(s)")
    out = {"type": kind}
    out.update({k: float(v) for k, v in zip(keys, values) if v})
    return out


def config_from_args(args: argparse.Namespace) -> BacktestConfig:
    params = {
        "initialCapital": args.initial_capital,
        "commission": args.commission_rate,
        "slippage": args.slippage_rate,
        "stampDuty": args.stamp_duty_rate,
        "maxHoldDays": args.max_hold_days,
        "atrWindow": args.atr_window,
        "stopLoss": args.stop_loss,
        "positionSizing": args.sizing,
    }
    if args.take_profit:
        params["takeProfit"] = {"type": "percent", "value": args.take_profit}
    return BacktestConfig.from_params_dict(params)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser()
    p.add_argument("--csv", type=str, required=True, help="OHLCV CSV path (Date,Open,High,Low,Close,Volume).")
    p.add_argument("--strategy", type=str, default="strategy-ma-cross")
    p.add_argument("--params", type=str, default="{}", help="Strategy params as JSON.")
    p.add_argument("--output_dir", type=str, default="outputs")
    p.add_argument("--initial_capital", type=float, default=100_000.0)
    p.add_argument("--commission_rate", type=float, default=0.0003)
    p.add_argument("--slippage_rate", type=float, default=0.001)
    p.add_argument("--stamp_duty_rate", type=float, default=0.001, help="Sell-side stamp duty. Default 0.001.")
    p.add_argument("--stop_loss", type=_stop_dict, default=None, help='e.g. "percent:0.05", "atr:2", "trailing:0.1"')
    p.add_argument("--take_profit", type=float, default=None, help="Percent take-profit, e.g. 0.15")
    p.add_argument("--max_hold_days", type=int, default=None)
    p.add_argument("--atr_window", type=int, default=14)
    p.add_argument(
        "--sizing",
        type=_sizing_dict,
        default="full",
        help='e.g. "full", "fixed_fraction:0.02", "kelly:0.5", "atr:0.02:2" (risk percent, ATR multiplier)',
    )
    p.add_argument("--a_share_rules", action="store_true", help="Enforce T+1 and limit-up/limit-down fills.")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main():
    args = build_parser().parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    registry = build_default_registry()
    paths = run_strategy_from_csv(
        csv_path=args.csv,
        strategy_id=args.strategy,
        registry=registry,
        params=json.loads(args.params),
        cfg=config_from_args(args),
        output_dir=args.output_dir,
        gate=AShareExecutionGate() if args.a_share_rules else None,
    )
    for path in paths.values():
        print(path)


if __name__ == "__main__":
    main()
