"""Configuration objects.

Style rules:
- keep signatures stable (no alias chaos)
- prefer explicit field names
- tagged variants are small frozen dataclasses, one class per case
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union


# ---------- stop-loss variants ----------


@dataclass(frozen=True)
class PercentStop:
    """Exit when low <= entry * (1 - value)."""

    value: float = 0.05


@dataclass(frozen=True)
class AtrStop:
    """Exit when low <= entry - multiplier * ATR(current bar)."""

    multiplier: float = 2.0


@dataclass(frozen=True)
class TrailingStop:
    """Ratchet stop at max(high since entry) * (1 - value)."""

    value: float = 0.10


StopLoss = Union[PercentStop, AtrStop, TrailingStop]


@dataclass(frozen=True)
class PercentTakeProfit:
    value: float = 0.10


TakeProfit = PercentTakeProfit


# ---------- position sizing variants ----------


@dataclass(frozen=True)
class FullSizing:
    """Spend all available cash."""


@dataclass(frozen=True)
class FixedFractionSizing:
    risk_percent: float = 0.02


@dataclass(frozen=True)
class KellySizing:
    fraction: float = 0.5  # half-Kelly


@dataclass(frozen=True)
class AtrSizing:
    risk_percent: float = 0.02
    multiplier: float = 2.0


PositionSizing = Union[FullSizing, FixedFractionSizing, KellySizing, AtrSizing]


@dataclass(frozen=True)
class CostConfig:
    """Transaction costs (A-share defaults)."""

    # Commission applies on both legs.
    commission_rate: float = 0.0003

    # Slippage moves the fill against us: up on buys, down on sells.
    slippage_rate: float = 0.001

    # Stamp duty (transaction tax): applies to SELL trades only.
    stamp_duty_rate: float = 0.001


@dataclass(frozen=True)
class BacktestConfig:
    """Backtest run configuration.

    Notes:
    - open positions at the final bar are not force-closed; they show up in equity only
    - ``max_hold_days`` of None or 0 disables the holding-period exit
    """

    initial_capital: float = 100_000.0
    cost: CostConfig = field(default_factory=CostConfig)

    stop_loss: Optional[StopLoss] = None
    take_profit: Optional[TakeProfit] = None
    max_hold_days: Optional[int] = None
    position_sizing: PositionSizing = field(default_factory=FullSizing)

    # ATR window used by ATR stops and ATR sizing
    atr_window: int = 14

    @classmethod
    def from_params_dict(cls, d: dict) -> "BacktestConfig":
        """Create BacktestConfig from the camelCase dict form used by API callers.

        Keys are camelCase (e.g., initialCapital, stopLoss). Unknown keys are ignored;
        missing keys keep their defaults.
        """
        d = d or {}

        cost_mapping = {
            "commission": "commission_rate",
            "slippage": "slippage_rate",
            "stampDuty": "stamp_duty_rate",
        }
        cost_kwargs = {}
        for k, v in d.items():
            if k in cost_mapping and v is not None:
                cost_kwargs[cost_mapping[k]] = float(v)

        kwargs = {"cost": CostConfig(**cost_kwargs)}
        if d.get("initialCapital") is not None:
            kwargs["initial_capital"] = float(d["initialCapital"])
        if d.get("maxHoldDays"):
            kwargs["max_hold_days"] = int(d["maxHoldDays"])
        if d.get("atrWindow"):
            kwargs["atr_window"] = int(d["atrWindow"])

        stop = _stop_loss_from_dict(d.get("stopLoss"))
        if stop is not None:
            kwargs["stop_loss"] = stop
        tp = d.get("takeProfit")
        if isinstance(tp, dict) and str(tp.get("type", "percent")).lower() == "percent":
            kwargs["take_profit"] = PercentTakeProfit(value=float(tp.get("value", 0.10)))
        sizing = _sizing_from_dict(d.get("positionSizing"))
        if sizing is not None:
            kwargs["position_sizing"] = sizing

        return cls(**kwargs)


def _stop_loss_from_dict(d: Optional[dict]) -> Optional[StopLoss]:
    if not isinstance(d, dict):
        return None
    kind = str(d.get("type", "")).lower()
    if kind == "percent":
        return PercentStop(value=float(d.get("value", 0.05)))
    if kind == "atr":
        return AtrStop(multiplier=float(d.get("value", 2.0)))
    if kind == "trailing":
        return TrailingStop(value=float(d.get("value", 0.10)))
    return None


def _sizing_from_dict(d: Optional[dict]) -> Optional[PositionSizing]:
    if not isinstance(d, dict):
        return None
    kind = str(d.get("type", "")).lower()
    risk = float(d.get("riskPercent", 0.02))
    if kind == "full":
        return FullSizing()
    if kind == "fixed_fraction":
        return FixedFractionSizing(risk_percent=risk)
    if kind == "kelly":
        return KellySizing(fraction=float(d.get("kellyFraction", 0.5)))
    if kind == "atr":
        return AtrSizing(risk_percent=risk, multiplier=float(d.get("atrMultiplier", 2.0)))
    return None
