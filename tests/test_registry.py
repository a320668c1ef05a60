from dataclasses import dataclass
from datetime import datetime, timedelta

import numpy as np
import pytest

from ta_bt.plugins import AtrIndicator, AtrParams, MaCrossParams, MaCrossStrategy, build_default_registry
from ta_bt.registry import (
    IndicatorPlugin,
    PluginRegistry,
    RiskPlugin,
    StrategyPlugin,
    params_from_dict,
)
from ta_bt.types import Bar

START = datetime(2024, 1, 2)


def _bars(closes) -> list[Bar]:
    return [
        Bar(date=START + timedelta(days=i), open=c, high=c + 0.5, low=c - 0.5, close=c, volume=1.0)
        for i, c in enumerate(closes)
    ]


@dataclass(frozen=True)
class _VolParams:
    scale: float = 1.0


class _StdevRisk:
    id = "risk-stdev"
    name = "Stdev"
    category = "risk"
    description = "Sample standard deviation of returns."
    params_type = _VolParams

    def analyze(self, returns, params=_VolParams()):
        return float(np.std(returns, ddof=1)) * params.scale


class TestPluginRegistry:
    def test_register_and_get(self):
        reg = PluginRegistry()
        plugin = MaCrossStrategy()
        reg.register(plugin)
        assert reg.get("strategy-ma-cross") is plugin
        assert "strategy-ma-cross" in reg
        assert len(reg) == 1

    def test_duplicate_id_raises(self):
        reg = PluginRegistry()
        reg.register(MaCrossStrategy())
        with pytest.raises(ValueError):
            reg.register(MaCrossStrategy())

    def test_unknown_id_raises(self):
        with pytest.raises(KeyError):
            PluginRegistry().get("missing")

    def test_by_category(self):
        reg = build_default_registry()
        reg.register(_StdevRisk())
        assert [p.id for p in reg.by_category("strategy")] == ["strategy-ma-cross"]
        assert [p.id for p in reg.by_category("risk")] == ["risk-stdev"]
        assert reg.by_category("portfolio") == []
        assert len(reg.list()) == 3

    def test_default_registries_are_independent(self):
        a = build_default_registry()
        b = build_default_registry()
        a.register(_StdevRisk())
        assert "risk-stdev" not in b

    def test_protocols(self):
        assert isinstance(MaCrossStrategy(), StrategyPlugin)
        assert isinstance(AtrIndicator(), IndicatorPlugin)
        assert isinstance(_StdevRisk(), RiskPlugin)

    def test_params_from_dict_ignores_unknown_keys(self):
        params = params_from_dict(MaCrossParams, {"short_period": 3, "foo": 1})
        assert params == MaCrossParams(short_period=3, long_period=20)
        assert params_from_dict(MaCrossParams, None) == MaCrossParams()


class TestBuiltinPlugins:
    def test_ma_cross_signals(self):
        closes = [10, 9, 8, 7, 8, 9, 10, 9, 8, 7]
        bars = _bars([float(c) for c in closes])
        signals = MaCrossStrategy().generate_signals(bars, MaCrossParams(short_period=2, long_period=3))

        assert len(signals) == len(bars)
        actions = [s.action for s in signals]
        assert actions[5] == "buy"
        assert actions[8] == "sell"
        assert [i for i, a in enumerate(actions) if a != "hold"] == [5, 8]
        assert signals[5].price == 9.0
        assert signals[5].reason

    def test_atr_indicator(self):
        bars = _bars([10.0] * 20)
        out = AtrIndicator().compute(bars, AtrParams(period=5))
        assert out[0] == 0.0
        np.testing.assert_allclose(out[1:], 1.0)
