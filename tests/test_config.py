import pytest

from ta_bt.config import (
    AtrSizing,
    AtrStop,
    BacktestConfig,
    CostConfig,
    FixedFractionSizing,
    FullSizing,
    KellySizing,
    PercentStop,
    PercentTakeProfit,
    TrailingStop,
)


class TestDefaults:
    def test_backtest_defaults(self):
        cfg = BacktestConfig()
        assert cfg.initial_capital == 100_000.0
        assert cfg.cost == CostConfig(commission_rate=0.0003, slippage_rate=0.001, stamp_duty_rate=0.001)
        assert cfg.stop_loss is None
        assert cfg.take_profit is None
        assert cfg.max_hold_days is None
        assert cfg.position_sizing == FullSizing()
        assert cfg.atr_window == 14

    def test_frozen(self):
        cfg = BacktestConfig()
        with pytest.raises(AttributeError):
            cfg.initial_capital = 1.0


class TestFromParamsDict:
    def test_empty_dict_gives_defaults(self):
        assert BacktestConfig.from_params_dict({}) == BacktestConfig()
        assert BacktestConfig.from_params_dict(None) == BacktestConfig()

    def test_scalar_fields(self):
        cfg = BacktestConfig.from_params_dict(
            {"initialCapital": 50000, "commission": 0.001, "slippage": 0.0, "stampDuty": 0.0005, "maxHoldDays": 20}
        )
        assert cfg.initial_capital == 50000.0
        assert cfg.cost == CostConfig(commission_rate=0.001, slippage_rate=0.0, stamp_duty_rate=0.0005)
        assert cfg.max_hold_days == 20

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({"type": "percent", "value": 0.07}, PercentStop(0.07)),
            ({"type": "atr", "value": 3}, AtrStop(3.0)),
            ({"type": "trailing", "value": 0.08}, TrailingStop(0.08)),
            ({"type": "bogus", "value": 1}, None),
        ],
    )
    def test_stop_loss_variants(self, raw, expected):
        assert BacktestConfig.from_params_dict({"stopLoss": raw}).stop_loss == expected

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({"type": "full"}, FullSizing()),
            ({"type": "fixed_fraction", "riskPercent": 0.01}, FixedFractionSizing(0.01)),
            ({"type": "kelly", "kellyFraction": 0.25}, KellySizing(0.25)),
            ({"type": "atr", "riskPercent": 0.03}, AtrSizing(0.03, 2.0)),
        ],
    )
    def test_sizing_variants(self, raw, expected):
        assert BacktestConfig.from_params_dict({"positionSizing": raw}).position_sizing == expected

    def test_take_profit_and_unknown_keys(self):
        cfg = BacktestConfig.from_params_dict({"takeProfit": {"type": "percent", "value": 0.2}, "whatever": 1})
        assert cfg.take_profit == PercentTakeProfit(0.2)
