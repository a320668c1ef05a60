import pytest

from ta_bt.config import CostConfig
from ta_bt.cost_model import CostModel, apply_buy_cost, apply_sell_cost


class TestSlippage:
    def test_buy_slippage_raises_price(self):
        assert apply_buy_cost(10.0, 0.001) == pytest.approx(10.01)

    def test_sell_slippage_lowers_price(self):
        assert apply_sell_cost(10.0, 0.001) == pytest.approx(9.99)

    def test_zero_slippage_is_identity(self):
        assert apply_buy_cost(12.5, 0.0) == 12.5
        assert apply_sell_cost(12.5, 0.0) == 12.5


class TestCostModel:
    def setup_method(self):
        self.model = CostModel(CostConfig(commission_rate=0.0003, slippage_rate=0.001, stamp_duty_rate=0.001))

    def test_commission_and_stamp_duty(self):
        assert self.model.commission(10_000.0) == pytest.approx(3.0)
        assert self.model.stamp_duty(10_000.0) == pytest.approx(10.0)

    def test_stamp_duty_only_on_sells(self):
        assert self.model.transaction_cost_rates("BUY").tax_rate == 0.0
        assert self.model.transaction_cost_rates("sell").tax_rate == pytest.approx(0.001)
        assert self.model.transaction_cost_rates("BUY").fee_rate == pytest.approx(0.0003)

    def test_entry_cost_includes_commission(self):
        assert self.model.entry_cost(100, 10.0) == pytest.approx(1000.3)

    def test_net_proceeds_subtracts_commission_and_duty(self):
        assert self.model.net_proceeds(100, 10.0) == pytest.approx(1000.0 - 0.3 - 1.0)

    def test_fill_prices(self):
        assert self.model.buy_price(20.0) == pytest.approx(20.02)
        assert self.model.sell_price(20.0) == pytest.approx(19.98)
