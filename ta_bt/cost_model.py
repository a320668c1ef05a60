"""A-share cost model: commission, direction-aware slippage and sell-side stamp duty."""

from __future__ import annotations

from dataclasses import dataclass

from .config import CostConfig


@dataclass(frozen=True)
class CostBreakdown:
    fee_rate: float
    tax_rate: float


def apply_buy_cost(price: float, slippage_rate: float) -> float:
    """Buy fill price: slippage pushes it up."""
    return float(price) * (1.0 + float(slippage_rate))


def apply_sell_cost(price: float, slippage_rate: float) -> float:
    """Sell fill price: slippage pushes it down."""
    return float(price) * (1.0 - float(slippage_rate))


class CostModel:
    """Costs:
    - commission: applied on any transaction (entry/exit)
    - stamp duty: applied on *sells*
    - slippage: applied to the fill price, against the trader
    """

    def __init__(self, cfg: CostConfig):
        self.cfg = cfg

    def transaction_cost_rates(self, side: str) -> CostBreakdown:
        """Return (fee_rate, tax_rate) for a transaction side."""
        fee = float(self.cfg.commission_rate)
        tax = 0.0
        if side.upper() == "SELL":
            tax = float(self.cfg.stamp_duty_rate)
        return CostBreakdown(fee_rate=fee, tax_rate=tax)

    def buy_price(self, price: float) -> float:
        return apply_buy_cost(price, self.cfg.slippage_rate)

    def sell_price(self, price: float) -> float:
        return apply_sell_cost(price, self.cfg.slippage_rate)

    def commission(self, amount: float) -> float:
        return float(amount) * float(self.cfg.commission_rate)

    def stamp_duty(self, amount: float) -> float:
        return float(amount) * float(self.cfg.stamp_duty_rate)

    def entry_cost(self, shares: int, price: float) -> float:
        """Cash debited for a buy, commission included."""
        rates = self.transaction_cost_rates("BUY")
        notional = float(shares) * float(price)
        return notional + notional * rates.fee_rate + notional * rates.tax_rate

    def net_proceeds(self, shares: int, price: float) -> float:
        """Cash credited for a sell, after commission and stamp duty."""
        rates = self.transaction_cost_rates("SELL")
        notional = float(shares) * float(price)
        return notional - notional * rates.fee_rate - notional * rates.tax_rate
