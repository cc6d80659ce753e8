"""Threshold-based trade planning against target weights"""

import logging
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_EVEN, ROUND_UP
from typing import List, Optional

from .config.models import TradingConfig
from .models import TradeOrder
from .money import MoneyAmount
from .portfolio import Portfolio
from .valuation import ValuationEngine

# Division noise on value deltas is removed at this resolution before sizing
VALUE_QUANTUM = Decimal("1e-12")


class RebalancePlanner:
    """Compare actual vs target weights and emit the trades needed"""

    def __init__(self, trading: Optional[TradingConfig] = None,
                 valuation: Optional[ValuationEngine] = None,
                 logger: Optional[logging.Logger] = None):
        self.trading = trading or TradingConfig()
        self.valuation = valuation or ValuationEngine()
        self.logger = logger or logging.getLogger(__name__)

    def plan(self, portfolio: Portfolio) -> List[TradeOrder]:
        """
        Plan trades for one rebalance pass.

        Total value is captured once for the whole pass. Positions are visited
        in stored order and orders are emitted in that same order. Positions
        without a target weight are never traded.
        """
        total_value = self.valuation.total_value(portfolio)
        threshold = portfolio.threshold
        orders = []

        for position in portfolio.positions:
            symbol = position.symbol
            target_weight = portfolio.target_weights.get(symbol)
            if target_weight is None:
                self.logger.debug(f"Skipping {symbol}: no target weight")
                continue

            actual_weight = portfolio.actual_weights.get(symbol, Decimal(0))
            target_value = total_value * target_weight
            actual_value = total_value * actual_weight
            delta_value = target_value - actual_value
            delta_amount = delta_value.amount.quantize(VALUE_QUANTUM, rounding=ROUND_HALF_EVEN)

            if abs(delta_amount) <= threshold:
                self.logger.debug(
                    f"Skipping {symbol}: deviation {delta_amount:.2f} within threshold {threshold} "
                    f"(target={target_weight * 100:.2f}%, current={actual_weight * 100:.2f}%)"
                )
                continue

            price = position.current_price()
            exact_quantity = MoneyAmount(amount=delta_amount, currency=price.currency) / price
            quantity = self._size_quantity(exact_quantity, position.quantity_held())
            if quantity == 0:
                self.logger.debug(f"Skipping {symbol}: trade rounds to zero quantity")
                continue

            orders.append(TradeOrder(
                symbol=symbol,
                quantity=quantity,
                price=price,
                current_quantity=position.quantity_held(),
                target_value=target_value,
                current_value=actual_value,
            ))

        return orders

    def _size_quantity(self, exact_quantity: Decimal, held: Decimal) -> Decimal:
        """
        Round a quantity to the configured precision.

        Sells round away from zero and buys toward zero, so the proceeds of a
        sell always cover the value it was planned for and a buy never costs
        more than planned. A sell rounded past the held quantity by less than
        one quantum is the whole holding.
        """
        quantum = self.trading.quantity_quantum
        if exact_quantity < 0:
            sell = (-exact_quantity).quantize(quantum, rounding=ROUND_UP)
            if held < sell <= held + quantum:
                sell = held
            return -sell
        return exact_quantity.quantize(quantum, rounding=ROUND_DOWN)
