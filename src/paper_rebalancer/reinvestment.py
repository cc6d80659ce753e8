"""Post-rebalance sweep of residual cash into holdings"""

import logging
from decimal import ROUND_DOWN
from typing import List, Optional

from .config.models import TradingConfig
from .exceptions import DivideByZeroError
from .executor import TradeExecutor
from .models import TradeOrder
from .portfolio import Portfolio


class ReinvestmentSweep:
    """Split residual cash evenly across positions that have a target weight"""

    def __init__(self, executor: Optional[TradeExecutor] = None,
                 trading: Optional[TradingConfig] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.executor = executor or TradeExecutor(logger=self.logger)
        self.trading = trading or TradingConfig()

    def plan(self, portfolio: Portfolio) -> List[TradeOrder]:
        """Buy orders spending the residual cash, one per eligible position"""
        if portfolio.cash.is_zero():
            return []

        eligible = portfolio.eligible_positions()
        if not eligible:
            raise DivideByZeroError(
                f"Cannot reinvest {portfolio.cash}: no positions carry a target weight"
            )

        cash_per_asset = portfolio.cash / len(eligible)
        quantum = self.trading.quantity_quantum
        orders = []
        for position in eligible:
            price = position.current_price()
            quantity = (cash_per_asset / price).quantize(quantum, rounding=ROUND_DOWN)
            if quantity > 0:
                orders.append(TradeOrder(
                    symbol=position.symbol,
                    quantity=quantity,
                    price=price,
                    current_quantity=position.quantity_held(),
                ))
        return orders

    def sweep(self, portfolio: Portfolio) -> List[TradeOrder]:
        orders = self.plan(portfolio)
        if not orders:
            return []

        self.logger.info(f"Reinvesting {portfolio.cash} across {len(orders)} positions")
        self.executor.apply(portfolio, orders)
        if not portfolio.cash.is_zero():
            self.logger.debug(f"Residual cash after sweep: {portfolio.cash}")
        return orders
