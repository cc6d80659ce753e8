"""Paper trade execution against the portfolio cash and quantities"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .exceptions import InsufficientCashError, InsufficientHoldingsError, NegativeQuantityError
from .models import TradeOrder
from .money import MoneyAmount, Scalar, to_decimal
from .portfolio import Portfolio


def _settle_buy(symbol: str, quantity: Decimal, price: MoneyAmount,
                cash: MoneyAmount, held: Decimal) -> Tuple[MoneyAmount, Decimal]:
    if quantity < 0:
        raise NegativeQuantityError(f"Buy quantity for {symbol} must not be negative: {quantity}", symbol=symbol)
    cost = price * quantity
    if cost > cash:
        raise InsufficientCashError(
            f"Insufficient cash to buy {quantity} {symbol}: need {cost}, have {cash}", symbol=symbol
        )
    return cash - cost, held + quantity


def _settle_sell(symbol: str, quantity: Decimal, price: MoneyAmount,
                 cash: MoneyAmount, held: Decimal) -> Tuple[MoneyAmount, Decimal]:
    if quantity < 0:
        raise NegativeQuantityError(f"Sell quantity for {symbol} must not be negative: {quantity}", symbol=symbol)
    if quantity > held:
        raise InsufficientHoldingsError(
            f"Insufficient holdings to sell {quantity} {symbol}: holding {held}", symbol=symbol
        )
    return cash + price * quantity, held - quantity


class TradeExecutor:
    """Apply paper buy and sell orders, sells before buys"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def order_for_execution(orders: List[TradeOrder]) -> List[TradeOrder]:
        """Sells first, then buys, each group keeping its planned order"""
        sells = [o for o in orders if o.is_sell]
        buys = [o for o in orders if o.is_buy]
        return sells + buys

    def validate(self, portfolio: Portfolio, orders: List[TradeOrder]):
        """
        Check a whole batch against a simulated ledger without mutating anything.

        Raises the same errors the real execution would raise for the first
        order that cannot be applied.
        """
        cash = portfolio.cash
        holdings: Dict[str, Decimal] = {}
        for order in self.order_for_execution(orders):
            position = portfolio.get_position(order.symbol)
            held = holdings.get(order.symbol, position.quantity_held())
            settle = _settle_sell if order.is_sell else _settle_buy
            cash, holdings[order.symbol] = settle(
                order.symbol, abs(order.quantity), position.current_price(), cash, held
            )

    def apply(self, portfolio: Portfolio, orders: List[TradeOrder]) -> List[TradeOrder]:
        """
        Apply a batch of orders atomically.

        The batch is validated in full before the first mutation, so a failing
        order leaves cash and quantities untouched. Returns the orders in the
        sequence they were applied.
        """
        ordered = self.order_for_execution(orders)
        self.validate(portfolio, ordered)

        for order in ordered:
            if order.is_sell:
                self.paper_sell(portfolio, abs(order.quantity), order.symbol)
            else:
                self.paper_buy(portfolio, order.quantity, order.symbol)
        return ordered

    def paper_buy(self, portfolio: Portfolio, quantity: Scalar, symbol: str):
        """Buy `quantity` of `symbol` with portfolio cash at the current price"""
        quantity = to_decimal(quantity)
        position = portfolio.get_position(symbol)
        price = position.current_price()
        portfolio.cash, position.quantity = _settle_buy(
            symbol, quantity, price, portfolio.cash, position.quantity_held()
        )
        self.logger.info(f"Paper BUY {quantity} {symbol} @ {price} (cash now {portfolio.cash})")

    def paper_sell(self, portfolio: Portfolio, quantity: Scalar, symbol: str):
        """Sell `quantity` of `symbol` into portfolio cash at the current price"""
        quantity = to_decimal(quantity)
        position = portfolio.get_position(symbol)
        price = position.current_price()
        portfolio.cash, position.quantity = _settle_sell(
            symbol, quantity, price, portfolio.cash, position.quantity_held()
        )
        self.logger.info(f"Paper SELL {quantity} {symbol} @ {price} (cash now {portfolio.cash})")
