"""Paper rebalancer driving one portfolio through valuation, planning and execution"""

import asyncio
import logging
import uuid
from decimal import Decimal
from typing import Dict, List, Optional

from .config.models import TradingConfig
from .context import CycleContext, clear_current_cycle, set_current_cycle
from .exceptions import PortfolioError, ValueConservationError
from .executor import TradeExecutor
from .models import CASH_KEY, CalculateRebalanceResult, RebalanceResult, TradeOrder
from .money import MoneyAmount
from .planner import RebalancePlanner
from .portfolio import Portfolio
from .pricing import PriceRefresher
from .reinvestment import ReinvestmentSweep
from .valuation import ValuationEngine, WeightCalculator


class PaperRebalancer:
    """Single-writer rebalancer; one cycle at a time per portfolio"""

    def __init__(self, portfolio: Portfolio, price_refresher: Optional[PriceRefresher] = None,
                 trading: Optional[TradingConfig] = None, logger: Optional[logging.Logger] = None):
        self.portfolio = portfolio
        self.price_refresher = price_refresher
        self.trading = trading or TradingConfig()
        self.logger = logger or logging.getLogger(__name__)

        self.valuation = ValuationEngine()
        self.weights = WeightCalculator(self.valuation, tolerance=self.trading.weight_tolerance, logger=self.logger)
        self.planner = RebalancePlanner(self.trading, self.valuation, logger=self.logger)
        self.executor = TradeExecutor(logger=self.logger)
        self.sweep = ReinvestmentSweep(self.executor, self.trading, logger=self.logger)

        # Serializes refresh -> value -> plan -> execute -> sweep
        self._lock = asyncio.Lock()

    async def refresh_prices(self, use_cache: bool = False) -> Dict[str, MoneyAmount]:
        if self.price_refresher is None:
            self.logger.info("No price refresher configured, using last known prices")
            return {}
        return await self.price_refresher.refresh(self.portfolio, use_cache=use_cache)

    def calculate_rebalance(self) -> CalculateRebalanceResult:
        """Plan trades without executing them (preview)"""
        portfolio = self.portfolio
        self.logger.info(f"Calculating rebalance for portfolio {portfolio.name}")

        current_value = self.valuation.total_value(portfolio)
        weights = self.weights.compute_weights(portfolio)
        self._log_portfolio_snapshot("CURRENT", current_value)
        self._log_target_allocations()

        orders = self.planner.plan(portfolio)
        self._log_planned_orders(orders, is_preview=True)

        return CalculateRebalanceResult(
            proposed_trades=orders,
            current_value=current_value,
            weights=weights,
            success=True,
            warnings=self._target_warnings()
        )

    def rebalance(self) -> RebalanceResult:
        """
        Run one synchronous rebalance cycle on current prices.

        Errors from any stage come back as a failed RebalanceResult carrying
        the error kind and symbol. A failing trade batch is rejected as a
        whole; a failing sweep leaves the already executed trades applied.
        """
        portfolio = self.portfolio
        self.logger.info(f"Starting rebalance for portfolio {portfolio.name}")
        warnings = self._target_warnings()
        value_before = None

        try:
            value_before = self.valuation.total_value(portfolio)
            self.weights.compute_weights(portfolio)
            self._log_portfolio_snapshot("INITIAL", value_before)
            self._log_target_allocations()

            orders = self.planner.plan(portfolio)
            self._log_planned_orders(orders)
            executed = self.executor.apply(portfolio, orders)

            sweep_orders = self.sweep.sweep(portfolio)

            value_after = self.valuation.total_value(portfolio)
            if abs(value_after - value_before).amount > self.trading.value_tolerance:
                self.logger.error(
                    f"CRITICAL: total value changed from {value_before} to {value_after} during rebalance"
                )
                raise ValueConservationError(value_before, value_after)

            final_weights = self.weights.compute_weights(portfolio)
            self._log_portfolio_snapshot("FINAL", value_after)

            self.logger.info(f"Rebalance completed successfully for portfolio {portfolio.name}")
            return RebalanceResult(
                orders=executed,
                sweep_orders=sweep_orders,
                total_value_before=value_before,
                total_value_after=value_after,
                cash_balance=portfolio.cash,
                weights=final_weights,
                success=True,
                warnings=warnings
            )

        except PortfolioError as e:
            self.logger.error(f"Rebalance failed for portfolio {portfolio.name}: {type(e).__name__}: {e}")
            return self._failure_result(e, value_before, warnings)

    async def run_cycle(self, refresh: bool = True, use_cached_prices: bool = False) -> RebalanceResult:
        """
        Refresh prices then rebalance, holding the portfolio lock throughout.

        With `use_cached_prices`, quotes still within the provider cache TTL
        are reused instead of being fetched again.
        """
        async with self._lock:
            set_current_cycle(CycleContext(cycle_id=uuid.uuid4().hex[:12], portfolio=self.portfolio.name))
            try:
                if refresh:
                    try:
                        await self.refresh_prices(use_cache=use_cached_prices)
                    except PortfolioError as e:
                        self.logger.error(f"Price refresh failed, rebalance skipped: {e}")
                        return self._failure_result(e, None, self._target_warnings())
                return self.rebalance()
            finally:
                clear_current_cycle()

    def _failure_result(self, error: PortfolioError, value_before: Optional[MoneyAmount],
                        warnings: List[str]) -> RebalanceResult:
        return RebalanceResult(
            total_value_before=value_before,
            cash_balance=self.portfolio.cash,
            weights=dict(self.portfolio.actual_weights),
            success=False,
            error=str(error),
            error_kind=type(error).__name__,
            symbol=error.symbol,
            warnings=warnings
        )

    def _target_warnings(self) -> List[str]:
        warnings = []
        for symbol in self.portfolio.unheld_targets():
            warning_msg = (
                f"Target weight for {symbol} "
                f"({self.portfolio.target_weights[symbol] * 100:.2f}%) has no position and is not traded"
            )
            warnings.append(warning_msg)
            self.logger.warning(warning_msg)
        return warnings

    def _log_portfolio_snapshot(self, stage: str, total_value: MoneyAmount):
        """Log detailed portfolio snapshot"""
        portfolio = self.portfolio
        self.logger.info(f"====== {stage} PORTFOLIO SNAPSHOT ======")
        self.logger.info(f"Portfolio: {portfolio.name}")
        self.logger.info(f"Total Portfolio Value: {total_value}")

        if portfolio.positions:
            self.logger.info(f"Positions ({len(portfolio.positions)}):")
            for position in portfolio.positions:
                weight = portfolio.actual_weights.get(position.symbol, Decimal(0))
                self.logger.info(
                    f"  {position.symbol} [{position.asset_class}]: {position.quantity_held()} "
                    f"@ {position.current_price()} = {position.market_value()} ({weight * 100:.2f}%)"
                )
        else:
            self.logger.info("No positions held")

        cash_weight = portfolio.actual_weights.get(CASH_KEY, Decimal(0))
        self.logger.info(f"Cash Balance: {portfolio.cash} ({cash_weight * 100:.2f}%)")
        self.logger.info("=" * 40)

    def _log_target_allocations(self):
        """Log target weight percentages"""
        target_weights = self.portfolio.target_weights
        self.logger.info(f"====== TARGET WEIGHTS ({len(target_weights)}) ======")
        for symbol in sorted(target_weights):
            self.logger.info(f"  {symbol}: {target_weights[symbol] * 100:.2f}%")
        self.logger.info(f"Rebalance policy: {self.portfolio.policy.kind} (threshold {self.portfolio.threshold})")
        self.logger.info("=" * 35)

    def _log_planned_orders(self, orders: List[TradeOrder], is_preview: bool = False):
        """Log planned orders"""
        stage = "PROPOSED TRADES (PREVIEW)" if is_preview else "PLANNED ORDERS"
        self.logger.info(f"====== {stage} ======")

        if not orders:
            self.logger.info("No trades required - portfolio is within threshold of its targets")
            self.logger.info("=" * (len(stage) + 14))
            return

        sell_orders = [o for o in orders if o.is_sell]
        buy_orders = [o for o in orders if o.is_buy]
        currency = self.portfolio.currency
        total_sell_value = sum((abs(o.quantity) * o.price.amount for o in sell_orders), Decimal(0))
        total_buy_value = sum((o.quantity * o.price.amount for o in buy_orders), Decimal(0))

        self.logger.info(f"Total Orders: {len(orders)} ({len(sell_orders)} sells, {len(buy_orders)} buys)")
        self.logger.info(f"Total Sell Value: {total_sell_value:,.2f} {currency}")
        self.logger.info(f"Total Buy Value: {total_buy_value:,.2f} {currency}")

        for order in sell_orders:
            self.logger.info(f"  SELL {abs(order.quantity)} {order.symbol} @ {order.price} "
                             f"(from {order.current_quantity})")
        for order in buy_orders:
            self.logger.info(f"  BUY {order.quantity} {order.symbol} @ {order.price} "
                             f"(to {order.current_quantity + order.quantity})")

        self.logger.info("=" * (len(stage) + 14))
