"""Portfolio valuation and weight computation"""

import logging
from decimal import Decimal
from typing import Dict, Optional

from .config.models import WEIGHT_SUM_TOLERANCE
from .exceptions import DivideByZeroError, WeightNormalizationError
from .models import CASH_KEY
from .money import MoneyAmount
from .portfolio import Portfolio


class ValuationEngine:
    """Sum holdings and cash into total portfolio value"""

    def total_value(self, portfolio: Portfolio) -> MoneyAmount:
        total = portfolio.cash
        for position in portfolio.positions:
            total = total + position.market_value()
        return total


class WeightCalculator:
    """Derive each holding's and cash's share of total value"""

    def __init__(self, valuation: Optional[ValuationEngine] = None,
                 tolerance: Decimal = WEIGHT_SUM_TOLERANCE,
                 logger: Optional[logging.Logger] = None):
        self.valuation = valuation or ValuationEngine()
        self.tolerance = tolerance
        self.logger = logger or logging.getLogger(__name__)

    def compute_weights(self, portfolio: Portfolio) -> Dict[str, Decimal]:
        """
        Compute actual weights and cache them on the portfolio.

        Cash is included exactly once under the CASH key. The sum of all
        weights is checked against 1 before the snapshot is stored.

        Raises:
            DivideByZeroError: If total portfolio value is zero
            WeightNormalizationError: If the weights do not sum to 1
        """
        total_value = self.valuation.total_value(portfolio)
        if total_value.is_zero():
            raise DivideByZeroError(f"Cannot compute weights for {portfolio.name}: total value is zero")

        weights: Dict[str, Decimal] = {}
        for position in portfolio.positions:
            weights[position.symbol] = position.market_value() / total_value
        weights[CASH_KEY] = portfolio.cash / total_value

        total_weight = sum(weights.values(), Decimal(0))
        if abs(total_weight - 1) > self.tolerance:
            self.logger.error(f"Weights for {portfolio.name} sum to {total_weight}")
            raise WeightNormalizationError(total_weight, self.tolerance)

        portfolio.actual_weights = dict(weights)
        self.logger.debug(f"Computed {len(weights)} weights on total value {total_value}")
        return weights
