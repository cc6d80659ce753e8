from typing import Optional


class PortfolioError(Exception):
    """Base class for every recoverable portfolio engine error"""

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message)
        self.symbol = symbol

class CurrencyMismatchError(PortfolioError):
    """Raised when two amounts with different currency tags are combined"""
    pass

class DivideByZeroError(PortfolioError, ZeroDivisionError):
    """Raised when a money amount or total value is divided by zero"""
    pass

class PriceFetchFailedError(PortfolioError):
    """Raised when a price fetch fails for a symbol during refresh"""

    def __init__(self, symbol: str, reason: str = ""):
        message = f"Price fetch failed for {symbol}"
        if reason:
            message += f": {reason}"
        super().__init__(message, symbol=symbol)

class InsufficientCashError(PortfolioError):
    """Raised when a buy costs more than the available cash"""
    pass

class InsufficientHoldingsError(PortfolioError):
    """Raised when a sell exceeds the quantity held"""
    pass

class NegativeQuantityError(PortfolioError):
    """Raised when a buy or sell is requested with a negative quantity"""
    pass

class UnknownSymbolError(PortfolioError):
    """Raised when an order references a symbol the portfolio does not hold"""
    pass

class WeightNormalizationError(PortfolioError):
    """Raised when computed weights do not sum to one"""

    def __init__(self, total_weight, tolerance):
        super().__init__(
            f"Weights sum to {total_weight}, expected 1 within {tolerance}"
        )
        self.total_weight = total_weight

class ValueConservationError(PortfolioError):
    """Raised when a rebalance cycle changes total portfolio value"""

    def __init__(self, value_before, value_after):
        super().__init__(
            f"Total value changed during rebalance: {value_before} -> {value_after}"
        )
        self.value_before = value_before
        self.value_after = value_after

class InvalidConfigurationError(PortfolioError):
    """Raised when a portfolio configuration fails validation"""
    pass

class ProviderError(Exception):
    """Raised when a market data provider returns an error"""
    pass
