from .money import MoneyAmount, to_decimal
from .models import (
    # Holdings
    AssetClass,
    Position,
    EquityPosition,
    CryptoPosition,
    # Policies
    ThresholdPolicy,
    FrequencyPolicy,
    ThresholdAndFrequencyPolicy,
    NoRebalancePolicy,
    # Orders and market data
    TradeOrder,
    Quote,
    # Rebalancing result models
    RebalanceResult,
    CalculateRebalanceResult,
    CASH_KEY,
)
from .exceptions import (
    PortfolioError,
    CurrencyMismatchError,
    DivideByZeroError,
    PriceFetchFailedError,
    InsufficientCashError,
    InsufficientHoldingsError,
    NegativeQuantityError,
    UnknownSymbolError,
    WeightNormalizationError,
    ValueConservationError,
    InvalidConfigurationError,
    ProviderError,
)
from .portfolio import Portfolio, build_portfolio
from .valuation import ValuationEngine, WeightCalculator
from .planner import RebalancePlanner
from .executor import TradeExecutor
from .reinvestment import ReinvestmentSweep
from .pricing import PriceRefresher
from .rebalancer import PaperRebalancer

__version__ = "1.0.0"

__all__ = [
    "MoneyAmount",
    "to_decimal",
    "AssetClass",
    "Position",
    "EquityPosition",
    "CryptoPosition",
    "ThresholdPolicy",
    "FrequencyPolicy",
    "ThresholdAndFrequencyPolicy",
    "NoRebalancePolicy",
    "TradeOrder",
    "Quote",
    "RebalanceResult",
    "CalculateRebalanceResult",
    "CASH_KEY",
    "PortfolioError",
    "CurrencyMismatchError",
    "DivideByZeroError",
    "PriceFetchFailedError",
    "InsufficientCashError",
    "InsufficientHoldingsError",
    "NegativeQuantityError",
    "UnknownSymbolError",
    "WeightNormalizationError",
    "ValueConservationError",
    "InvalidConfigurationError",
    "ProviderError",
    "Portfolio",
    "build_portfolio",
    "ValuationEngine",
    "WeightCalculator",
    "RebalancePlanner",
    "TradeExecutor",
    "ReinvestmentSweep",
    "PriceRefresher",
    "PaperRebalancer",
    "__version__",
]
