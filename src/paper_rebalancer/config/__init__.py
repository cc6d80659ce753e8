"""Configuration management for the paper rebalancer."""

from .models import (
    AppConfig,
    LoggingConfig,
    PricingConfig,
    TradingConfig,
    PortfolioConfig,
    PositionConfig,
    EquityPositionConfig,
    CryptoPositionConfig,
    WEIGHT_SUM_TOLERANCE,
)
from .loader import load_config, parse_config, parse_portfolio_config

__all__ = [
    "AppConfig",
    "LoggingConfig",
    "PricingConfig",
    "TradingConfig",
    "PortfolioConfig",
    "PositionConfig",
    "EquityPositionConfig",
    "CryptoPositionConfig",
    "WEIGHT_SUM_TOLERANCE",
    "load_config",
    "parse_config",
    "parse_portfolio_config",
]
