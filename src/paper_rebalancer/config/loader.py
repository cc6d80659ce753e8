"""Configuration loader with validation."""

import logging
import yaml
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from ..exceptions import InvalidConfigurationError
from .models import AppConfig, PortfolioConfig

logger = logging.getLogger(__name__)


def parse_config(raw_config: Dict[str, Any]) -> AppConfig:
    """
    Validate a raw configuration mapping.

    Raises:
        InvalidConfigurationError: If validation fails
    """
    try:
        return AppConfig(**(raw_config or {}))
    except ValidationError as e:
        logger.error(f"Configuration validation failed: {e}")
        raise InvalidConfigurationError(f"Invalid configuration: {e}") from e


def parse_portfolio_config(raw_portfolio: Dict[str, Any]) -> PortfolioConfig:
    """
    Validate a raw portfolio mapping on its own.

    Raises:
        InvalidConfigurationError: If validation fails
    """
    try:
        return PortfolioConfig(**(raw_portfolio or {}))
    except ValidationError as e:
        logger.error(f"Portfolio configuration validation failed: {e}")
        raise InvalidConfigurationError(f"Invalid portfolio configuration: {e}") from e


def load_config(config_path: str | Path) -> AppConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to config.yaml file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        InvalidConfigurationError: If config validation fails
        yaml.YAMLError: If YAML parsing fails
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise InvalidConfigurationError(
            f"Configuration root must be a mapping, got {type(raw_config).__name__}"
        )

    config = parse_config(raw_config)

    # Log loaded configuration for audit trail
    portfolio = config.portfolio
    logger.info("Configuration loaded successfully:")
    logger.info(f"  Portfolio: {portfolio.name} ({portfolio.currency})")
    logger.info(f"  Positions: {len(portfolio.positions)}")
    logger.info(f"  Starting cash: {portfolio.cash:,.2f} {portfolio.currency}")
    logger.info(f"  Rebalance policy: {portfolio.policy.kind}")
    logger.info(f"  Price request timeout: {config.pricing.request_timeout_seconds}s")
    logger.info(f"  Price cache TTL: {config.pricing.price_cache_ttl_seconds}s")
    logger.info(f"  Quantity precision: {config.trading.quantity_precision} decimals")
    logger.info(f"  Value tolerance: {config.trading.value_tolerance}")

    return config
