"""Portfolio aggregate: positions, cash, target and actual weights"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .config.models import (
    CryptoPositionConfig,
    PortfolioConfig,
    check_target_weights,
    normalize_target_weights,
)
from .exceptions import CurrencyMismatchError, InvalidConfigurationError, UnknownSymbolError
from .models import (
    CASH_KEY,
    AnyPosition,
    CryptoPosition,
    EquityPosition,
    RebalancePolicy,
    ThresholdPolicy,
)
from .money import MoneyAmount

logger = logging.getLogger(__name__)


class Portfolio(BaseModel):
    """Single portfolio owning its positions and cash balance"""

    name: str = "default"
    currency: str = "USD"
    positions: List[AnyPosition] = Field(default_factory=list)
    target_weights: Dict[str, Decimal] = Field(default_factory=dict)
    actual_weights: Dict[str, Decimal] = Field(default_factory=dict)
    policy: RebalancePolicy = Field(default_factory=ThresholdPolicy)
    cash: MoneyAmount

    @model_validator(mode="after")
    def validate_portfolio(self) -> "Portfolio":
        try:
            self.target_weights = check_target_weights(normalize_target_weights(self.target_weights))
        except ValueError as e:
            raise InvalidConfigurationError(f"Invalid target weights for {self.name}: {e}") from e

        if self.cash.currency != self.currency:
            raise CurrencyMismatchError(
                f"Cash currency {self.cash.currency} does not match portfolio currency {self.currency}"
            )
        seen = set()
        for position in self.positions:
            if position.symbol in seen:
                raise InvalidConfigurationError(f"Duplicate position {position.symbol}", symbol=position.symbol)
            seen.add(position.symbol)
            if position.last_price.currency != self.currency:
                raise CurrencyMismatchError(
                    f"{position.symbol} is priced in {position.last_price.currency}, "
                    f"portfolio settles in {self.currency}",
                    symbol=position.symbol,
                )
        return self

    @classmethod
    def from_config(cls, config: PortfolioConfig,
                    prices: Optional[Dict[str, MoneyAmount]] = None) -> "Portfolio":
        """
        Build a portfolio from a validated configuration.

        Prices come from the configuration first, then from `prices` (keyed by
        symbol). Every position must end up priced.
        """
        prices = prices or {}
        positions = []
        for item in config.positions:
            if item.last_price is not None:
                last_price = MoneyAmount.of(item.last_price, config.currency)
            elif item.symbol in prices:
                last_price = prices[item.symbol]
            else:
                raise InvalidConfigurationError(
                    f"No price available for {item.symbol}", symbol=item.symbol
                )

            if isinstance(item, CryptoPositionConfig):
                positions.append(CryptoPosition(
                    symbol=item.symbol,
                    coin_id=item.coin_id,
                    quantity=item.quantity,
                    last_price=last_price,
                ))
            else:
                positions.append(EquityPosition(
                    symbol=item.symbol,
                    name=item.name,
                    quantity=item.quantity,
                    last_price=last_price,
                ))

        missing = [s for s in config.target_weights if s != CASH_KEY and s not in config.held_symbols]
        if missing:
            logger.warning(f"Target weights reference symbols not held in portfolio: {', '.join(missing)}")

        return cls(
            name=config.name,
            currency=config.currency,
            positions=positions,
            target_weights=dict(config.target_weights),
            policy=config.policy,
            cash=MoneyAmount.of(config.cash, config.currency),
        )

    @property
    def threshold(self) -> Decimal:
        """Value threshold from the policy; zero when the policy has none"""
        value = self.policy.threshold_value
        return value if value is not None else Decimal(0)

    def get_position(self, symbol: str):
        for position in self.positions:
            if position.symbol == symbol:
                return position
        raise UnknownSymbolError(f"No position held for {symbol}", symbol=symbol)

    def target_weight(self, symbol: str) -> Optional[Decimal]:
        return self.target_weights.get(symbol)

    def eligible_positions(self) -> list:
        """Positions that carry a target weight, in stored order"""
        return [p for p in self.positions if p.symbol in self.target_weights]

    def unheld_targets(self) -> List[str]:
        held = {p.symbol for p in self.positions}
        return [s for s in self.target_weights if s != CASH_KEY and s not in held]


async def build_portfolio(config: PortfolioConfig, refresher) -> Portfolio:
    """Build a portfolio, fetching prices for positions configured without one"""
    unpriced = [item for item in config.positions if item.last_price is None]
    prices = {}
    if unpriced:
        logger.info(f"Fetching construction prices for {len(unpriced)} positions")
        prices = await refresher.fetch_prices(unpriced, currency=config.currency)
    return Portfolio.from_config(config, prices=prices)
