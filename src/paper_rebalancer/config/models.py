"""Pydantic models for portfolio and engine configuration with validation."""

from decimal import Decimal
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models import CASH_KEY, RebalancePolicy, ThresholdPolicy
from ..money import DEFAULT_CURRENCY, to_decimal

WEIGHT_SUM_TOLERANCE = Decimal("1e-8")


def normalize_target_weights(raw: Dict) -> Dict[str, Decimal]:
    """Upper-case symbol keys and convert weights to Decimal"""
    normalized = {}
    for symbol, weight in raw.items():
        key = str(symbol).strip().upper()
        if key in normalized:
            raise ValueError(f"Duplicate target weight for {key}")
        normalized[key] = to_decimal(weight)
    return normalized


def check_target_weights(weights: Dict[str, Decimal]) -> Dict[str, Decimal]:
    """
    Validate normalized target weights and return them with CASH filled in.

    Every weight must lie in [0, 1] and the weights, cash included, must sum
    to 1 within WEIGHT_SUM_TOLERANCE. A missing CASH target counts as 0.

    Raises:
        ValueError: If any rule is violated
    """
    if not weights:
        raise ValueError("target_weights must not be empty")
    for symbol, weight in weights.items():
        if weight < 0 or weight > 1:
            raise ValueError(f"Target weight for {symbol} must be between 0 and 1, got {weight}")

    checked = dict(weights)
    checked.setdefault(CASH_KEY, Decimal(0))
    total_weight = sum(checked.values(), Decimal(0))
    if abs(total_weight - 1) > WEIGHT_SUM_TOLERANCE:
        raise ValueError(f"Target weights sum to {total_weight}, expected 1")
    return checked


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level"
    )
    format: Literal["text", "json"] = Field(
        default="text",
        description="Log line format"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional log file path, rotated daily and compressed"
    )
    backup_count: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Number of rotated log files to keep"
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class PricingConfig(BaseModel):
    """Market data provider settings."""

    request_timeout_seconds: float = Field(
        default=10.0,
        ge=0.1,
        le=120.0,
        description="Timeout for a single price fetch"
    )
    price_cache_ttl_seconds: int = Field(
        default=30,
        ge=0,
        le=3600,
        description="How long quote data is cached before refresh"
    )
    yahoo_base_url: str = Field(
        default="https://query1.finance.yahoo.com",
        description="Base URL for the equity quote provider"
    )
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Base URL for the crypto market data provider"
    )
    vs_currency: str = Field(
        default="usd",
        description="Quote currency requested from the crypto provider"
    )


class TradingConfig(BaseModel):
    """Paper trading numeric parameters."""

    quantity_precision: int = Field(
        default=8,
        ge=0,
        le=18,
        description="Decimal places kept on planned trade quantities"
    )
    value_tolerance: Decimal = Field(
        default=Decimal("1e-6"),
        gt=0,
        description="Allowed drift of total value across a rebalance cycle"
    )
    weight_tolerance: Decimal = Field(
        default=WEIGHT_SUM_TOLERANCE,
        gt=0,
        description="Allowed deviation of the weight sum from 1"
    )

    @field_validator("value_tolerance", "weight_tolerance", mode="before")
    @classmethod
    def convert_tolerance(cls, v):
        return to_decimal(v)

    @property
    def quantity_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.quantity_precision)


class _PositionConfigBase(BaseModel):
    symbol: str = Field(..., min_length=1)
    quantity: Decimal = Field(default=Decimal(0), ge=0)
    last_price: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Price at construction; fetched from the provider when omitted"
    )

    @field_validator("quantity", "last_price", mode="before")
    @classmethod
    def convert_decimal(cls, v):
        return v if v is None else to_decimal(v)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()


class EquityPositionConfig(_PositionConfigBase):
    asset_class: Literal["equity"] = "equity"
    name: Optional[str] = None

    @property
    def price_key(self) -> str:
        return self.symbol


class CryptoPositionConfig(_PositionConfigBase):
    asset_class: Literal["crypto"] = "crypto"
    coin_id: str = Field(..., min_length=1)

    @property
    def price_key(self) -> str:
        return self.coin_id


PositionConfig = Annotated[
    Union[EquityPositionConfig, CryptoPositionConfig],
    Field(discriminator="asset_class"),
]


class PortfolioConfig(BaseModel):
    """Validated portfolio definition, checked once before a Portfolio is built."""

    name: str = Field(default="default")
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=1)
    cash: Decimal = Field(default=Decimal(0), ge=0)
    positions: List[PositionConfig] = Field(default_factory=list)
    target_weights: Dict[str, Decimal] = Field(default_factory=dict)
    policy: RebalancePolicy = Field(default_factory=ThresholdPolicy)

    @field_validator("cash", mode="before")
    @classmethod
    def convert_cash(cls, v):
        return to_decimal(v)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("target_weights", mode="before")
    @classmethod
    def normalize_weights(cls, v):
        if not isinstance(v, dict):
            return v
        return normalize_target_weights(v)

    @model_validator(mode="after")
    def validate_portfolio(self) -> "PortfolioConfig":
        symbols = [p.symbol for p in self.positions]
        duplicates = sorted({s for s in symbols if symbols.count(s) > 1})
        if duplicates:
            raise ValueError(f"Duplicate position symbols: {', '.join(duplicates)}")
        if CASH_KEY in symbols:
            raise ValueError(f"'{CASH_KEY}' is reserved for the cash balance")

        self.target_weights = check_target_weights(self.target_weights)
        return self

    @property
    def held_symbols(self) -> List[str]:
        return [p.symbol for p in self.positions]


class AppConfig(BaseModel):
    """Root application configuration."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings"
    )
    pricing: PricingConfig = Field(
        default_factory=PricingConfig,
        description="Market data provider settings"
    )
    trading: TradingConfig = Field(
        default_factory=TradingConfig,
        description="Paper trading parameters"
    )
    portfolio: PortfolioConfig = Field(
        ...,
        description="Portfolio positions, targets and policy"
    )
