from decimal import Decimal
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .money import MoneyAmount, to_decimal

CASH_KEY = "CASH"


class AssetClass(str, Enum):
    """Closed set of holding variants"""
    EQUITY = "equity"
    CRYPTO = "crypto"


# Holdings
class Position(BaseModel):
    """Held quantity of a priced instrument"""
    symbol: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., ge=0, description="Quantity held, never negative")
    last_price: MoneyAmount

    model_config = {"validate_assignment": True}

    @field_validator("quantity", mode="before")
    @classmethod
    def convert_quantity(cls, v):
        return to_decimal(v)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def price_key(self) -> str:
        """Identifier handed to the price collaborator"""
        return self.symbol

    def current_price(self) -> MoneyAmount:
        return self.last_price

    def quantity_held(self) -> Decimal:
        return self.quantity

    def market_value(self) -> MoneyAmount:
        return self.last_price * self.quantity

class EquityPosition(Position):
    """Equity-like holding priced by the quote provider"""
    asset_class: Literal["equity"] = AssetClass.EQUITY.value
    name: Optional[str] = None

class CryptoPosition(Position):
    """Crypto holding priced by the market data provider"""
    asset_class: Literal["crypto"] = AssetClass.CRYPTO.value
    coin_id: str = Field(..., min_length=1, description="Market data identifier, e.g. 'ethereum'")

    @property
    def price_key(self) -> str:
        return self.coin_id

AnyPosition = Annotated[Union[EquityPosition, CryptoPosition], Field(discriminator="asset_class")]

# Rebalance policies
class ThresholdPolicy(BaseModel):
    """Rebalance when a position's value deviates by more than threshold"""
    kind: Literal["threshold"] = "threshold"
    threshold: Decimal = Field(default=Decimal("0.05"), ge=0, description="Minimum value deviation in portfolio currency")

    @field_validator("threshold", mode="before")
    @classmethod
    def convert_threshold(cls, v):
        return to_decimal(v)

    @property
    def threshold_value(self) -> Optional[Decimal]:
        return self.threshold

class FrequencyPolicy(BaseModel):
    """Rebalance on a fixed schedule (reserved for scheduling)"""
    kind: Literal["frequency"] = "frequency"
    interval_days: int = Field(default=30, ge=1)

    @property
    def threshold_value(self) -> Optional[Decimal]:
        return None

class ThresholdAndFrequencyPolicy(BaseModel):
    """Threshold check on a fixed schedule"""
    kind: Literal["threshold_and_frequency"] = "threshold_and_frequency"
    threshold: Decimal = Field(default=Decimal("0.05"), ge=0)
    interval_days: int = Field(default=30, ge=1)

    @field_validator("threshold", mode="before")
    @classmethod
    def convert_threshold(cls, v):
        return to_decimal(v)

    @property
    def threshold_value(self) -> Optional[Decimal]:
        return self.threshold

class NoRebalancePolicy(BaseModel):
    """No policy configured"""
    kind: Literal["none"] = "none"

    @property
    def threshold_value(self) -> Optional[Decimal]:
        return None

RebalancePolicy = Annotated[
    Union[ThresholdPolicy, FrequencyPolicy, ThresholdAndFrequencyPolicy, NoRebalancePolicy],
    Field(discriminator="kind"),
]

# Market data
class Quote(BaseModel):
    """Latest price returned by a price collaborator"""
    symbol: str
    price: float = Field(..., gt=0)
    currency: str

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    def to_money(self) -> MoneyAmount:
        return MoneyAmount.of(self.price, self.currency)

# Orders
class TradeOrder(BaseModel):
    """Paper order; positive quantity buys, negative quantity sells"""
    symbol: str
    quantity: Decimal
    price: Optional[MoneyAmount] = None
    current_quantity: Optional[Decimal] = None
    target_value: Optional[MoneyAmount] = None
    current_value: Optional[MoneyAmount] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def convert_quantity(cls, v):
        return to_decimal(v)

    @property
    def is_buy(self) -> bool:
        return self.quantity > 0

    @property
    def is_sell(self) -> bool:
        return self.quantity < 0

# Rebalancing result models
class RebalanceResult(BaseModel):
    """Result of a rebalance cycle"""
    orders: List[TradeOrder] = Field(default_factory=list)
    sweep_orders: List[TradeOrder] = Field(default_factory=list)
    total_value_before: Optional[MoneyAmount] = None
    total_value_after: Optional[MoneyAmount] = None
    cash_balance: Optional[MoneyAmount] = None
    weights: Dict[str, Decimal] = Field(default_factory=dict)
    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    symbol: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)

class CalculateRebalanceResult(BaseModel):
    """Result of rebalance calculation (preview)"""
    proposed_trades: List[TradeOrder]
    current_value: MoneyAmount
    weights: Dict[str, Decimal] = Field(default_factory=dict)
    success: bool
    warnings: List[str] = Field(default_factory=list)
