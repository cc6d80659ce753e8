"""Currency-tagged decimal amounts with currency-safe arithmetic"""

import math
from decimal import Decimal, InvalidOperation
from typing import Union

from pydantic import BaseModel, Field, field_validator

from .exceptions import CurrencyMismatchError, DivideByZeroError

Scalar = Union[int, float, Decimal]

DEFAULT_CURRENCY = "USD"


def to_decimal(value: Scalar) -> Decimal:
    """
    Convert a raw numeric value to Decimal.

    Floats go through str() so 0.1 becomes Decimal('0.1') instead of the
    binary expansion of the float.
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean {value!r} to Decimal")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot convert non-finite value {value!r} to Decimal")
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise ValueError(f"Cannot convert {value!r} to Decimal: {e}") from e
    if not result.is_finite():
        raise ValueError(f"Cannot convert non-finite value {value!r} to Decimal")
    return result


class MoneyAmount(BaseModel):
    """Immutable amount of money in a single currency"""

    amount: Decimal = Field(..., description="Decimal amount")
    currency: str = Field(default=DEFAULT_CURRENCY, min_length=1, description="Currency tag, e.g. USD")

    model_config = {"frozen": True}

    @field_validator("amount", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return to_decimal(v)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.strip().upper()

    @classmethod
    def of(cls, value: Scalar, currency: str = DEFAULT_CURRENCY) -> "MoneyAmount":
        """Create an amount from a raw numeric value"""
        return cls(amount=to_decimal(value), currency=currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "MoneyAmount":
        return cls(amount=Decimal(0), currency=currency)

    def _check_currency(self, other: "MoneyAmount", operation: str):
        if not isinstance(other, MoneyAmount):
            raise TypeError(f"Cannot {operation} MoneyAmount and {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatchError(
                f"Cannot {operation} {self.currency} and {other.currency} amounts"
            )

    def _with(self, amount: Decimal) -> "MoneyAmount":
        return MoneyAmount(amount=amount, currency=self.currency)

    # Amount-to-amount operations

    def add(self, other: "MoneyAmount") -> "MoneyAmount":
        self._check_currency(other, "add")
        return self._with(self.amount + other.amount)

    def subtract(self, other: "MoneyAmount") -> "MoneyAmount":
        self._check_currency(other, "subtract")
        return self._with(self.amount - other.amount)

    def multiply(self, other: "MoneyAmount") -> "MoneyAmount":
        self._check_currency(other, "multiply")
        return self._with(self.amount * other.amount)

    def divide(self, other: "MoneyAmount") -> "MoneyAmount":
        self._check_currency(other, "divide")
        if other.amount == 0:
            raise DivideByZeroError(f"Cannot divide {self} by a zero amount")
        return self._with(self.amount / other.amount)

    def ratio(self, other: "MoneyAmount") -> Decimal:
        """Dimensionless ratio self / other, used for weights"""
        return self.divide(other).amount

    # Scalar operations

    def scale(self, factor: Scalar) -> "MoneyAmount":
        return self._with(self.amount * to_decimal(factor))

    def split(self, divisor: Scalar) -> "MoneyAmount":
        divisor = to_decimal(divisor)
        if divisor == 0:
            raise DivideByZeroError(f"Cannot divide {self} by zero")
        return self._with(self.amount / divisor)

    def negate(self) -> "MoneyAmount":
        return self._with(-self.amount)

    def is_zero(self) -> bool:
        return self.amount == 0

    # Operators

    def __add__(self, other):
        if not isinstance(other, MoneyAmount):
            return NotImplemented
        return self.add(other)

    def __radd__(self, other):
        # Allows sum() over amounts with the default start of 0
        if isinstance(other, int) and other == 0:
            return self
        return NotImplemented

    def __sub__(self, other):
        if not isinstance(other, MoneyAmount):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, other):
        if isinstance(other, MoneyAmount):
            return self.multiply(other)
        if isinstance(other, (int, float, Decimal)) and not isinstance(other, bool):
            return self.scale(other)
        return NotImplemented

    def __rmul__(self, other):
        if isinstance(other, (int, float, Decimal)) and not isinstance(other, bool):
            return self.scale(other)
        return NotImplemented

    def __truediv__(self, other):
        if isinstance(other, MoneyAmount):
            return self.ratio(other)
        if isinstance(other, (int, float, Decimal)) and not isinstance(other, bool):
            return self.split(other)
        return NotImplemented

    def __neg__(self):
        return self.negate()

    def __abs__(self):
        return self._with(abs(self.amount))

    def __lt__(self, other):
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other):
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other):
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other):
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount:,.2f} {self.currency}"
