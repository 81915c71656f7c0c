"""
Immutable monetary amount.

Every Amount is non-negative and held at exactly two fractional digits,
rounded half-to-even ("banker's rounding"): 1.005 -> 1.00, 1.015 -> 1.02,
2.675 -> 2.68, 2.665 -> 2.66. Decimal inputs are rounded as written; float
inputs go through ``str()`` first so 1.005 is treated as the literal 1.005
rather than its binary approximation.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Union

SCALE = Decimal("0.01")

Numeric = Union["Amount", Decimal, int, float, str]


class InvalidAmountError(ValueError):
    """Raised when an amount is missing, malformed or negative."""


class NegativeAmountError(InvalidAmountError):
    pass


class DivideByZeroError(ArithmeticError):
    pass


def _to_decimal(value: Numeric) -> Decimal:
    if value is None:
        raise InvalidAmountError("Amount must not be None")
    if isinstance(value, Amount):
        return value.value
    if isinstance(value, bool):
        raise InvalidAmountError(f"Not a monetary value: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Not a monetary value: {value!r}") from e
    if not result.is_finite():
        raise InvalidAmountError(f"Amount must be finite: {value!r}")
    return result


def _rescale(value: Decimal) -> Decimal:
    try:
        return value.quantize(SCALE, rounding=ROUND_HALF_EVEN)
    except InvalidOperation as e:
        # more integer digits than the decimal context can hold at scale 2
        raise InvalidAmountError(f"Amount is too large: {value}") from e


class Amount:
    """Non-negative money value with fixed two-digit scale."""

    __slots__ = ("_value",)

    def __init__(self, value: Numeric):
        scaled = _rescale(_to_decimal(value))
        if scaled < 0:
            raise NegativeAmountError(f"Amount cannot be negative: {value}")
        # -0.00 normalizes to 0.00
        object.__setattr__(self, "_value", scaled + Decimal("0.00"))

    @classmethod
    def create(cls, value: Numeric) -> "Amount":
        return cls(value)

    @classmethod
    def zero(cls) -> "Amount":
        return cls(0)

    def __setattr__(self, name, value):
        raise AttributeError("Amount is immutable")

    @property
    def value(self) -> Decimal:
        return self._value

    def add(self, other: Numeric) -> "Amount":
        return Amount(self._value + _to_decimal(other))

    def subtract(self, other: Numeric) -> "Amount":
        result = self._value - _to_decimal(other)
        if result < 0:
            raise NegativeAmountError(f"Subtracting {other} from {self} would go below zero")
        return Amount(result)

    def multiply(self, factor: Numeric) -> "Amount":
        return Amount(self._value * _to_decimal(factor))

    def divide(self, divisor: Numeric) -> "Amount":
        d = _to_decimal(divisor)
        if d == 0:
            raise DivideByZeroError("Division by zero")
        return Amount(self._value / d)

    def is_zero(self) -> bool:
        return self._value == 0

    def is_positive(self) -> bool:
        return self._value > 0

    def is_negative(self) -> bool:
        # Always False for a constructed Amount; kept as a pure predicate.
        return self._value < 0

    def to_minor_units(self) -> int:
        return int(self._value * 100)

    __add__ = add
    __sub__ = subtract

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Amount):
            return self._value == other._value
        return NotImplemented

    def __lt__(self, other: "Amount") -> bool:
        return self._value < _to_decimal(other)

    def __le__(self, other: "Amount") -> bool:
        return self._value <= _to_decimal(other)

    def __gt__(self, other: "Amount") -> bool:
        return self._value > _to_decimal(other)

    def __ge__(self, other: "Amount") -> bool:
        return self._value >= _to_decimal(other)

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return f"{self._value:f}"

    def __repr__(self) -> str:
        return f"Amount('{self}')"
