"""Kubernetes resource quantities such as ``500m`` or ``128Mi``."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum
from fractions import Fraction
from functools import total_ordering


class Format(Enum):
    """How a quantity is written."""

    DECIMAL_SI = "DecimalSI"
    BINARY_SI = "BinarySI"
    DECIMAL_EXPONENT = "DecimalExponent"


class Scale(IntEnum):
    """Powers of ten for decimal suffixes."""

    NANO = -9
    MICRO = -6
    MILLI = -3
    ONE = 0
    KILO = 3
    MEGA = 6
    GIGA = 9
    TERA = 12
    PETA = 15
    EXA = 18


_BINARY_SUFFIXES = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_DECIMAL_SUFFIXES = {
    "n": -9, "u": -6, "m": -3, "": 0, "k": 3, "M": 6, "G": 9, "T": 12, "P": 15, "E": 18,
}
_SUFFIX_FOR_EXPONENT = {exponent: suffix for suffix, exponent in _DECIMAL_SUFFIXES.items()}

_QUANTITY_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+))([a-zA-Z]*(?:[+-]?\d+)?)$")
_EXPONENT_RE = re.compile(r"^[eE]([+-]?\d+)$")
_NANO = Fraction(1, 10**9)


def _round_to_nano(amount: Fraction) -> Fraction:
    """Round away from zero to the nearest nano unit."""
    scaled = abs(amount) / _NANO
    if scaled.denominator == 1:
        return amount
    rounded = math.ceil(scaled) * _NANO
    return rounded if amount > 0 else -rounded


@total_ordering
@dataclass(frozen=True, eq=False)
class Quantity:
    """An exact amount together with the format it prefers to be written in."""

    amount: Fraction
    format: Format = Format.DECIMAL_SI

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _round_to_nano(Fraction(self.amount)))

    @classmethod
    def parse(cls, text: str) -> Quantity:
        """Parse a quantity string; raise ValueError when it is malformed."""
        match = _QUANTITY_RE.match(text.strip()) if isinstance(text, str) else None
        if match is None:
            raise ValueError(f"quantity {text!r} is not a valid resource quantity")
        number, suffix = match.groups()
        try:
            base = Fraction(Decimal(number))
        except InvalidOperation as exc:
            raise ValueError(f"quantity {text!r} has an invalid number") from exc
        if suffix in _BINARY_SUFFIXES:
            return cls(base * (1 << _BINARY_SUFFIXES[suffix]), Format.BINARY_SI)
        if suffix in _DECIMAL_SUFFIXES:
            return cls(base * Fraction(10) ** _DECIMAL_SUFFIXES[suffix], Format.DECIMAL_SI)
        exponent = _EXPONENT_RE.match(suffix)
        if exponent is not None:
            return cls(base * Fraction(10) ** int(exponent.group(1)), Format.DECIMAL_EXPONENT)
        raise ValueError(f"quantity {text!r} has an unknown suffix {suffix!r}")

    @classmethod
    def scaled(cls, value: int, scale: int, format: Format = Format.DECIMAL_SI) -> Quantity:
        """Quantity of ``value * 10**scale``."""
        return cls(Fraction(value) * Fraction(10) ** int(scale), format)

    @property
    def value(self) -> int:
        """Amount rounded up to a whole number."""
        return math.ceil(self.amount)

    @property
    def milli_value(self) -> int:
        """Amount in thousandths, rounded up."""
        return math.ceil(self.amount * 1000)

    def __add__(self, other: Quantity) -> Quantity:
        if not isinstance(other, Quantity):
            return NotImplemented
        fmt = other.format if self.amount == 0 else self.format
        return Quantity(self.amount + other.amount, fmt)

    def __radd__(self, other: object) -> Quantity:
        if isinstance(other, int) and not isinstance(other, bool) and other == 0:
            return self
        return NotImplemented

    def __sub__(self, other: Quantity) -> Quantity:
        if not isinstance(other, Quantity):
            return NotImplemented
        fmt = other.format if self.amount == 0 else self.format
        return Quantity(self.amount - other.amount, fmt)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.amount == other.amount

    def __lt__(self, other: Quantity) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        return self.amount < other.amount

    def __hash__(self) -> int:
        return hash(self.amount)

    def __str__(self) -> str:
        amount = self.amount
        if amount == 0:
            return "0"
        sign = "-" if amount < 0 else ""
        magnitude = abs(amount)
        fmt = self.format
        if fmt is Format.BINARY_SI:
            if magnitude < 1024 or magnitude.denominator != 1:
                fmt = Format.DECIMAL_SI
            else:
                whole = magnitude.numerator
                for suffix, shift in reversed(_BINARY_SUFFIXES.items()):
                    if whole % (1 << shift) == 0:
                        return f"{sign}{whole >> shift}{suffix}"
                return f"{sign}{whole}"
        exponent, mantissa = self._decimal_parts(magnitude)
        if fmt is Format.DECIMAL_EXPONENT:
            suffix = f"e{exponent}" if exponent else ""
        else:
            suffix = _SUFFIX_FOR_EXPONENT[exponent]
        return f"{sign}{mantissa}{suffix}"

    @staticmethod
    def _decimal_parts(magnitude: Fraction) -> tuple[int, int]:
        for exponent in range(Scale.EXA, Scale.NANO - 1, -3):
            mantissa = magnitude / Fraction(10) ** exponent
            if mantissa.denominator == 1:
                return exponent, mantissa.numerator
        raise ArithmeticError(f"amount {magnitude} is finer than nano units")