# units/tracked_float.py

"""
Tracked Float - a float that carries its own absolute error.

Every arithmetic operation returns a NEW TrackedFloat whose error bounds the
accumulated uncertainty of the operands plus the rounding of the operation
itself. The converter uses these errors to rank competing conversion paths.

INVARIANTS:
1) absolute_error >= 0
2) relative_error = 0 when value and error are both 0, +inf when only the value is 0
3) Instances are immutable
"""

import math
from typing import Union

from conversion_errors import DivisionByZeroError

# Largest magnitude below which every integer is exactly representable
MAX_EXACT_INTEGER = 2.0 ** 53

Number = Union[int, float]


def half_ulp(value: float) -> float:
    """Half the spacing between value and the next representable float."""
    return math.ulp(value) / 2


def is_exact_integer(value: float) -> bool:
    return math.isfinite(value) and float(value).is_integer() and abs(value) <= MAX_EXACT_INTEGER


def estimate_error(value: float) -> float:
    """
    Default absolute error of a freshly entered number.

    Exact integers carry no error; anything else is assumed to be the nearest
    float to the intended decimal, so it is off by at most half an ULP.
    """
    if is_exact_integer(value):
        return 0.0
    return half_ulp(value)


class TrackedFloat:
    """Value with absolute error bound"""

    __slots__ = ("_value", "_absolute_error")

    def __init__(self, value: Number, absolute_error: Union[Number, None] = None):
        value = float(value)
        if absolute_error is None:
            absolute_error = estimate_error(value)
        absolute_error = float(absolute_error)
        if absolute_error < 0 or math.isnan(absolute_error):
            raise ValueError(f"Absolute error must be non-negative. Received: {absolute_error}")
        self._value = value
        self._absolute_error = absolute_error

    @classmethod
    def of(cls, value: Union["TrackedFloat", Number]) -> "TrackedFloat":
        """Coerce plain numbers; TrackedFloat instances pass through unchanged."""
        if isinstance(value, TrackedFloat):
            return value
        return cls(value)

    @property
    def value(self) -> float:
        return self._value

    @property
    def absolute_error(self) -> float:
        return self._absolute_error

    @property
    def relative_error(self) -> float:
        if self._value == 0:
            return 0.0 if self._absolute_error == 0 else math.inf
        return abs(self._absolute_error / self._value)

    # ==================== ARITHMETIC ====================

    def add(self, other: Union["TrackedFloat", Number]) -> "TrackedFloat":
        other = TrackedFloat.of(other)
        value = self._value + other._value
        error = self._absolute_error + other._absolute_error
        if error > 0:
            error += half_ulp(value)
        return TrackedFloat(value, error)

    def sub(self, other: Union["TrackedFloat", Number]) -> "TrackedFloat":
        return self.add(TrackedFloat.of(other).neg())

    def neg(self) -> "TrackedFloat":
        return TrackedFloat(-self._value, self._absolute_error)

    def mul(self, other: Union["TrackedFloat", Number]) -> "TrackedFloat":
        """
        Multiply; relative errors add.

        |a*b| * (ea/|a| + eb/|b|) is written as |a|*eb + |b|*ea so a zero
        operand with non-zero error still yields a finite error.
        """
        other = TrackedFloat.of(other)
        value = self._value * other._value
        error = abs(self._value) * other._absolute_error + abs(other._value) * self._absolute_error
        if error > 0:
            error += half_ulp(value)
        return TrackedFloat(value, error)

    def div(self, other: Union["TrackedFloat", Number]) -> "TrackedFloat":
        """
        Divide; relative errors add.

        Raises:
            DivisionByZeroError: If the divisor is zero
        """
        other = TrackedFloat.of(other)
        if other._value == 0:
            raise DivisionByZeroError("divide by a zero tracked float")
        value = self._value / other._value
        divisor = abs(other._value)
        error = (self._absolute_error + abs(value) * other._absolute_error) / divisor
        # Division rounds unless the quotient is exactly representable as an integer
        if error > 0 or not is_exact_integer(value):
            error += half_ulp(value)
        return TrackedFloat(value, error)

    def inv(self) -> "TrackedFloat":
        if self._value == 0:
            raise DivisionByZeroError("invert a zero tracked float")
        return TrackedFloat(1, 0).div(self)

    def pow(self, exponent: Number) -> "TrackedFloat":
        """
        Raise to a power; the relative error scales by |exponent|.

        Args:
            exponent: Integer or float exponent

        Returns:
            TrackedFloat (exactly 1 with zero error when exponent is 0)

        Raises:
            DivisionByZeroError: Zero base with a negative exponent
            ValueError: Negative base with a non-integer exponent
        """
        if exponent == 0:
            return TrackedFloat(1, 0)
        if self._value == 0:
            if exponent < 0:
                raise DivisionByZeroError(f"raise zero to the negative power {exponent}")
            # |x| <= err, so |x**n| <= err**n
            return TrackedFloat(0, self._absolute_error ** exponent)
        if self._value < 0 and not float(exponent).is_integer():
            raise ValueError(f"Cannot raise negative value {self._value} to non-integer power {exponent}")
        value = self._value ** exponent
        error = abs(value) * self.relative_error * abs(exponent)
        if error > 0 or not is_exact_integer(value):
            error += half_ulp(value)
        return TrackedFloat(value, error)

    # ==================== PRESENTATION ====================

    def significant_digits(self) -> int:
        """
        Number of decimal digits of the value that the error leaves intact.

        An exact value reports the 17 digits a double can carry.
        """
        if self._absolute_error == 0:
            return 17
        if self._value == 0:
            return 0
        digits = math.floor(math.log10(abs(self._value))) - math.floor(math.log10(self._absolute_error))
        return max(0, min(17, digits))

    def __repr__(self) -> str:
        return f"TrackedFloat({self._value!r}, {self._absolute_error!r})"

    def __str__(self) -> str:
        return f"{self._value:.15g} ± {self._absolute_error:.3g} ({self.significant_digits()} sig. digits)"

    def __float__(self) -> float:
        return self._value

    # Operators delegate to the named methods
    def __add__(self, other):
        return self.add(other)

    def __radd__(self, other):
        return TrackedFloat.of(other).add(self)

    def __sub__(self, other):
        return self.sub(other)

    def __rsub__(self, other):
        return TrackedFloat.of(other).sub(self)

    def __mul__(self, other):
        return self.mul(other)

    def __rmul__(self, other):
        return TrackedFloat.of(other).mul(self)

    def __truediv__(self, other):
        return self.div(other)

    def __rtruediv__(self, other):
        return TrackedFloat.of(other).div(self)

    def __neg__(self):
        return self.neg()

    def __pow__(self, exponent):
        return self.pow(exponent)
