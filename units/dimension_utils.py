# units/dimension_utils.py

"""
Dimension codes.

A dimension code is a compact string such as 'MLT-2' (force) or 'L2' (area).
Letters come from a fixed ordered alphabet; each letter may carry a signed
integer exponent, and an omitted exponent means 1. The empty string is
dimensionless.

Canonical form: letters in alphabet order, exponent 1 omitted, zero
exponents dropped. Two codes describe the same dimension iff their
normalized forms are equal.
"""

import re
from typing import Dict

from conversion_errors import InvalidDimensionError

# ==================== ALPHABET ====================

DIMENSION_CODES: Dict[str, str] = {
    "M": "mass",
    "L": "length",
    "A": "angle",
    "D": "data",
    "C": "currency",
    "T": "time",
    "I": "electric current",
    "H": "temperature",
    "N": "amount of substance",
    "J": "luminous intensity",
}

DIMENSION_ORDER = "".join(DIMENSION_CODES)

# SI base unit for each letter, unprefixed ('g' rather than 'kg') because the
# conversion graph only stores unprefixed nodes
SI_BASE_UNITS: Dict[str, str] = {
    "M": "g",
    "L": "m",
    "A": "rad",
    "D": "B",
    "T": "s",
    "I": "A",
    "H": "K",
    "N": "mol",
    "J": "cd",
}

DIMENSIONLESS = ""

_CODE_PATTERN = re.compile(rf"^([{DIMENSION_ORDER}](-?\d+)?)*$")
_TERM_PATTERN = re.compile(rf"([{DIMENSION_ORDER}])(-?\d+)?")


def is_valid(code: str) -> bool:
    return isinstance(code, str) and _CODE_PATTERN.match(code) is not None


def explode(code: str) -> Dict[str, int]:
    """
    Split a dimension code into letter -> exponent.

    Repeated letters are summed ('LL' == 'L2'). Zero exponents are dropped.

    Raises:
        InvalidDimensionError: If the code is malformed
    """
    if not is_valid(code):
        raise InvalidDimensionError(code)
    exponents: Dict[str, int] = {}
    for letter, exponent in _TERM_PATTERN.findall(code):
        exponents[letter] = exponents.get(letter, 0) + (int(exponent) if exponent else 1)
    return {letter: exponents[letter] for letter in DIMENSION_ORDER if exponents.get(letter)}


def implode(exponents: Dict[str, int]) -> str:
    """Build the canonical code from letter -> exponent."""
    parts = []
    for letter in DIMENSION_ORDER:
        exponent = exponents.get(letter, 0)
        if exponent == 0:
            continue
        parts.append(letter if exponent == 1 else f"{letter}{exponent}")
    unknown = set(exponents) - set(DIMENSION_ORDER)
    if unknown:
        raise InvalidDimensionError("".join(sorted(unknown)))
    return "".join(parts)


def normalize(code: str) -> str:
    return implode(explode(code))


def apply_exponent(code: str, exponent: int) -> str:
    """Raise every letter of the code to the given power ('LT-1', 2 -> 'L2T-2')."""
    return implode({letter: value * exponent for letter, value in explode(code).items()})


def multiply(code_a: str, code_b: str) -> str:
    """Dimension of a product of quantities."""
    exponents = explode(code_a)
    for letter, value in explode(code_b).items():
        exponents[letter] = exponents.get(letter, 0) + value
    return implode(exponents)


def is_base_dimension(code: str) -> bool:
    """True for a single letter with exponent 1 ('L', not 'L2' or 'MLT-2')."""
    exponents = explode(code)
    return len(exponents) == 1 and next(iter(exponents.values())) == 1


def describe(code: str) -> str:
    """Readable form, e.g. 'mass * length * time^-2'."""
    exponents = explode(code)
    if not exponents:
        return "dimensionless"
    return " * ".join(
        DIMENSION_CODES[letter] if exponent == 1 else f"{DIMENSION_CODES[letter]}^{exponent}"
        for letter, exponent in exponents.items()
    )
