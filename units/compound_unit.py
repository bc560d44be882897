# units/compound_unit.py

"""
Unit terms and compound units.

A UnitTerm is one atomic unit with an optional prefix and a non-zero integer
exponent ('km2', 's-1'). A CompoundUnit is an ordered product of terms
('kg*m*s-2').

INVARIANTS:
1) At most one term per prefixed symbol; multiplying 'm' by 'm' gives 'm2'
2) Zero exponents are removed
3) Instances are immutable; every operation returns a new object

Accepted input syntax:
- Separators: '*', '·', '.' (multiply) and '/' (divide the next term)
- Exponents: 's-2', 's^-2' or superscripts 's⁻²'
- '' or '1' is the dimensionless unit
"""

import re
from typing import Optional, List, Dict, Tuple, Iterable, Union, Protocol, runtime_checkable

import dimension_utils
from conversion_errors import UnknownUnitError
from unit_catalog import Prefix, UnitCatalog, UnitDefinition

SUPERSCRIPTS = str.maketrans("0123456789-", "⁰¹²³⁴⁵⁶⁷⁸⁹⁻")
FROM_SUPERSCRIPTS = str.maketrans("⁰¹²³⁴⁵⁶⁷⁸⁹⁻", "0123456789-")

_SEPARATOR_PATTERN = re.compile(r"\s*([*·./])\s*")
_TERM_PATTERN = re.compile(r"^(?P<symbol>.+?)(?:\^?(?P<exponent>-?\d+)|(?P<superscript>⁻?[⁰¹²³⁴⁵⁶⁷⁸⁹]+))?$")


@runtime_checkable
class UnitInterface(Protocol):
    """What every unit representation exposes"""

    @property
    def ascii_symbol(self) -> str: ...

    @property
    def unicode_symbol(self) -> Optional[str]: ...

    @property
    def dimension(self) -> str: ...

    def format(self, unicode: bool = False) -> str: ...


# ==================== UNIT TERM ====================

class UnitTerm:
    """Prefixed, exponentiated atomic unit"""

    __slots__ = ("unit", "prefix", "exponent")

    def __init__(self, unit: UnitDefinition, prefix: Optional[Prefix] = None, exponent: int = 1):
        if exponent == 0:
            raise ValueError(f"Unit term '{unit.ascii_symbol}' cannot have a zero exponent")
        if prefix is not None and not unit.accepts_prefix(prefix):
            raise UnknownUnitError(prefix.ascii_symbol + unit.ascii_symbol)
        self.unit = unit
        self.prefix = prefix
        self.exponent = int(exponent)

    @classmethod
    def parse(cls, symbol: str, catalog: UnitCatalog) -> "UnitTerm":
        """
        Parse a single term such as 'km2' or 'μs⁻¹'.

        Raises:
            UnknownUnitError: If the symbol does not resolve in the catalog
        """
        match = _TERM_PATTERN.match(symbol.strip())
        if match is None:
            raise UnknownUnitError(symbol)
        exponent = 1
        if match.group("exponent") is not None:
            exponent = int(match.group("exponent"))
        elif match.group("superscript") is not None:
            exponent = int(match.group("superscript").translate(FROM_SUPERSCRIPTS))
        resolved = catalog.resolve(match.group("symbol"))
        if resolved is None:
            raise UnknownUnitError(symbol)
        prefix, unit = resolved
        return cls(unit, prefix, exponent)

    @property
    def key(self) -> str:
        """Prefixed symbol without exponent; terms with equal keys combine."""
        return (self.prefix.ascii_symbol if self.prefix else "") + self.unit.ascii_symbol

    @property
    def ascii_symbol(self) -> str:
        return self.key if self.exponent == 1 else f"{self.key}{self.exponent}"

    @property
    def unicode_symbol(self) -> str:
        symbol = ""
        if self.prefix is not None:
            symbol = self.prefix.unicode_symbol or self.prefix.ascii_symbol
        symbol += self.unit.unicode_symbol or self.unit.ascii_symbol
        if self.exponent != 1:
            symbol += str(self.exponent).translate(SUPERSCRIPTS)
        return symbol

    @property
    def dimension(self) -> str:
        return dimension_utils.apply_exponent(self.unit.dimension, self.exponent)

    @property
    def prefix_multiplier(self) -> float:
        return self.prefix.multiplier if self.prefix is not None else 1.0

    @property
    def multiplier(self) -> float:
        """Scale of this term relative to the same term without prefix."""
        return self.prefix_multiplier ** self.exponent

    def format(self, unicode: bool = False) -> str:
        return self.unicode_symbol if unicode else self.ascii_symbol

    def with_exponent(self, exponent: int) -> "UnitTerm":
        return UnitTerm(self.unit, self.prefix, exponent)

    def without_prefix(self) -> "UnitTerm":
        return UnitTerm(self.unit, None, self.exponent)

    def unexponentiated(self) -> "UnitTerm":
        return UnitTerm(self.unit, self.prefix, 1)

    def __eq__(self, other) -> bool:
        return isinstance(other, UnitTerm) and self.key == other.key and self.exponent == other.exponent

    def __hash__(self) -> int:
        return hash((self.key, self.exponent))

    def __repr__(self) -> str:
        return f"UnitTerm({self.ascii_symbol!r})"

    def __str__(self) -> str:
        return self.ascii_symbol


# ==================== COMPOUND UNIT ====================

class CompoundUnit:
    """Ordered product of unit terms"""

    __slots__ = ("_terms",)

    def __init__(self, terms: Iterable[UnitTerm] = ()):
        combined: Dict[str, UnitTerm] = {}
        for term in terms:
            existing = combined.get(term.key)
            if existing is None:
                combined[term.key] = term
                continue
            exponent = existing.exponent + term.exponent
            if exponent == 0:
                del combined[term.key]
            else:
                combined[term.key] = existing.with_exponent(exponent)
        self._terms = combined

    @classmethod
    def parse(cls, text: str, catalog: UnitCatalog) -> "CompoundUnit":
        """
        Parse 'kg*m/s2', 'kg·m·s⁻²', 'N*m' ...

        Raises:
            UnknownUnitError: If any term fails to resolve
        """
        text = text.strip()
        if text in ("", "1"):
            return cls()
        parts = _SEPARATOR_PATTERN.split(text)
        terms: List[UnitTerm] = []
        divide = False
        for index, part in enumerate(parts):
            if index % 2 == 1:
                divide = part == "/"
                continue
            if not part:
                raise UnknownUnitError(text)
            term = UnitTerm.parse(part, catalog)
            terms.append(term.with_exponent(-term.exponent) if divide else term)
        return cls(terms)

    @classmethod
    def of(cls, unit: Union[UnitInterface, str], catalog: UnitCatalog) -> "CompoundUnit":
        """
        Coerce any unit representation (or a symbol string) to a CompoundUnit.

        Objects from outside this module that satisfy UnitInterface are parsed
        from their ascii_symbol against the catalog.
        """
        if isinstance(unit, CompoundUnit):
            return unit
        if isinstance(unit, UnitTerm):
            return cls([unit])
        if isinstance(unit, UnitDefinition):
            return cls([UnitTerm(unit)])
        if isinstance(unit, str):
            return cls.parse(unit, catalog)
        if isinstance(unit, UnitInterface):
            return cls.parse(unit.ascii_symbol, catalog)
        raise TypeError(f"Cannot interpret {type(unit).__name__} as a unit")

    @property
    def terms(self) -> Tuple[UnitTerm, ...]:
        return tuple(self._terms.values())

    @property
    def ascii_symbol(self) -> str:
        return "*".join(t.ascii_symbol for t in self._terms.values())

    @property
    def unicode_symbol(self) -> str:
        return "·".join(t.unicode_symbol for t in self._terms.values())

    @property
    def dimension(self) -> str:
        dimension = dimension_utils.DIMENSIONLESS
        for term in self._terms.values():
            dimension = dimension_utils.multiply(dimension, term.dimension)
        return dimension

    @property
    def prefix_multiplier(self) -> float:
        multiplier = 1.0
        for term in self._terms.values():
            multiplier *= term.multiplier
        return multiplier

    @property
    def has_prefixes(self) -> bool:
        return any(t.prefix is not None for t in self._terms.values())

    @property
    def is_single_term(self) -> bool:
        return len(self._terms) == 1

    @property
    def is_atomic(self) -> bool:
        """One term, exponent 1."""
        return self.is_single_term and self.terms[0].exponent == 1

    def format(self, unicode: bool = False) -> str:
        return self.unicode_symbol if unicode else self.ascii_symbol

    def strip_prefixes(self) -> Tuple["CompoundUnit", float]:
        """
        Remove every prefix.

        Returns:
            (unprefixed unit, multiplier) such that
            1 <self> == multiplier <unprefixed unit>
        """
        return CompoundUnit(t.without_prefix() for t in self._terms.values()), self.prefix_multiplier

    def multiply(self, other: "CompoundUnit") -> "CompoundUnit":
        return CompoundUnit(self.terms + other.terms)

    def divide(self, other: "CompoundUnit") -> "CompoundUnit":
        return self.multiply(other.pow(-1))

    def pow(self, exponent: int) -> "CompoundUnit":
        if exponent == 0:
            return CompoundUnit()
        return CompoundUnit(t.with_exponent(t.exponent * exponent) for t in self._terms.values())

    def sorted_by_dimension(self) -> "CompoundUnit":
        """Terms ordered by the dimension alphabet of their units (kg*m*s-2 order)."""
        def order(term: UnitTerm) -> int:
            letters = term.unit.dimension
            return dimension_utils.DIMENSION_ORDER.index(letters[0]) if letters else len(dimension_utils.DIMENSION_ORDER)
        return CompoundUnit(sorted(self._terms.values(), key=order))

    def __eq__(self, other) -> bool:
        return isinstance(other, CompoundUnit) and self.ascii_symbol == other.ascii_symbol

    def __hash__(self) -> int:
        return hash(self.ascii_symbol)

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self):
        return iter(self.terms)

    def __repr__(self) -> str:
        return f"CompoundUnit({self.ascii_symbol!r})"

    def __str__(self) -> str:
        return self.ascii_symbol
