# units/unit_catalog.py

"""
Unit Catalog - prefixes and atomic unit definitions.

This module is responsible for:
- The metric and binary prefix tables
- Atomic unit definitions (symbol, dimension, accepted prefixes, expansion)
- Resolving a possibly prefixed symbol ('km', 'MiB', 'μs') to (prefix, unit)

This module MUST NOT:
- Know any conversion factor other than a unit's own expansion
- Parse compound units (see compound_unit.py)

Symbol resolution rules:
1) An exact unprefixed symbol always wins ('min' is minute, never milli-'in')
2) Otherwise the longest matching prefix is tried first ('dam' is deca-metre)
3) A prefix is only accepted if it is in the unit's prefix group
"""

import logging
import threading
from enum import Enum, IntFlag
from math import log10
from typing import Optional, List, Dict, Tuple, Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

import dimension_utils
from conversion_errors import DuplicateUnitError, UnknownUnitError

logger = logging.getLogger(__name__)

# ==================== ENUMS ====================

class PrefixGroup(IntFlag):
    """Sets of prefixes a unit accepts"""
    NONE = 0
    SMALL_METRIC = 1
    LARGE_METRIC = 2
    METRIC = 3
    BINARY = 4
    LARGE = 6
    ALL = 7


class UnitSystem(str, Enum):
    """Measurement systems a unit belongs to"""
    SI = "SI"
    SI_ACCEPTED = "SI_ACCEPTED"
    COMMON = "COMMON"
    IMPERIAL = "IMPERIAL"
    US_CUSTOMARY = "US_CUSTOMARY"
    CGS = "CGS"
    NAUTICAL = "NAUTICAL"
    ASTRONOMICAL = "ASTRONOMICAL"


# ==================== DATA MODELS ====================

class Prefix(BaseModel):
    """Unit prefix such as k (1000) or Ki (1024)"""
    model_config = ConfigDict(frozen=True)

    name: str
    ascii_symbol: str
    unicode_symbol: Optional[str] = None
    multiplier: float = Field(gt=0)
    group: PrefixGroup

    @property
    def symbols(self) -> List[str]:
        return [s for s in (self.ascii_symbol, self.unicode_symbol) if s]

    @property
    def is_engineering(self) -> bool:
        """Metric prefixes whose power of ten is a multiple of three."""
        if self.group == PrefixGroup.BINARY:
            return False
        exponent = round(log10(self.multiplier))
        return exponent % 3 == 0


class UnitDefinition(BaseModel):
    """
    Atomic unit.

    A unit with an expansion is defined in terms of other units:
    1 <ascii_symbol> == expansion_value <expansion_unit_symbol>
    e.g. N -> 1 kg*m*s-2, psi -> 1 lbf*in-2.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    ascii_symbol: str = Field(min_length=1)
    unicode_symbol: Optional[str] = None
    alternate_symbol: Optional[str] = None
    dimension: str
    prefix_group: PrefixGroup = PrefixGroup.NONE
    expansion_unit_symbol: Optional[str] = None
    expansion_value: float = 1.0
    systems: Tuple[UnitSystem, ...] = (UnitSystem.SI,)

    @field_validator('dimension')
    @classmethod
    def normalize_dimension(cls, v: str) -> str:
        return dimension_utils.normalize(v)

    @field_validator('expansion_value')
    @classmethod
    def validate_expansion_value(cls, v: float) -> float:
        if v == 0:
            raise ValueError("Expansion value must be non-zero")
        return v

    @property
    def symbols(self) -> List[str]:
        return [s for s in (self.ascii_symbol, self.unicode_symbol, self.alternate_symbol) if s]

    @property
    def has_expansion(self) -> bool:
        return self.expansion_unit_symbol is not None

    def accepts_prefix(self, prefix: "Prefix") -> bool:
        return bool(self.prefix_group & prefix.group)

    def format(self, unicode: bool = False) -> str:
        if unicode and self.unicode_symbol:
            return self.unicode_symbol
        return self.ascii_symbol

    @classmethod
    def parse(cls, symbol: str, catalog: "UnitCatalog") -> "UnitDefinition":
        """Look up an unprefixed symbol; prefixed symbols belong to UnitTerm.parse()."""
        definition = catalog.get(symbol)
        if definition is None:
            raise UnknownUnitError(symbol)
        return definition


# ==================== PREFIXES ====================

SMALL_METRIC_PREFIXES: List[Prefix] = [
    Prefix(name="quecto", ascii_symbol="q", multiplier=1e-30, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="ronto", ascii_symbol="r", multiplier=1e-27, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="yocto", ascii_symbol="y", multiplier=1e-24, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="zepto", ascii_symbol="z", multiplier=1e-21, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="atto", ascii_symbol="a", multiplier=1e-18, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="femto", ascii_symbol="f", multiplier=1e-15, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="pico", ascii_symbol="p", multiplier=1e-12, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="nano", ascii_symbol="n", multiplier=1e-9, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="micro", ascii_symbol="u", unicode_symbol="μ", multiplier=1e-6, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="milli", ascii_symbol="m", multiplier=1e-3, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="centi", ascii_symbol="c", multiplier=1e-2, group=PrefixGroup.SMALL_METRIC),
    Prefix(name="deci", ascii_symbol="d", multiplier=1e-1, group=PrefixGroup.SMALL_METRIC),
]

LARGE_METRIC_PREFIXES: List[Prefix] = [
    Prefix(name="deca", ascii_symbol="da", multiplier=1e1, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="hecto", ascii_symbol="h", multiplier=1e2, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="kilo", ascii_symbol="k", multiplier=1e3, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="mega", ascii_symbol="M", multiplier=1e6, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="giga", ascii_symbol="G", multiplier=1e9, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="tera", ascii_symbol="T", multiplier=1e12, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="peta", ascii_symbol="P", multiplier=1e15, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="exa", ascii_symbol="E", multiplier=1e18, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="zetta", ascii_symbol="Z", multiplier=1e21, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="yotta", ascii_symbol="Y", multiplier=1e24, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="ronna", ascii_symbol="R", multiplier=1e27, group=PrefixGroup.LARGE_METRIC),
    Prefix(name="quetta", ascii_symbol="Q", multiplier=1e30, group=PrefixGroup.LARGE_METRIC),
]

BINARY_PREFIXES: List[Prefix] = [
    Prefix(name="kibi", ascii_symbol="Ki", multiplier=2.0 ** 10, group=PrefixGroup.BINARY),
    Prefix(name="mebi", ascii_symbol="Mi", multiplier=2.0 ** 20, group=PrefixGroup.BINARY),
    Prefix(name="gibi", ascii_symbol="Gi", multiplier=2.0 ** 30, group=PrefixGroup.BINARY),
    Prefix(name="tebi", ascii_symbol="Ti", multiplier=2.0 ** 40, group=PrefixGroup.BINARY),
    Prefix(name="pebi", ascii_symbol="Pi", multiplier=2.0 ** 50, group=PrefixGroup.BINARY),
    Prefix(name="exbi", ascii_symbol="Ei", multiplier=2.0 ** 60, group=PrefixGroup.BINARY),
    Prefix(name="zebi", ascii_symbol="Zi", multiplier=2.0 ** 70, group=PrefixGroup.BINARY),
    Prefix(name="yobi", ascii_symbol="Yi", multiplier=2.0 ** 80, group=PrefixGroup.BINARY),
]

DEFAULT_PREFIXES: List[Prefix] = SMALL_METRIC_PREFIXES + LARGE_METRIC_PREFIXES + BINARY_PREFIXES

# Micro sign (U+00B5) is commonly typed in place of Greek mu (U+03BC)
PREFIX_ALIASES: Dict[str, str] = {
    "µ": "u",
}


# ==================== DEFAULT UNITS ====================

_SI = (UnitSystem.SI,)
_SI_ACCEPTED = (UnitSystem.SI_ACCEPTED,)
_IMPERIAL_US = (UnitSystem.IMPERIAL, UnitSystem.US_CUSTOMARY)
_US = (UnitSystem.US_CUSTOMARY,)

LENGTH_UNITS: List[UnitDefinition] = [
    UnitDefinition(name="metre", ascii_symbol="m", dimension="L", prefix_group=PrefixGroup.METRIC),
    UnitDefinition(name="inch", ascii_symbol="in", dimension="L", systems=_IMPERIAL_US),
    UnitDefinition(name="foot", ascii_symbol="ft", dimension="L", systems=_IMPERIAL_US),
    UnitDefinition(name="yard", ascii_symbol="yd", dimension="L", systems=_IMPERIAL_US),
    UnitDefinition(name="mile", ascii_symbol="mi", dimension="L", systems=_IMPERIAL_US),
    UnitDefinition(name="fathom", ascii_symbol="ftm", dimension="L", systems=(UnitSystem.NAUTICAL,)),
    UnitDefinition(name="nautical mile", ascii_symbol="nmi", dimension="L", systems=(UnitSystem.NAUTICAL,)),
    UnitDefinition(name="astronomical unit", ascii_symbol="au", dimension="L", systems=(UnitSystem.ASTRONOMICAL,)),
    UnitDefinition(name="light year", ascii_symbol="ly", dimension="L", prefix_group=PrefixGroup.LARGE_METRIC, systems=(UnitSystem.ASTRONOMICAL,)),
    UnitDefinition(name="parsec", ascii_symbol="pc", dimension="L", prefix_group=PrefixGroup.LARGE_METRIC, systems=(UnitSystem.ASTRONOMICAL,)),
]

MASS_UNITS: List[UnitDefinition] = [
    UnitDefinition(name="gram", ascii_symbol="g", dimension="M", prefix_group=PrefixGroup.METRIC),
    UnitDefinition(name="tonne", ascii_symbol="t", dimension="M", prefix_group=PrefixGroup.LARGE_METRIC, systems=_SI_ACCEPTED),
    UnitDefinition(name="pound", ascii_symbol="lb", dimension="M", systems=_IMPERIAL_US),
    UnitDefinition(name="ounce", ascii_symbol="oz", dimension="M", systems=_IMPERIAL_US),
    UnitDefinition(name="stone", ascii_symbol="st", dimension="M", systems=(UnitSystem.IMPERIAL,)),
    UnitDefinition(name="grain", ascii_symbol="gr", dimension="M", systems=_IMPERIAL_US),
    UnitDefinition(name="short ton", ascii_symbol="ton", dimension="M", systems=_US),
]

TIME_UNITS: List[UnitDefinition] = [
    UnitDefinition(name="second", ascii_symbol="s", dimension="T", prefix_group=PrefixGroup.METRIC),
    UnitDefinition(name="minute", ascii_symbol="min", dimension="T", systems=_SI_ACCEPTED),
    UnitDefinition(name="hour", ascii_symbol="h", dimension="T", systems=_SI_ACCEPTED),
    UnitDefinition(name="day", ascii_symbol="d", dimension="T", systems=_SI_ACCEPTED),
    UnitDefinition(name="week", ascii_symbol="wk", dimension="T", systems=(UnitSystem.COMMON,)),
    UnitDefinition(name="julian year", ascii_symbol="y", alternate_symbol="yr", dimension="T", systems=(UnitSystem.ASTRONOMICAL,)),
]

TEMPERATURE_UNITS: List[UnitDefinition] = [
    UnitDefinition(name="kelvin", ascii_symbol="K", dimension="H", prefix_group=PrefixGroup.METRIC),
    UnitDefinition(name="degree Celsius", ascii_symbol="degC", unicode_symbol="°C", dimension="H", systems=(UnitSystem.SI, UnitSystem.COMMON)),
    UnitDefinition(name="degree Fahrenheit", ascii_symbol="degF", unicode_symbol="°F", dimension="H", systems=_US),
    UnitDefinition(name="degree Rankine", ascii_symbol="degR", unicode_symbol="°R", dimension="H", systems=_US),
]

OTHER_BASE_UNITS: List[UnitDefinition] = [
    UnitDefinition(name="ampere", ascii_symbol="A", dimension="I", prefix_group=PrefixGroup.METRIC),
    UnitDefinition(name="mole", ascii_symbol="mol", dimension="N", prefix_group=PrefixGroup.METRIC),
    UnitDefinition(name="candela", ascii_symbol="cd", dimension="J", prefix_group=PrefixGroup.METRIC),
]

ANGLE_UNITS: List[UnitDefinition] = [
    UnitDefinition(name="radian", ascii_symbol="rad", dimension="A", prefix_group=PrefixGroup.SMALL_METRIC),
    UnitDefinition(name="degree", ascii_symbol="deg", unicode_symbol="°", dimension="A", systems=_SI_ACCEPTED),
    UnitDefinition(name="arcminute", ascii_symbol="arcmin", unicode_symbol="′", dimension="A", systems=_SI_ACCEPTED),
    UnitDefinition(name="arcsecond", ascii_symbol="arcsec", unicode_symbol="″", dimension="A", prefix_group=PrefixGroup.SMALL_METRIC, systems=_SI_ACCEPTED),
    UnitDefinition(name="turn", ascii_symbol="turn", dimension="A", systems=(UnitSystem.COMMON,)),
]

DATA_UNITS: List[UnitDefinition] = [
    UnitDefinition(name="byte", ascii_symbol="B", dimension="D", prefix_group=PrefixGroup.LARGE, systems=(UnitSystem.COMMON,)),
    UnitDefinition(name="bit", ascii_symbol="b", dimension="D", prefix_group=PrefixGroup.LARGE, systems=(UnitSystem.COMMON,)),
]

DERIVED_UNITS: List[UnitDefinition] = [
    # Force
    UnitDefinition(name="newton", ascii_symbol="N", dimension="MLT-2", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="kg*m*s-2"),
    UnitDefinition(name="pound force", ascii_symbol="lbf", dimension="MLT-2", expansion_unit_symbol="ft*lb*s-2", expansion_value=9.80665 / 0.3048, systems=_IMPERIAL_US),
    UnitDefinition(name="dyne", ascii_symbol="dyn", dimension="MLT-2", expansion_unit_symbol="g*cm*s-2", systems=(UnitSystem.CGS,)),
    # Energy
    UnitDefinition(name="joule", ascii_symbol="J", dimension="ML2T-2", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="N*m"),
    UnitDefinition(name="calorie", ascii_symbol="cal", dimension="ML2T-2", prefix_group=PrefixGroup.METRIC, systems=(UnitSystem.COMMON,)),
    UnitDefinition(name="electronvolt", ascii_symbol="eV", dimension="ML2T-2", prefix_group=PrefixGroup.METRIC, systems=_SI_ACCEPTED),
    UnitDefinition(name="watt hour", ascii_symbol="Wh", dimension="ML2T-2", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="W*h", systems=(UnitSystem.COMMON,)),
    UnitDefinition(name="british thermal unit", ascii_symbol="Btu", dimension="ML2T-2", systems=_IMPERIAL_US),
    # Power
    UnitDefinition(name="watt", ascii_symbol="W", dimension="ML2T-3", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="J*s-1"),
    UnitDefinition(name="horsepower", ascii_symbol="hp", dimension="ML2T-3", systems=_IMPERIAL_US),
    # Pressure
    UnitDefinition(name="pascal", ascii_symbol="Pa", dimension="ML-1T-2", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="N*m-2"),
    UnitDefinition(name="bar", ascii_symbol="bar", dimension="ML-1T-2", prefix_group=PrefixGroup.METRIC, systems=(UnitSystem.COMMON,)),
    UnitDefinition(name="atmosphere", ascii_symbol="atm", dimension="ML-1T-2", systems=(UnitSystem.COMMON,)),
    UnitDefinition(name="pound per square inch", ascii_symbol="psi", dimension="ML-1T-2", expansion_unit_symbol="lbf*in-2", systems=_IMPERIAL_US),
    UnitDefinition(name="millimetre of mercury", ascii_symbol="mmHg", dimension="ML-1T-2", systems=(UnitSystem.COMMON,)),
    # Electromagnetic
    UnitDefinition(name="hertz", ascii_symbol="Hz", dimension="T-1", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="s-1"),
    UnitDefinition(name="coulomb", ascii_symbol="C", dimension="TI", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="A*s"),
    UnitDefinition(name="volt", ascii_symbol="V", dimension="ML2T-3I-1", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="W*A-1"),
    UnitDefinition(name="ohm", ascii_symbol="ohm", unicode_symbol="Ω", dimension="ML2T-3I-2", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="V*A-1"),
    # Area
    UnitDefinition(name="hectare", ascii_symbol="ha", dimension="L2", expansion_unit_symbol="hm2", systems=_SI_ACCEPTED),
    UnitDefinition(name="acre", ascii_symbol="ac", dimension="L2", expansion_unit_symbol="ft2", expansion_value=43560, systems=_IMPERIAL_US),
    # Volume
    UnitDefinition(name="litre", ascii_symbol="L", alternate_symbol="l", dimension="L3", prefix_group=PrefixGroup.METRIC, expansion_unit_symbol="dm3", systems=_SI_ACCEPTED),
    UnitDefinition(name="US gallon", ascii_symbol="gal", dimension="L3", expansion_unit_symbol="in3", expansion_value=231, systems=_US),
    UnitDefinition(name="US quart", ascii_symbol="qt", dimension="L3", systems=_US),
    # Velocity
    UnitDefinition(name="knot", ascii_symbol="kn", dimension="LT-1", expansion_unit_symbol="nmi*h-1", systems=(UnitSystem.NAUTICAL,)),
    UnitDefinition(name="mile per hour", ascii_symbol="mph", dimension="LT-1", expansion_unit_symbol="mi*h-1", systems=_IMPERIAL_US),
]

DEFAULT_UNITS: List[UnitDefinition] = (
    LENGTH_UNITS + MASS_UNITS + TIME_UNITS + TEMPERATURE_UNITS + OTHER_BASE_UNITS
    + ANGLE_UNITS + DATA_UNITS + DERIVED_UNITS
)


# ==================== CATALOG ====================

class UnitCatalog:
    """
    Registry of prefixes and atomic units.

    Lookups are read-mostly; add()/remove() take a lock and invalidate the
    resolution cache.
    """

    def __init__(self, definitions: Optional[Iterable[UnitDefinition]] = None, prefixes: Optional[Iterable[Prefix]] = None):
        self._lock = threading.RLock()
        self._units: Dict[str, UnitDefinition] = {}
        self._symbol_index: Dict[str, UnitDefinition] = {}
        self._prefixes: List[Prefix] = list(DEFAULT_PREFIXES if prefixes is None else prefixes)
        self._prefix_index: Dict[str, Prefix] = {}
        self._resolve_cache: Dict[str, Optional[Tuple[Optional[Prefix], UnitDefinition]]] = {}

        for prefix in self._prefixes:
            for symbol in prefix.symbols:
                self._prefix_index[symbol] = prefix
        for alias, target in PREFIX_ALIASES.items():
            if target in self._prefix_index:
                self._prefix_index[alias] = self._prefix_index[target]
        # Longest first so 'da' is tried before 'd' and 'Ki' before 'K'
        self._prefix_symbols = sorted(self._prefix_index, key=len, reverse=True)

        for definition in (DEFAULT_UNITS if definitions is None else definitions):
            self.add(definition)

    # ==================== REGISTRATION ====================

    def add(self, definition: UnitDefinition) -> None:
        """
        Register a unit.

        Raises:
            DuplicateUnitError: If any of its symbols is already taken
        """
        with self._lock:
            for symbol in definition.symbols:
                existing = self._symbol_index.get(symbol)
                if existing is not None:
                    raise DuplicateUnitError(symbol, [existing.name])
            self._units[definition.ascii_symbol] = definition
            for symbol in definition.symbols:
                self._symbol_index[symbol] = definition
            self._resolve_cache = {}
        logger.debug(f"Registered unit {definition.ascii_symbol} ({definition.name}) in dimension '{definition.dimension}'")

    def remove(self, symbol: str) -> Optional[UnitDefinition]:
        with self._lock:
            definition = self._symbol_index.get(symbol)
            if definition is None:
                return None
            del self._units[definition.ascii_symbol]
            for s in definition.symbols:
                self._symbol_index.pop(s, None)
            self._resolve_cache = {}
            return definition

    # ==================== LOOKUP ====================

    def get(self, symbol: str) -> Optional[UnitDefinition]:
        """Unprefixed lookup by ASCII, Unicode or alternate symbol."""
        return self._symbol_index.get(symbol)

    def get_prefix(self, symbol: str) -> Optional[Prefix]:
        return self._prefix_index.get(symbol)

    def resolve(self, symbol: str) -> Optional[Tuple[Optional[Prefix], UnitDefinition]]:
        """
        Split a possibly prefixed symbol into (prefix, unit).

        Returns:
            (None, unit) for unprefixed symbols, (prefix, unit) for prefixed
            ones, None if the symbol cannot be read with the accepted prefixes.
        """
        cache = self._resolve_cache
        if symbol in cache:
            return cache[symbol]

        result: Optional[Tuple[Optional[Prefix], UnitDefinition]] = None
        definition = self._symbol_index.get(symbol)
        if definition is not None:
            result = (None, definition)
        else:
            for prefix_symbol in self._prefix_symbols:
                if len(symbol) <= len(prefix_symbol) or not symbol.startswith(prefix_symbol):
                    continue
                definition = self._symbol_index.get(symbol[len(prefix_symbol):])
                prefix = self._prefix_index[prefix_symbol]
                if definition is not None and definition.accepts_prefix(prefix):
                    result = (prefix, definition)
                    break

        cache[symbol] = result
        return result

    def get_by_dimension(self, dimension: str) -> List[UnitDefinition]:
        dimension = dimension_utils.normalize(dimension)
        return [u for u in self._units.values() if u.dimension == dimension]

    def get_expandable(self) -> List[UnitDefinition]:
        return [u for u in self._units.values() if u.has_expansion]

    def prefixes_for(self, definition: UnitDefinition, engineering_only: bool = False) -> List[Prefix]:
        prefixes = [p for p in self._prefixes if definition.accepts_prefix(p)]
        if engineering_only:
            prefixes = [p for p in prefixes if p.is_engineering]
        return prefixes

    @property
    def prefixes(self) -> List[Prefix]:
        return list(self._prefixes)

    @property
    def dimensions(self) -> List[str]:
        return sorted({u.dimension for u in self._units.values()})

    def __iter__(self) -> Iterator[UnitDefinition]:
        return iter(list(self._units.values()))

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, symbol: str) -> bool:
        return self.resolve(symbol) is not None
