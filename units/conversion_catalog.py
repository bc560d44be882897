# units/conversion_catalog.py

"""
Conversion Catalog - a-priori conversions known before any path discovery.

Each entry reads: dest = src * multiplier + offset. Entries may use prefixed
symbols ('in' -> 'mm'); the converter stores them on unprefixed nodes.

Unit expansions (N -> kg*m*s-2) are NOT listed here; they live on the unit
definitions and are turned into graph edges by the converter.
"""

import logging
import threading
from math import pi
from typing import Optional, List, Dict, Iterable

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

import dimension_utils
from conversion_errors import InvalidConversionDefinitionError

logger = logging.getLogger(__name__)

# Temperature scale constants
CELSIUS_OFFSET = 273.15
FAHRENHEIT_OFFSET = 459.67
RANKINE_PER_KELVIN = 1.8


class ConversionDefinition(BaseModel):
    """Catalog entry: dest = src * multiplier + offset"""
    model_config = ConfigDict(frozen=True)

    src_unit: str
    dest_unit: str
    multiplier: float
    offset: float = 0.0

    @field_validator('multiplier')
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v == 0:
            raise ValueError("Multiplier must be non-zero")
        return v


def _conversions(*rows) -> List[ConversionDefinition]:
    return [
        ConversionDefinition(src_unit=row[0], dest_unit=row[1], multiplier=row[2], offset=row[3] if len(row) > 3 else 0.0)
        for row in rows
    ]


# ==================== DEFAULT CONVERSIONS ====================

DEFAULT_CONVERSIONS: Dict[str, List[ConversionDefinition]] = {
    "L": _conversions(
        ("yd", "m", 0.9144),
        ("ft", "m", 0.3048),
        ("in", "mm", 25.4),
        ("ft", "in", 12),
        ("yd", "ft", 3),
        ("mi", "yd", 1760),
        ("ftm", "yd", 2),
        ("nmi", "m", 1852),
        ("au", "m", 149597870700),
        ("ly", "m", 9460730472580800),
        ("pc", "au", 648000 / pi),
    ),
    "M": _conversions(
        ("lb", "kg", 0.45359237),
        ("lb", "oz", 16),
        ("st", "lb", 14),
        ("lb", "gr", 7000),
        ("ton", "lb", 2000),
        ("t", "kg", 1000),
    ),
    "T": _conversions(
        ("min", "s", 60),
        ("h", "min", 60),
        ("d", "h", 24),
        ("wk", "d", 7),
        ("y", "d", 365.25),
    ),
    "H": _conversions(
        ("degC", "K", 1, CELSIUS_OFFSET),
        ("K", "degR", RANKINE_PER_KELVIN),
        ("degF", "degR", 1, FAHRENHEIT_OFFSET),
    ),
    "A": _conversions(
        ("turn", "rad", 2 * pi),
        ("turn", "deg", 360),
        ("deg", "arcmin", 60),
        ("arcmin", "arcsec", 60),
    ),
    "D": _conversions(
        ("B", "b", 8),
    ),
    "MLT-2": _conversions(
        ("lbf", "N", 4.4482216152605),
    ),
    "ML2T-2": _conversions(
        ("cal", "J", 4.184),
        ("eV", "J", 1.602176634e-19),
        ("Btu", "J", 1055.05585262),
    ),
    "ML2T-3": _conversions(
        ("hp", "W", 745.69987158227022),
    ),
    "ML-1T-2": _conversions(
        ("bar", "Pa", 100000),
        ("atm", "Pa", 101325),
        ("mmHg", "Pa", 133.322387415),
    ),
    "L3": _conversions(
        ("gal", "qt", 4),
    ),
}


class ConversionCatalog:
    """Conversion definitions keyed by normalized dimension code"""

    def __init__(self, definitions: Optional[Dict[str, Iterable[ConversionDefinition]]] = None):
        self._lock = threading.Lock()
        self._definitions: Dict[str, List[ConversionDefinition]] = {}
        for dimension, rows in (DEFAULT_CONVERSIONS if definitions is None else definitions).items():
            self._definitions[dimension_utils.normalize(dimension)] = list(rows)

    def add(self, dimension: str, src_unit: str, dest_unit: str, multiplier: float, offset: float = 0.0) -> ConversionDefinition:
        """
        Register a conversion.

        Raises:
            InvalidDimensionError: If the dimension code is malformed
            InvalidConversionDefinitionError: If the multiplier is zero or values are not numbers
        """
        dimension = dimension_utils.normalize(dimension)
        try:
            definition = ConversionDefinition(src_unit=src_unit, dest_unit=dest_unit, multiplier=multiplier, offset=offset)
        except ValidationError as e:
            raise InvalidConversionDefinitionError(src_unit, dest_unit, e.errors()[0]["msg"])
        with self._lock:
            self._definitions.setdefault(dimension, []).append(definition)
        logger.debug(f"Catalog conversion added in '{dimension}': {dest_unit} = {src_unit} * {multiplier} + {offset}")
        return definition

    def get_by_dimension(self, dimension: str) -> List[ConversionDefinition]:
        return list(self._definitions.get(dimension_utils.normalize(dimension), []))

    @property
    def dimensions(self) -> List[str]:
        return sorted(self._definitions)
