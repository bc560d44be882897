# units/conversion_errors.py

"""
Conversion Errors

Every failure raised by the conversion core derives from ConversionError and
carries a stable error_code, a human readable message, the offending field
and a severity. Callers that serialize errors (APIs, audit logs) use to_dict().

"Not found" is NOT an error: UnitConverter.get_conversion() and
get_conversion_factor() return None when no path exists. Only convert()
turns a missing path into NoPathFoundError.
"""

from typing import Optional, List, Dict, Any


# ==================== ERROR CLASSES ====================

class ConversionError(Exception):
    """Base conversion error"""
    def __init__(self, error_code: str, message: str, field: Optional[str] = None, severity: str = "HARD_ERROR"):
        self.error_code = error_code
        self.message = message
        self.field = field
        self.severity = severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.message,
            "field": self.field,
            "severity": self.severity
        }


class InvalidDimensionError(ConversionError):
    """Dimension code is malformed"""
    def __init__(self, dimension: str):
        super().__init__(
            "INVALID_DIMENSION",
            f"Dimension code '{dimension}' is invalid. Expected letters from MLADCTIHNJ, each optionally followed by an integer exponent.",
            field="dimension",
            severity="HARD_ERROR"
        )
        self.dimension = dimension


class InvalidUnitError(ConversionError):
    """Unit does not belong to the requested dimension"""
    def __init__(self, unit: str, dimension: str, unit_dimension: Optional[str] = None, error_code: str = "INVALID_UNIT", message: Optional[str] = None):
        if message is None:
            message = f"Unit '{unit}' does not belong to dimension '{dimension}'"
            if unit_dimension is not None:
                message += f" (its dimension is '{unit_dimension}')"
            message += "."
        super().__init__(error_code, message, field="unit", severity="HARD_ERROR")
        self.unit = unit
        self.dimension = dimension
        self.unit_dimension = unit_dimension


class UnknownUnitError(InvalidUnitError):
    """Unit symbol is not in the unit catalog"""
    def __init__(self, unit: str, dimension: Optional[str] = None):
        super().__init__(
            unit,
            dimension or "",
            error_code="UNKNOWN_UNIT",
            message=f"Unit '{unit}' is not recognized. Check the symbol and its prefix against the unit catalog."
        )


class ZeroMultiplierError(ConversionError):
    """Conversion multiplier must be non-zero"""
    def __init__(self, src_unit: str, dest_unit: str):
        super().__init__(
            "ZERO_MULTIPLIER",
            f"Conversion from '{src_unit}' to '{dest_unit}' has a zero multiplier. A zero multiplier cannot be inverted.",
            field="multiplier",
            severity="HARD_ERROR"
        )
        self.src_unit = src_unit
        self.dest_unit = dest_unit


class DivisionByZeroError(ConversionError, ZeroDivisionError):
    """Division, inversion or negative power of zero"""
    def __init__(self, operation: str):
        super().__init__(
            "DIVISION_BY_ZERO",
            f"Cannot {operation}: the divisor is zero.",
            field="value",
            severity="HARD_ERROR"
        )
        self.operation = operation


class NoPathFoundError(ConversionError):
    """No conversion path exists between two units"""
    def __init__(self, src_unit: str, dest_unit: str, dimension: str):
        super().__init__(
            "NO_PATH_FOUND",
            f"No conversion path from '{src_unit}' to '{dest_unit}' in dimension '{dimension}'.",
            field="dest_unit",
            severity="HARD_ERROR"
        )
        self.src_unit = src_unit
        self.dest_unit = dest_unit
        self.dimension = dimension


class ExpansionDepthError(ConversionError):
    """Unit expansion did not terminate"""
    def __init__(self, unit: str, max_depth: int):
        super().__init__(
            "EXPANSION_DEPTH_EXCEEDED",
            f"Expanding '{unit}' exceeded {max_depth} levels. The unit catalog likely contains an expansion cycle.",
            field="expansion_unit_symbol",
            severity="HARD_ERROR"
        )
        self.unit = unit
        self.max_depth = max_depth


class DuplicateUnitError(ConversionError):
    """Unit symbol already registered"""
    def __init__(self, symbol: str, existing_units: List[str]):
        super().__init__(
            "DUPLICATE_UNIT",
            f"Symbol '{symbol}' is already used by: {', '.join(existing_units)}",
            field="ascii_symbol",
            severity="HARD_ERROR"
        )
        self.symbol = symbol


class InvalidConversionDefinitionError(ConversionError):
    """Conversion catalog entry is malformed"""
    def __init__(self, src_unit: str, dest_unit: str, reason: str):
        super().__init__(
            "INVALID_CONVERSION_DEFINITION",
            f"Conversion '{src_unit}' -> '{dest_unit}' is invalid: {reason}",
            field="conversion",
            severity="HARD_ERROR"
        )
