# units/affine_conversion.py

"""
Affine Conversion - one directed edge of the conversion graph.

    dest = src * multiplier + offset

Multiplier and offset are TrackedFloats, so every composed conversion knows
how much error it has accumulated. The four combine_* operators join two
conversions that share one unit; between them they cover every orientation
of two edges meeting at a node, so a path can be composed without first
inverting its edges.

INVARIANTS:
1) multiplier != 0 (ZeroMultiplierError otherwise), so every conversion is invertible
2) Conversions are immutable
"""

from typing import Union

from conversion_catalog import ConversionDefinition
from conversion_errors import ZeroMultiplierError
from tracked_float import TrackedFloat, Number

Scalar = Union[TrackedFloat, Number]


def _symbol(unit) -> str:
    return unit if isinstance(unit, str) else unit.ascii_symbol


class AffineConversion:
    """Directed affine map between two units"""

    __slots__ = ("src_unit", "dest_unit", "multiplier", "offset")

    def __init__(self, src_unit, dest_unit, multiplier: Scalar, offset: Scalar = 0):
        multiplier = TrackedFloat.of(multiplier)
        offset = TrackedFloat.of(offset)
        self.src_unit = _symbol(src_unit)
        self.dest_unit = _symbol(dest_unit)
        if multiplier.value == 0:
            raise ZeroMultiplierError(self.src_unit, self.dest_unit)
        self.multiplier = multiplier
        self.offset = offset

    @classmethod
    def identity(cls, unit) -> "AffineConversion":
        return cls(unit, unit, TrackedFloat(1, 0), TrackedFloat(0, 0))

    @classmethod
    def from_definition(cls, definition) -> "AffineConversion":
        """Build from a catalog ConversionDefinition."""
        return cls(definition.src_unit, definition.dest_unit, definition.multiplier, definition.offset)

    @property
    def total_absolute_error(self) -> float:
        """
        Error of the conversion for an input of magnitude ~1.

        Used to rank paths; it deliberately ignores the actual input value.
        """
        return self.multiplier.absolute_error + self.offset.absolute_error

    @property
    def has_offset(self) -> bool:
        return self.offset.value != 0

    def apply(self, value: Scalar) -> TrackedFloat:
        return self.multiplier.mul(TrackedFloat.of(value)).add(self.offset)

    def invert(self) -> "AffineConversion":
        """dest -> src: x = y / m - k / m"""
        return AffineConversion(
            self.dest_unit,
            self.src_unit,
            self.multiplier.inv(),
            self.offset.neg().div(self.multiplier)
        )

    # ==================== COMPOSITION ====================

    def combine_sequential(self, other: "AffineConversion") -> "AffineConversion":
        """A->B then B->C gives A->C."""
        _require_shared(self.dest_unit, other.src_unit, "sequential")
        return AffineConversion(
            self.src_unit,
            other.dest_unit,
            self.multiplier.mul(other.multiplier),
            self.offset.mul(other.multiplier).add(other.offset)
        )

    def combine_convergent(self, other: "AffineConversion") -> "AffineConversion":
        """A->C and B->C give A->B."""
        _require_shared(self.dest_unit, other.dest_unit, "convergent")
        return AffineConversion(
            self.src_unit,
            other.src_unit,
            self.multiplier.div(other.multiplier),
            self.offset.sub(other.offset).div(other.multiplier)
        )

    def combine_divergent(self, other: "AffineConversion") -> "AffineConversion":
        """C->A and C->B give A->B."""
        _require_shared(self.src_unit, other.src_unit, "divergent")
        ratio = other.multiplier.div(self.multiplier)
        return AffineConversion(
            self.dest_unit,
            other.dest_unit,
            ratio,
            other.offset.sub(self.offset.mul(ratio))
        )

    def combine_opposite(self, other: "AffineConversion") -> "AffineConversion":
        """C->A and B->C give A->B."""
        _require_shared(self.src_unit, other.dest_unit, "opposite")
        return AffineConversion(
            self.dest_unit,
            other.src_unit,
            self.multiplier.mul(other.multiplier).inv(),
            other.offset.neg().sub(self.offset.div(self.multiplier)).div(other.multiplier)
        )

    # ==================== RESCALING ====================

    def rescale(self, src_unit, dest_unit, src_factor: Scalar, dest_factor: Scalar) -> "AffineConversion":
        """
        Move the conversion onto differently scaled endpoints.

        Args:
            src_unit: New source unit
            dest_unit: New destination unit
            src_factor: Size of one new source unit in old source units
            dest_factor: Size of one new destination unit in old destination units

        Returns:
            AffineConversion with m' = m * src_factor / dest_factor and
            k' = k / dest_factor

        Example:
            m -> m rescaled with src_factor=1000 ('km') gives km -> m, m' = 1000
        """
        src_factor = TrackedFloat.of(src_factor)
        dest_factor = TrackedFloat.of(dest_factor)
        return AffineConversion(
            src_unit,
            dest_unit,
            self.multiplier.mul(src_factor).div(dest_factor),
            self.offset.div(dest_factor)
        )

    def pow(self, exponent: int, src_unit, dest_unit) -> "AffineConversion":
        """
        Conversion between powers of the endpoints (ft -> m gives ft2 -> m2).

        Raises:
            ValueError: If the conversion has an offset; offsets do not survive exponentiation
        """
        if self.has_offset:
            raise ValueError(f"Cannot raise offset conversion {self} to power {exponent}")
        return AffineConversion(src_unit, dest_unit, self.multiplier.pow(exponent), TrackedFloat(0, 0))

    def to_definition(self) -> ConversionDefinition:
        return ConversionDefinition(
            src_unit=self.src_unit,
            dest_unit=self.dest_unit,
            multiplier=self.multiplier.value,
            offset=self.offset.value
        )

    def __repr__(self) -> str:
        return f"AffineConversion({self.src_unit!r}, {self.dest_unit!r}, {self.multiplier!r}, {self.offset!r})"

    def __str__(self) -> str:
        text = f"{self.dest_unit} = {self.src_unit} * ({self.multiplier.value:.15g})"
        if self.has_offset:
            text += f" + ({self.offset.value:.15g})"
        return text


def _require_shared(unit_a: str, unit_b: str, operator: str) -> None:
    if unit_a != unit_b:
        raise ValueError(f"Cannot combine conversions ({operator}): '{unit_a}' and '{unit_b}' are different units")
