# units/tests/test_expand_merge.py

"""
Unit tests for expansion and merging

Tests cover:
- Expanding derived units into base units, with prefixes and exponents
- Idempotence of expand
- Canonical-first merging of like-dimension terms
- Terms that cannot be merged (offset conversions)
- Expansion cycle guard
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from unit_converter import ConverterRegistry
from conversion_catalog import ConversionCatalog
from conversion_errors import ExpansionDepthError
from converter_settings import ConverterSettings
from unit_catalog import UnitCatalog, UnitDefinition


@pytest.fixture(scope="module")
def registry():
    return ConverterRegistry()


class TestExpand:
    """Test expansion into base units"""

    def test_newton(self, registry):
        value, unit = registry.expand(1, "N")
        assert unit.ascii_symbol == "kg*m*s-2"
        assert value.value == 1.0

    def test_prefixed_newton(self, registry):
        value, unit = registry.expand(2, "kN")
        assert unit.ascii_symbol == "kg*m*s-2"
        assert value.value == pytest.approx(2000.0)

    def test_nested_expansion(self, registry):
        value, unit = registry.expand(1, "J")
        assert unit.ascii_symbol == "kg*m2*s-2"
        assert value.value == pytest.approx(1.0)

    def test_expansion_merges_time_terms(self, registry):
        value, unit = registry.expand(1, "kWh")
        assert unit.ascii_symbol == "kg*m2*s-2"
        assert value.value == pytest.approx(3.6e6)

    def test_exponentiated_term(self, registry):
        value, unit = registry.expand(1, "kN2")
        assert unit.ascii_symbol == "kg2*m2*s-4"
        assert value.value == pytest.approx(1e6)

    def test_not_expandable(self, registry):
        value, unit = registry.expand(5, "m")
        assert unit.ascii_symbol == "m"
        assert value.value == 5.0

    def test_idempotent(self, registry):
        value, unit = registry.expand(3, "psi")
        again_value, again_unit = registry.expand(value, unit)
        assert again_unit == unit
        assert again_value.value == pytest.approx(value.value)

    def test_indirect_expansion_through_joule(self, registry):
        value, unit = registry.expand(1, "Btu")
        assert unit.ascii_symbol == "kg*m2*s-2"
        assert value.value == pytest.approx(1055.05585262)

    def test_indirect_expansion_through_pascal(self, registry):
        value, unit = registry.expand(2, "bar")
        assert unit.ascii_symbol == "kg*m-1*s-2"
        assert value.value == pytest.approx(200000.0)

    def test_indirect_expansion_through_watt(self, registry):
        value, unit = registry.expand(1, "hp")
        assert unit.ascii_symbol == "kg*m2*s-3"
        assert value.value == pytest.approx(745.69987158227022)

    def test_indirect_expansion_in_compound(self, registry):
        value, unit = registry.expand(1, "cal/s")
        assert unit.ascii_symbol == "kg*m2*s-3"
        assert value.value == pytest.approx(4.184)

    def test_indirect_expansion_with_prefix_and_exponent(self, registry):
        value, unit = registry.expand(1, "kcal")
        assert value.value == pytest.approx(4184.0)
        value, unit = registry.expand(1, "Btu2")
        assert unit.ascii_symbol == "kg2*m4*s-4"
        assert value.value == pytest.approx(1055.05585262 ** 2)

    def test_converter_delegates(self, registry):
        value, unit = registry.get_by_dimension("MLT-2").expand(1, "N")
        assert unit.ascii_symbol == "kg*m*s-2"

    def test_cycle_guard(self):
        units = [
            UnitDefinition(name="ping", ascii_symbol="png", dimension="L", expansion_unit_symbol="pong"),
            UnitDefinition(name="pong", ascii_symbol="pong", dimension="L", expansion_unit_symbol="png"),
        ]
        registry = ConverterRegistry(
            UnitCatalog(definitions=units),
            ConversionCatalog(definitions={}),
            settings=ConverterSettings(max_expansion_depth=4)
        )
        with pytest.raises(ExpansionDepthError) as exc_info:
            registry.expand(1, "png")
        assert exc_info.value.error_code == "EXPANSION_DEPTH_EXCEEDED"
        assert exc_info.value.max_depth == 4


class TestMerge:
    """Test canonical-first merging"""

    def test_first_unit_is_canonical(self, registry):
        value, unit = registry.merge(1, "m*ft")
        assert unit.ascii_symbol == "m2"
        assert value.value == pytest.approx(0.3048)

    def test_order_decides_canonical_unit(self, registry):
        value, unit = registry.merge(1, "ft*m")
        assert unit.ascii_symbol == "ft2"
        assert value.value == pytest.approx(1 / 0.3048)

    def test_prefixed_terms(self, registry):
        value, unit = registry.merge(1, "km*m")
        assert unit.ascii_symbol == "km2"
        assert value.value == pytest.approx(0.001)

    def test_cancelling_terms_are_removed(self, registry):
        value, unit = registry.merge(1, "m*s*ft-1")
        assert unit.ascii_symbol == "s"
        assert value.value == pytest.approx(1 / 0.3048)

    def test_different_dimensions_untouched(self, registry):
        value, unit = registry.merge(2, "kg*m*s-2")
        assert unit.ascii_symbol == "kg*m*s-2"
        assert value.value == 2.0

    def test_offset_terms_stay_separate(self, registry):
        value, unit = registry.merge(1, "K*degC")
        assert unit.ascii_symbol == "K*degC"
        assert value.value == 1.0
