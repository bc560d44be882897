# units/tests/test_unit_converter.py

"""
Unit tests for UnitConverter

Tests cover:
- Multiton access and registry reset
- Direct, discovered and prefixed conversions
- Offset (temperature) conversions
- Compound and exponentiated units (km/h, ft2, gal, psi, kWh)
- Path preference by accumulated error, then by hop count
- Error kinds (invalid unit, unknown unit, no path)
- Runtime registration (add_unit, add_conversion)
- Concurrent lookups
"""

import asyncio
import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from unit_converter import (
    UnitConverter,
    ConverterRegistry,
    get_conversion_factor,
    convert
)
from conversion_catalog import ConversionCatalog
from conversion_errors import (
    InvalidDimensionError,
    InvalidUnitError,
    UnknownUnitError,
    NoPathFoundError
)
from converter_settings import ConverterSettings
from tracked_float import TrackedFloat
from unit_catalog import UnitCatalog, UnitDefinition


@pytest.fixture(autouse=True)
def reset_default_registry():
    """Every test starts from an empty default registry"""
    UnitConverter.clear_all()
    yield
    UnitConverter.clear_all()


@pytest.fixture
def registry():
    """Isolated registry with the default catalogs"""
    return ConverterRegistry()


@pytest.fixture
def bare_registry():
    """Registry whose L dimension holds five unconnected units"""
    units = [
        UnitDefinition(name=name, ascii_symbol=name, dimension="L")
        for name in ("aa", "bb", "cc", "dd", "xx")
    ]
    return ConverterRegistry(UnitCatalog(definitions=units), ConversionCatalog(definitions={}))


class TestMultiton:
    """Test one converter per dimension"""

    def test_same_instance_per_dimension(self, registry):
        assert registry.get_by_dimension("L") is registry.get_by_dimension("L1")

    def test_dimension_normalized(self, registry):
        converter = registry.get_by_dimension("T-2LM")
        assert converter.dimension == "MLT-2"
        assert converter is registry.get_by_dimension("MLT-2")

    def test_invalid_dimension(self, registry):
        with pytest.raises(InvalidDimensionError):
            registry.get_by_dimension("X2")

    def test_clear_all(self, registry):
        first = registry.get_by_dimension("L")
        registry.clear_all()
        assert registry.get_by_dimension("L") is not first

    def test_default_registry(self):
        converter = UnitConverter.get_by_dimension("L")
        assert converter is UnitConverter.get_by_dimension("L")
        UnitConverter.clear_all()
        assert UnitConverter.get_by_dimension("L") is not converter

    def test_bootstrap_registers_catalog_units(self, registry):
        converter = registry.get_by_dimension("L")
        assert "m" in converter.units
        assert "ft" in converter.units
        assert ("ft", "m") in converter.conversions


class TestDirectAndDiscovered:
    """Test lookups in a single base dimension"""

    def test_prefixed_factor(self):
        assert get_conversion_factor("L", "km", "m") == 1000.0

    def test_direct_edge(self, registry):
        assert registry.get_by_dimension("L").convert(100, "ft", "m") == pytest.approx(30.48)

    def test_identity(self, registry):
        conversion = registry.get_by_dimension("L").get_conversion("m", "m")
        assert conversion.multiplier.value == 1.0
        assert conversion.offset.value == 0.0

    def test_reverse_edge(self, registry):
        assert registry.get_by_dimension("L").get_conversion_factor("m", "ft") == pytest.approx(1 / 0.3048)

    def test_multi_hop(self, registry):
        assert registry.get_by_dimension("L").convert(1, "mi", "km") == pytest.approx(1.609344)

    def test_discovered_edge_is_cached(self, registry):
        converter = registry.get_by_dimension("L")
        first = converter.get_conversion("mi", "nmi")
        assert ("mi", "nmi") in converter.conversions
        assert converter.get_conversion("mi", "nmi") is first

    def test_round_trip(self, registry):
        converter = registry.get_by_dimension("M")
        pounds = converter.convert(5, "kg", "lb")
        assert pounds == pytest.approx(11.0231131)
        assert converter.convert(pounds, "lb", "kg") == pytest.approx(5.0)

    def test_prefix_on_both_sides(self, registry):
        assert registry.get_by_dimension("L").convert(1, "km", "mm") == pytest.approx(1e6)

    def test_binary_prefix(self, registry):
        assert registry.get_by_dimension("D").convert(1, "KiB", "b") == pytest.approx(8192)

    def test_tracked_result(self, registry):
        result = registry.get_by_dimension("L").convert_tracked(1, "pc", "ly")
        assert result.value == pytest.approx(3.26156, rel=1e-5)
        assert result.absolute_error > 0

    def test_module_convert_infers_dimension(self):
        assert convert(1, "h", "s") == pytest.approx(3600)


class TestTemperature:
    """Test offset conversions"""

    def test_celsius_to_fahrenheit(self, registry):
        assert registry.get_by_dimension("H").convert(100, "degC", "degF") == pytest.approx(212.0)

    def test_fahrenheit_to_celsius(self, registry):
        assert registry.get_by_dimension("H").convert(32, "degF", "degC") == pytest.approx(0.0, abs=1e-9)

    def test_celsius_to_kelvin(self, registry):
        assert registry.get_by_dimension("H").convert(0, "degC", "K") == pytest.approx(273.15)

    def test_offset_scaled_by_destination_prefix(self, registry):
        assert registry.get_by_dimension("H").convert(0, "degC", "mK") == pytest.approx(273150.0)

    def test_unicode_symbols(self, registry):
        assert registry.get_by_dimension("H").convert(-40, "°C", "°F") == pytest.approx(-40.0)

    def test_complete_matrix(self, registry):
        converter = registry.get_by_dimension("H")
        assert converter.complete_matrix() == 12
        assert converter.is_matrix_complete()
        assert "K = degC * (1) + (273.15)" in converter.format_matrix()


class TestCompoundUnits:
    """Test derived, compound and exponentiated units"""

    def test_speed(self):
        assert convert(36, "km/h", "m/s") == pytest.approx(10.0)

    def test_knot(self):
        assert convert(1, "kn", "km/h") == pytest.approx(1.852)

    def test_area_from_length(self):
        assert convert(1, "ft2", "m2") == pytest.approx(0.09290304)

    def test_hectare_to_acre(self):
        assert convert(1, "ha", "ac") == pytest.approx(2.4710538, rel=1e-7)

    def test_gallon_to_litre(self):
        assert convert(1, "gal", "L") == pytest.approx(3.785411784)

    def test_quart_to_millilitre(self):
        assert convert(1, "qt", "mL") == pytest.approx(946.352946)

    def test_pressure_through_expansion(self):
        assert convert(1, "psi", "kPa") == pytest.approx(6.894757, rel=1e-6)

    def test_force_direct_edge(self):
        assert convert(1, "lbf", "N") == pytest.approx(4.4482216152605)

    def test_energy(self):
        assert convert(1, "kWh", "MJ") == pytest.approx(3.6)

    def test_derived_to_base_units(self):
        assert convert(1, "kN", "kg*m*s-2") == pytest.approx(1000.0)

    def test_add_unit_registers_variants(self, registry):
        converter = registry.get_by_dimension("LT-1")
        stored = converter.add_unit("ft/s")
        assert stored.ascii_symbol == "ft*s-1"
        assert "ft*s-1" in converter.units
        assert "m*s-1" in converter.units

    def test_add_unit_wrong_dimension(self, registry):
        with pytest.raises(InvalidUnitError):
            registry.get_by_dimension("LT-1").add_unit("s")


class TestErrors:
    """Test error kinds"""

    def test_unit_from_other_dimension(self, registry):
        with pytest.raises(InvalidUnitError) as exc_info:
            registry.get_by_dimension("L").convert(1, "m", "s")
        assert exc_info.value.error_code == "INVALID_UNIT"
        assert exc_info.value.unit_dimension == "T"

    def test_unknown_unit(self, registry):
        with pytest.raises(UnknownUnitError) as exc_info:
            registry.get_by_dimension("L").convert(1, "m", "furlong")
        assert exc_info.value.error_code == "UNKNOWN_UNIT"

    def test_no_path_returns_none(self, bare_registry):
        converter = bare_registry.get_by_dimension("L")
        assert converter.get_conversion("aa", "bb") is None
        assert converter.get_conversion_factor("aa", "bb") is None

    def test_no_path_raises_on_convert(self, bare_registry):
        with pytest.raises(NoPathFoundError) as exc_info:
            bare_registry.get_by_dimension("L").convert(1, "aa", "bb")
        assert exc_info.value.error_code == "NO_PATH_FOUND"

    def test_hop_limit(self):
        registry = ConverterRegistry(settings=ConverterSettings(max_path_hops=1))
        assert registry.get_by_dimension("L").get_conversion("mi", "m") is None


class TestPathPreference:
    """Test lowest-error path selection"""

    def test_lower_error_path_wins(self, bare_registry):
        converter = bare_registry.get_by_dimension("L")
        converter.add_conversion("aa", "bb", TrackedFloat(2, 1e-9))
        converter.add_conversion("bb", "dd", TrackedFloat(3, 1e-9))
        converter.add_conversion("aa", "cc", TrackedFloat(2, 1e-3))
        converter.add_conversion("cc", "dd", TrackedFloat(3.0001, 1e-3))
        assert converter.get_conversion_factor("aa", "dd") == pytest.approx(6.0)

    def test_fewer_hops_break_ties(self, bare_registry):
        converter = bare_registry.get_by_dimension("L")
        converter.add_conversion("aa", "xx", 2)
        converter.add_conversion("xx", "dd", 5)
        converter.add_conversion("aa", "bb", 2)
        converter.add_conversion("bb", "cc", 3)
        converter.add_conversion("cc", "dd", 1)
        assert converter.get_conversion_factor("aa", "dd") == 10.0

    def test_add_conversion_invalidates_discovered_paths(self, bare_registry):
        converter = bare_registry.get_by_dimension("L")
        converter.add_conversion("aa", "cc", TrackedFloat(2, 1e-3))
        converter.add_conversion("cc", "dd", TrackedFloat(3.0001, 1e-3))
        assert converter.get_conversion_factor("aa", "dd") == pytest.approx(6.0002)

        converter.add_conversion("aa", "bb", TrackedFloat(2, 1e-9))
        converter.add_conversion("bb", "dd", TrackedFloat(3, 1e-9))
        assert converter.get_conversion_factor("aa", "dd") == pytest.approx(6.0)

    def test_add_conversion_refreshes_compound_converters(self, registry):
        area = registry.get_by_dimension("L2")
        assert area.convert(1, "ft2", "m2") == pytest.approx(0.09290304)
        assert area.convert(1, "ac", "ha") == pytest.approx(0.40468564224)

        registry.get_by_dimension("L").add_conversion("ft", "m", 0.3)
        assert area.convert(1, "ft2", "m2") == pytest.approx(0.09)
        assert area.convert(1, "ac", "ha") == pytest.approx(43560 * 0.09 / 10000)

    def test_add_conversion_for_new_catalog_unit(self):
        unit_catalog = UnitCatalog()
        unit_catalog.add(UnitDefinition(name="furlong", ascii_symbol="fur", dimension="L"))
        registry = ConverterRegistry(unit_catalog=unit_catalog)
        converter = registry.get_by_dimension("L")
        converter.add_conversion("fur", "yd", 220)
        assert converter.convert(1, "fur", "m") == pytest.approx(201.168)


class TestConcurrency:
    """Test lookups from several threads"""

    @pytest.mark.asyncio
    async def test_concurrent_lookups_publish_one_edge(self, registry):
        converter = registry.get_by_dimension("L")
        results = await asyncio.gather(*(
            asyncio.to_thread(converter.get_conversion, "mi", "in")
            for _ in range(8)
        ))
        assert all(result is results[0] for result in results)
        assert results[0].multiplier.value == pytest.approx(63360.0)

    @pytest.mark.asyncio
    async def test_concurrent_converter_creation(self):
        registry = ConverterRegistry()
        converters = await asyncio.gather(*(
            asyncio.to_thread(registry.get_by_dimension, "ML2T-2")
            for _ in range(4)
        ))
        assert all(converter is converters[0] for converter in converters)
