# units/tests/test_dimension_utils.py

"""
Unit tests for dimension codes

Tests cover:
- Validation
- Normalization (ordering, exponent 1, zero exponents, repeated letters)
- Exponentiation and multiplication
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import dimension_utils
from conversion_errors import InvalidDimensionError


class TestValidation:
    """Test dimension code validation"""

    @pytest.mark.parametrize("code", ["", "L", "L2", "MLT-2", "ML2T-3I-1", "TI", "H"])
    def test_valid_codes(self, code):
        assert dimension_utils.is_valid(code)

    @pytest.mark.parametrize("code", ["X", "l", "L-", "2L", "L 2", "Θ"])
    def test_invalid_codes(self, code):
        assert not dimension_utils.is_valid(code)

    def test_explode_invalid_raises(self):
        with pytest.raises(InvalidDimensionError) as exc_info:
            dimension_utils.explode("Q2")
        assert exc_info.value.error_code == "INVALID_DIMENSION"


class TestNormalization:
    """Test canonical form"""

    def test_reorders_letters(self):
        assert dimension_utils.normalize("T-2LM") == "MLT-2"

    def test_drops_unit_exponent(self):
        assert dimension_utils.normalize("L1") == "L"

    def test_drops_zero_exponent(self):
        assert dimension_utils.normalize("ML0") == "M"

    def test_sums_repeated_letters(self):
        assert dimension_utils.normalize("LL") == "L2"
        assert dimension_utils.normalize("LL-1") == ""

    def test_explode(self):
        assert dimension_utils.explode("MLT-2") == {"M": 1, "L": 1, "T": -2}

    def test_dimensionless(self):
        assert dimension_utils.normalize("") == ""
        assert dimension_utils.describe("") == "dimensionless"


class TestArithmetic:
    """Test exponent application and products"""

    def test_apply_exponent(self):
        assert dimension_utils.apply_exponent("LT-1", 2) == "L2T-2"
        assert dimension_utils.apply_exponent("L", -1) == "L-1"

    def test_multiply(self):
        assert dimension_utils.multiply("MLT-2", "L") == "ML2T-2"
        assert dimension_utils.multiply("L", "L-1") == ""

    def test_is_base_dimension(self):
        assert dimension_utils.is_base_dimension("L")
        assert not dimension_utils.is_base_dimension("L2")
        assert not dimension_utils.is_base_dimension("MLT-2")
        assert not dimension_utils.is_base_dimension("")
