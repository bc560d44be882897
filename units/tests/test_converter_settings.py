# units/tests/test_converter_settings.py

"""
Unit tests for converter settings

Tests cover:
- Defaults
- Environment overrides
- Validation of bad values
- Cached settings reset
"""

import pytest
import sys
from pathlib import Path
from pydantic import ValidationError

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from converter_settings import ConverterSettings, get_settings, reset_settings, configure_logging


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    for name in ("UNITS_LOG_LEVEL", "UNITS_MAX_EXPANSION_DEPTH", "UNITS_MAX_PATH_HOPS", "UNITS_LOG_DISCOVERED_PATHS"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


class TestConverterSettings:
    """Test settings loading"""

    def test_defaults(self):
        settings = ConverterSettings.from_env()
        assert settings.log_level == "INFO"
        assert settings.max_expansion_depth == 16
        assert settings.max_path_hops == 32
        assert settings.log_discovered_paths is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("UNITS_LOG_LEVEL", "debug")
        monkeypatch.setenv("UNITS_MAX_EXPANSION_DEPTH", "4")
        monkeypatch.setenv("UNITS_LOG_DISCOVERED_PATHS", "yes")
        settings = ConverterSettings.from_env()
        assert settings.log_level == "DEBUG"
        assert settings.max_expansion_depth == 4
        assert settings.log_discovered_paths is True

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            ConverterSettings(log_level="LOUD")

    def test_depth_must_be_positive(self):
        with pytest.raises(ValidationError):
            ConverterSettings(max_expansion_depth=0)

    def test_get_settings_is_cached(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("UNITS_MAX_PATH_HOPS", "3")
        assert get_settings() is first
        reset_settings()
        assert get_settings().max_path_hops == 3

    def test_configure_logging(self):
        configure_logging(ConverterSettings(log_level="WARNING"))
