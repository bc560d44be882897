# units/converter_settings.py

"""
Converter settings loaded from the environment (.env supported).

Variables:
- UNITS_LOG_LEVEL              logging level used by configure_logging()
- UNITS_MAX_EXPANSION_DEPTH    recursion guard for expand()/merge()
- UNITS_MAX_PATH_HOPS          longest path the converter will search
- UNITS_LOG_DISCOVERED_PATHS   log every discovered path at INFO
"""

import os
import logging
import threading
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConverterSettings(BaseModel):
    """Runtime configuration for the conversion core"""
    log_level: str = "INFO"
    max_expansion_depth: int = Field(default=16, ge=1)
    max_path_hops: int = Field(default=32, ge=1)
    log_discovered_paths: bool = False

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{v}'")
        return level

    @classmethod
    def from_env(cls) -> "ConverterSettings":
        return cls(
            log_level=os.environ.get('UNITS_LOG_LEVEL', 'INFO'),
            max_expansion_depth=int(os.environ.get('UNITS_MAX_EXPANSION_DEPTH', '16')),
            max_path_hops=int(os.environ.get('UNITS_MAX_PATH_HOPS', '32')),
            log_discovered_paths=os.environ.get('UNITS_LOG_DISCOVERED_PATHS', 'false').strip().lower() in _TRUE_VALUES
        )


_settings: Optional[ConverterSettings] = None
_settings_lock = threading.Lock()


def get_settings() -> ConverterSettings:
    """Return the process-wide settings, reading the environment once."""
    global _settings
    if _settings is None:
        with _settings_lock:
            if _settings is None:
                _settings = ConverterSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() re-reads the environment."""
    global _settings
    with _settings_lock:
        _settings = None


def configure_logging(settings: Optional[ConverterSettings] = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info(f"Logging configured at {settings.log_level}")
