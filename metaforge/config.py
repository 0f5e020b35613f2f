"""
================================================================================
MetaForge - Configuration
================================================================================
Environment driven settings for the aggregation engine.

Variables are read from the process environment after `.env` has been
loaded by python-dotenv:

    DATABASE_URL                 Profile store database
    METAFORGE_DEFAULT_LOCALE     Locale used when a profile sets none (en)
    METAFORGE_PROVIDER_TIMEOUT   Per provider call deadline in seconds (unset)
    METAFORGE_LOG_DIR            Directory for metaforge.log (instance/)
    METAFORGE_LOG_LEVEL          Logger level (INFO)
    DEBUG_LOGGING                JSON-line scrape events (false)
================================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

_TRUTHY = ('1', 'true', 'yes', 'on')


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.environ.get(name, default).strip().lower() in _TRUTHY


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name, '').strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got '{raw}'")
    return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""

    database_url: Optional[str] = None
    default_locale: str = 'en'
    provider_timeout: Optional[float] = None
    log_dir: str = os.path.join(BASE_DIR, 'instance')
    log_level: str = 'INFO'
    debug_logging: bool = False
    debug_log_dir: str = os.path.join(BASE_DIR, 'debugging')

    @classmethod
    def from_env(cls) -> 'Settings':
        """Build settings from the current environment."""
        return cls(
            database_url=os.environ.get('DATABASE_URL') or None,
            default_locale=os.environ.get('METAFORGE_DEFAULT_LOCALE', 'en').strip() or 'en',
            provider_timeout=_env_float('METAFORGE_PROVIDER_TIMEOUT'),
            log_dir=os.environ.get('METAFORGE_LOG_DIR') or os.path.join(BASE_DIR, 'instance'),
            log_level=os.environ.get('METAFORGE_LOG_LEVEL', 'INFO').upper(),
            debug_logging=_env_flag('DEBUG_LOGGING'),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the process-wide settings."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings (tests change the environment)."""
    global _settings
    _settings = None
