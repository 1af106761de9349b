"""Configuration management: TOML loading and config models.

Usage:
    >>> from db_migrator.config import load_config, AppConfig, DBConfig, ValidationConfig
"""

from db_migrator.config.loader import DEFAULT_CONFIG_FILE, load_config
from db_migrator.config.models import (
    AppConfig,
    DBConfig,
    NamedConnection,
    ValidationConfig,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "load_config",
    "AppConfig",
    "DBConfig",
    "NamedConnection",
    "ValidationConfig",
]
