"""Configuration management for kvguard."""

from kvguard.core.config.loader import (
    configure_logging,
    detect_format,
    load_app_config,
    load_config,
)
from kvguard.core.config.models import (
    AppConfig,
    ConfigBase,
    LoggingConfig,
    StoreConfig,
)

__all__ = [
    # Loaders
    "load_config",
    "load_app_config",
    "detect_format",
    "configure_logging",
    # App-level config
    "AppConfig",
    "ConfigBase",
    "LoggingConfig",
    "StoreConfig",
]
