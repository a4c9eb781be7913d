"""Configuration models for kvguard."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field

from kvguard.core.caching.models import CacheOptions


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    structured: bool = Field(
        default=False, description="Emit one JSON object per line instead of plain text"
    )

    filename: str | None = Field(
        default=None, description="Also write log records to this file"
    )


class StoreConfig(BaseModel):
    """Key-value store backend selection."""

    model_config = ConfigDict(extra="ignore")  # Forward compatibility

    backend: Literal["memory", "file", "null"] = Field(
        default="memory",
        description="Store backend: 'memory' (process-local), 'file' (on disk), 'null' (disabled)",
    )

    root: str = Field(
        default="data/kvguard_cache",
        description="Root directory for the file backend (one sub-directory per scope)",
    )


class ConfigBase(BaseModel):
    """Base class for kvguard configurations.

    Provides common functionality for loading from files with defaults.
    Subclasses must implement default_path() to specify their default location.
    """

    model_config = ConfigDict(extra="ignore")  # Forward compatibility

    @classmethod
    def default_path(cls) -> Path:
        """Return the default config file path for this config type.

        Subclasses must override this to provide their default location.

        Returns:
            Path to the default config file
        """
        raise NotImplementedError(f"{cls.__name__} must implement default_path()")

    @classmethod
    def load_or_default(cls, path: Path | str | None = None) -> Self:
        """Load config from path or use default path.

        Args:
            path: Path to config file, or None to use default

        Returns:
            Loaded config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValidationError: If config is invalid
        """
        from kvguard.core.config.loader import load_config

        if path is None:
            path = cls.default_path()
        raw = load_config(path)
        return cls.model_validate(raw)


class AppConfig(ConfigBase):
    """Application-level configuration.

    Example:
        >>> config = AppConfig.model_validate({"cache": {"expiration": "1h"}})
        >>> config.cache.expiration
        '1h'
        >>> config.store.backend
        'memory'
    """

    model_config = ConfigDict(extra="ignore")

    cache: CacheOptions = Field(
        default_factory=CacheOptions, description="Default options for every cache call"
    )
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def default_path(cls) -> Path:
        """Default path for application config."""
        return Path("kvguard.yaml")

    @classmethod
    def load_or_default(cls, path: Path | str | None = None) -> Self:
        """Load app config, falling back to defaults and applying env overrides."""
        from kvguard.core.config.loader import load_app_config

        return load_app_config(path)  # type: ignore[return-value]
