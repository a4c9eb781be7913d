"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from kvguard.core.config.models import AppConfig
from kvguard.core.utils.logging import configure_logging as _configure_logging

logger = logging.getLogger(__name__)

# Environment variable -> (section, field)
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "KVGUARD_LOG_LEVEL": ("logging", "level"),
    "KVGUARD_STORE_BACKEND": ("store", "backend"),
    "KVGUARD_STORE_ROOT": ("store", "root"),
}


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("kvguard.json")
        'json'
        >>> detect_format("kvguard.yaml")
        'yaml'
        >>> detect_format("kvguard.yml")
        'yaml'
    """
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return raw configuration dictionary.

    Supports both JSON and YAML formats. Format is auto-detected
    from file extension.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            with path.open("r", encoding="utf-8") as f:
                content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                # safe_load returns None for empty files
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        if content is None:
            content = {}

    if not isinstance(content, dict):
        raise ValueError(f"Config root in {path} must be a mapping, got {type(content).__name__}")

    return content


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    A missing default file yields all defaults; an explicitly given path
    must exist. Environment variables override file values afterwards.

    Args:
        path: Path to app config file (.json, .yaml, or .yml)
              Defaults to kvguard.yaml

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValidationError: If config is invalid
    """
    if path is None:
        default_path = AppConfig.default_path()
        raw_config = load_config(default_path) if default_path.exists() else {}
    else:
        raw_config = load_config(path)

    _apply_env_overrides(raw_config)

    return AppConfig.model_validate(raw_config)


def configure_logging(config: AppConfig | None = None) -> None:
    """Configure Python logging from app config.

    Args:
        config: AppConfig instance (loads default if None)
    """
    if config is None:
        config = load_app_config()

    _configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        filename=config.logging.filename,
        structured=config.logging.structured,
    )


def _apply_env_overrides(raw_config: dict[str, Any]) -> None:
    """Copy KVGUARD_* environment variables into the raw config.

    Args:
        raw_config: Raw config dictionary, mutated in place
    """
    for env_var, (section, field) in _ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if not value:
            continue

        logger.debug(f"Loaded {env_var} from environment")

        if field == "level":
            value = value.upper()

        target = raw_config.get(section)
        if not isinstance(target, dict):
            target = {}
            raw_config[section] = target
        target[field] = value
