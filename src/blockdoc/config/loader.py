"""Configuration loader with YAML and environment variable support.

This module reads ~/.config/blockdoc/config.yaml (when present) and allows
environment variable overrides using the BLOCKDOC_* prefix.

Environment variables:
- BLOCKDOC_DEFAULT_BLOCK: Override the default block tool
- BLOCKDOC_READ_ONLY: Build tool instances read-only ("1", "true", "yes")
- BLOCKDOC_DRAG_THRESHOLD: Override the drag threshold in pixels
- BLOCKDOC_HISTORY_MAX_LENGTH: Override the number of undo entries kept
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from blockdoc.models.config import EditorConfig
from blockdoc.services.exceptions import ConfigError
from blockdoc.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "blockdoc" / "config.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def load_config(config_path: Optional[Path] = None) -> EditorConfig:
    """Load configuration from YAML file with environment variable overrides.

    A missing file at the default location is not an error: defaults are
    used. A missing file at an explicitly given path is.

    Args:
        config_path: Path to config file. If None, uses ~/.config/blockdoc/config.yaml

    Returns:
        Validated EditorConfig object

    Raises:
        ConfigError: If the file is missing (explicit path), unparseable or invalid
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error("config_parse_error", path=str(config_path), error=str(e))
            raise ConfigError(f"Invalid YAML in configuration file:\n{e}", str(config_path)) from e
        if not isinstance(data, dict):
            raise ConfigError("Configuration file must contain a mapping", str(config_path))
    elif explicit:
        logger.error("config_not_found", path=str(config_path))
        raise ConfigError("Configuration file not found", str(config_path))
    else:
        data = {}

    data = _apply_env_overrides(data)

    try:
        config = EditorConfig(**data)
    except ValidationError as e:
        logger.error("config_validation_error", path=str(config_path), error=str(e))
        raise ConfigError(f"Configuration validation failed:\n{e}", str(config_path)) from e

    logger.info("config_loaded", path=str(config_path), tools=[tool.name for tool in config.tools])
    return config


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration data.

    Args:
        data: Base configuration dictionary from YAML

    Returns:
        Configuration dictionary with environment overrides applied
    """
    data = dict(data)
    data["drag"] = dict(data.get("drag") or {})
    data["history"] = dict(data.get("history") or {})

    if env_default := os.getenv("BLOCKDOC_DEFAULT_BLOCK"):
        data["default_block"] = env_default

    if env_read_only := os.getenv("BLOCKDOC_READ_ONLY"):
        data["read_only"] = env_read_only.strip().lower() in _TRUE_VALUES

    if env_threshold := os.getenv("BLOCKDOC_DRAG_THRESHOLD"):
        try:
            data["drag"]["threshold"] = float(env_threshold)
        except ValueError:
            logger.warning("config_env_ignored", variable="BLOCKDOC_DRAG_THRESHOLD", value=env_threshold)

    if env_max_length := os.getenv("BLOCKDOC_HISTORY_MAX_LENGTH"):
        try:
            data["history"]["max_length"] = int(env_max_length)
        except ValueError:
            logger.warning("config_env_ignored", variable="BLOCKDOC_HISTORY_MAX_LENGTH", value=env_max_length)

    return data
