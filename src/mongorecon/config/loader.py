"""Configuration loading utilities."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from mongorecon.config.models import Settings
from mongorecon.errors import ConfigurationError


def load_config(config_path: Path | None) -> Settings:
    """
    Load settings from a YAML file or return defaults.

    Args:
        config_path: Path to YAML config file, or None for defaults.

    Returns:
        Validated Settings object.

    Raises:
        FileNotFoundError: If config_path doesn't exist.
        ValueError: If YAML is invalid.
        ConfigurationError: If the document fails validation.
    """
    if config_path is None:
        return Settings()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with config_path.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ValueError(f"YAML root must be a mapping, not {type(data).__name__}")

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e
