"""
Configuration loader with deep merge.

Precedence order (lowest to highest):
1. Defaults (defined in the Pydantic schemas)
2. YAML file (path from ODX_CONFIG)
3. Environment variables

The sink address itself is resolved separately by resolve_dsn(), since its
absence is an expected, non-fatal condition.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .schema import AppConfig

CONFIG_PATH_ENV = "ODX_CONFIG"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dictionary merge.

    Args:
        base: Base dictionary
        override: Dictionary whose values win on leaf conflicts

    Returns:
        New merged dictionary.

    Example:
        >>> deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"b": 99}, "e": 4})
        {'a': {'b': 99, 'c': 2}, 'e': 4}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_config(config_path: Path | None) -> dict[str, Any]:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file, or None to skip

    Returns:
        Dictionary with the configuration, or an empty dict if there is no file

    Raises:
        ConfigError: If the file does not exist or is not a YAML mapping
    """
    if not config_path:
        return {}

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")
    return data


def load_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Load overrides from environment variables.

    Supported variables:
        ODX_MODE: overrides telemetry.mode
        ODX_EXPORTER: overrides telemetry.exporter
        ODX_LOG_LEVEL: overrides logging.level
        ODX_LOG_FILE: overrides logging.file

    Returns:
        Dictionary with the overrides
    """
    overrides: dict[str, Any] = {}

    if mode := environ.get("ODX_MODE"):
        overrides.setdefault("telemetry", {})["mode"] = mode.lower()

    if exporter := environ.get("ODX_EXPORTER"):
        overrides.setdefault("telemetry", {})["exporter"] = exporter.lower()

    if log_level := environ.get("ODX_LOG_LEVEL"):
        overrides.setdefault("logging", {})["level"] = log_level.lower()

    if log_file := environ.get("ODX_LOG_FILE"):
        overrides.setdefault("logging", {})["file"] = log_file

    return overrides


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load and validate the complete application configuration.

    Args:
        config_path: Path to the YAML file. Defaults to $ODX_CONFIG if set.
        environ: Environment to read from (defaults to os.environ)

    Returns:
        Validated AppConfig

    Raises:
        ConfigError: If the file is missing/invalid or validation fails
    """
    if environ is None:
        environ = os.environ

    if config_path is None and (env_path := environ.get(CONFIG_PATH_ENV)):
        config_path = Path(env_path)

    merged = deep_merge(load_yaml_config(config_path), load_env_overrides(environ))

    try:
        return AppConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def resolve_dsn(config: AppConfig, environ: Mapping[str, str] | None = None) -> str:
    """Resolve the telemetry sink address for the configured mode.

    Returns:
        The sink address

    Raises:
        ConfigError: If neither an explicit dsn nor the mode's variable is set
    """
    if config.telemetry.dsn:
        return config.telemetry.dsn

    if environ is None:
        environ = os.environ

    key = config.telemetry.dsn_env
    dsn = environ.get(key)
    if not dsn:
        raise ConfigError(f"environment variable not found: {key}")
    return dsn
