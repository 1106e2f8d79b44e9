"""Config Loader - Loads console connection settings.

Handles loading YAML config files with environment variable substitution
so passwords can stay out of the file:

    servers:
      lab:
        base_url: https://nexpose.lab:3780
        username: admin
        password: ${NEXPOSE_PASSWORD}
        api_version: "1.2"
    default: lab

A file holding a single console may give its settings at the top level
instead of under ``servers``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nexpose_api.errors import ConfigurationError
from nexpose_api.models import ServersConfig, SessionConfig

_ENV_VAR = re.compile(r"\$\{([^}]+)\}")


class ConfigError(ConfigurationError):
    """Raised when configuration loading fails."""


def load_config(config_path: Path | str) -> ServersConfig:
    """Load server configuration from YAML with ${ENV_VAR} substitution.

    A file with top-level connection settings and no ``servers`` key is a
    single server named ``default``.

    Raises:
        ConfigError: If the file is missing or unreadable, is not a YAML
            mapping, names an unset environment variable, or fails
            validation. Validation errors name each offending field.
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")
    if "servers" not in raw_config and "base_url" in raw_config:
        raw_config = {"servers": {"default": raw_config}, "default": "default"}

    try:
        return ServersConfig.model_validate(_substitute_env_vars(raw_config))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigError(f"Invalid config structure in {path}: {problems}") from e


def select_server(config: ServersConfig, name: str | None = None) -> SessionConfig:
    """Return the named server, or the default (or only) one when *name* is None."""
    if name is None:
        if config.default is not None:
            name = config.default
        elif len(config.servers) == 1:
            name = next(iter(config.servers))
        else:
            available = ", ".join(config.servers.keys())
            raise ConfigError(f"No server named and no default set. Available: {available}")

    if name not in config.servers:
        available = ", ".join(config.servers.keys())
        raise ConfigError(f"Server '{name}' not found in config. Available: {available}")
    return config.servers[name]


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises ConfigError if env var is not set."""

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set")
        return value

    return _ENV_VAR.sub(replacer, s)
