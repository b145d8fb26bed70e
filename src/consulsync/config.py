"""
Configuration loading -- defaults, then YAML file, then environment.

The result is a plain ``SyncConfig``. Nothing below the CLI reads the
process environment; the engine only ever sees the config it is given.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from .models import LOCAL_DEFAULT_ADDR, STAGING_DEFAULT_ADDR, SyncConfig

logger = logging.getLogger("consulsync.config")

CONFIG_ENV_VAR = "CONSUL_SYNC_CONFIG"

DEFAULT_ADDRESSES = {"local": LOCAL_DEFAULT_ADDR, "staging": STAGING_DEFAULT_ADDR}

# (store, field) -> environment variable
ENV_VARS = {
    ("local", "address"): "LOCAL_CONSUL_ADDR",
    ("local", "token"): "LOCAL_CONSUL_TOKEN",
    ("staging", "address"): "STAGING_CONSUL_ADDR",
    ("staging", "token"): "STAGING_CONSUL_TOKEN",
}


class ConfigError(Exception):
    """The configuration file or values are invalid."""


def _load_file(config_file: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config {config_file}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_file} must be a mapping")
    logger.debug("Loaded config file %s", config_file)
    return data


def load_config(
    env: Optional[Mapping[str, str]] = None,
    config_file: Optional[Path] = None,
) -> SyncConfig:
    """Build the sync configuration.

    Args:
        env: Environment mapping. Defaults to ``os.environ``.
        config_file: Optional YAML file. Falls back to ``$CONSUL_SYNC_CONFIG``.

    Returns:
        SyncConfig: Validated configuration.

    Raises:
        ConfigError: If the file is unreadable or values are invalid.
    """
    env = os.environ if env is None else env
    if config_file is None and env.get(CONFIG_ENV_VAR):
        config_file = Path(env[CONFIG_ENV_VAR]).expanduser()

    data = _load_file(config_file) if config_file else {}

    for (store, field), var in ENV_VARS.items():
        value = env.get(var, "")
        if not value:
            continue
        section = data.setdefault(store, {})
        if not isinstance(section, dict):
            raise ConfigError(f"Config section '{store}' must be a mapping")
        section[field] = value

    for store in ("local", "staging"):
        section = data.get(store)
        if isinstance(section, dict):
            section.setdefault("name", store)
            section.setdefault("address", DEFAULT_ADDRESSES[store])

    try:
        return SyncConfig(**data)
    except (ValidationError, TypeError) as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
