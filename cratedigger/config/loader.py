"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. Field defaults on :class:`Settings`
  2. ``config/config.yaml`` -- static defaults checked into the repo
  3. ``.env`` file          -- local developer overrides (not committed)
  4. Environment variables  -- set at deploy time

YAML sections only group keys.  Inside a section, a key is matched first
as ``<section>_<key>`` and then as a bare field name::

    subsonic:
      host: http://navidrome:4533      # -> subsonic_host
    catalog_discovery:
      enabled: true                    # -> catalog_discovery_enabled
      similar_artist_limit: 10         # -> similar_artist_limit
"""

from pathlib import Path
from typing import Any

import yaml

from cratedigger.config.settings import Settings
from cratedigger.utils.errors import ConfigurationError
from cratedigger.utils.logging import get_logger

logger = get_logger(__name__)


def load_settings(path: str | Path = "config/config.yaml") -> Settings:
    """Build :class:`Settings` from YAML, ``.env`` and the environment.

    A missing YAML file is not an error; the remaining layers still apply.

    Raises
    ------
    ConfigurationError
        If the YAML file cannot be parsed or a value has the wrong type.
    """
    yaml_values = _flatten_sections(_read_yaml(Path(path)))

    # Settings() only sees .env and the environment; model_fields_set tells
    # which fields those layers actually provided.
    env_settings = Settings()
    env_values = {name: getattr(env_settings, name) for name in env_settings.model_fields_set}

    try:
        return Settings(**{**yaml_values, **env_values})
    except ValueError as exc:
        raise ConfigurationError(message=f"Invalid configuration: {exc}") from exc


def _read_yaml(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        logger.debug("config_file_missing", path=str(config_path))
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(message=f"Cannot parse {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(message=f"{config_path} must contain a mapping at the top level")
    return data


def _flatten_sections(data: dict[str, Any]) -> dict[str, Any]:
    """Map nested YAML sections onto flat :class:`Settings` field names."""
    fields = Settings.model_fields
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if key in fields:
            flat[key] = value
            continue
        if not isinstance(value, dict):
            logger.warning("config_key_ignored", key=key)
            continue
        for sub_key, sub_value in value.items():
            prefixed = f"{key}_{sub_key}"
            if prefixed in fields:
                flat[prefixed] = sub_value
            elif sub_key in fields:
                flat[sub_key] = sub_value
            else:
                logger.warning("config_key_ignored", key=f"{key}.{sub_key}")
    return flat
