"""YAML configuration loader with environment variable overrides.

Configuration is layered, later layers winning:

  1. ``config/config.yaml`` -- static defaults checked into the repo
  2. ``.env`` file          -- local developer overrides (not committed)
  3. environment variables  -- set at deploy time

:func:`load_config` reads the YAML first and deep-merges the env-derived
values from :class:`Settings` on top, so a key such as
``resolution.cache_validity_days`` can default in YAML and still be
overridden per environment.
"""

from pathlib import Path

import yaml

from originmap.config.settings import Settings
from originmap.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is treated
            as an empty document.
        settings: Settings instance to merge; a fresh one is built if omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: The file is not valid YAML or is not a mapping.
    """
    config_path = Path(path)
    if config_path.exists():
        try:
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(message=f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(yaml_config, dict):
            raise ConfigurationError(message=f"{config_path} must contain a mapping at the top level")
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "musicbrainz": {
            "base_url": settings.musicbrainz_base_url,
            "user_agent": settings.musicbrainz_user_agent,
            "search_delay": settings.musicbrainz_search_delay,
            "area_delay": settings.musicbrainz_area_delay,
        },
        "resolution": {
            "cache_db_path": settings.origin_cache_db_path,
            "cache_validity_days": settings.origin_cache_validity_days,
            "area_max_depth": settings.area_max_depth,
            "max_sessions": settings.resolution_max_sessions,
        },
        "spotify": {
            "base_url": settings.spotify_api_base_url,
            "page_size": settings.spotify_page_size,
            "max_retries": settings.spotify_max_retries,
            "batch_size": settings.spotify_batch_size,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
