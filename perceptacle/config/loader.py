"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers, later layers overriding earlier ones:

  1. ``config/config.yaml``  static tuning checked into the repo
                             (result limits, Census benchmarks, ZIP hints,
                             cache sizes)
  2. ``.env`` file           local developer overrides (not committed)
  3. Environment variables   set at deploy time

``load_config()`` reads the YAML first, then deep-merges the env-derived
values from :class:`Settings` on top::

    base      = {"cache": {"opencage": {"ttl_seconds": 300}}}
    overrides = {"cache": {"opencage": {"max_entries": 50}}}
    result    = {"cache": {"opencage": {"ttl_seconds": 300, "max_entries": 50}}}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from perceptacle.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
            an empty base, so every consumer must supply its own defaults.
        settings: Settings to derive overrides from; a fresh instance is
            built when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "geocoding": {
            "available_providers": settings.get_available_geocoders(),
        },
        "storage": {
            "data_dir": settings.data_dir,
            "uploads_dir": settings.uploads_dir,
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
