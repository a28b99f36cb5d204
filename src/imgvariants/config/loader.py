"""YAML config loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from imgvariants.config.defaults import DEFAULT_CACHE_PATH
from imgvariants.config.hierarchy import load_config_hierarchy
from imgvariants.config.schema import ImgVariantsConfig
from imgvariants.errors.exceptions import ConfigError

# Hierarchy keys that only steer config resolution and are not model fields.
_RESOLUTION_KEYS = ("cache_directory", "cache_disabled", "log_level")


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Load any YAML file safely."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    with open(path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", path=str(path)) from e

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected YAML mapping, got {type(raw).__name__} in {path}", path=str(path)
        )

    return raw


def load_presets_yaml(path: str | Path) -> dict[str, dict[str, Any]]:
    """Load a presets YAML file (top-level ``presets`` mapping)."""
    raw = load_yaml(path)
    presets = raw.get("presets")
    if not isinstance(presets, dict):
        raise ConfigError(f"Invalid presets YAML: missing top-level 'presets' key in {path}")

    for name, preset in presets.items():
        if not isinstance(preset, dict):
            raise ConfigError(f"Preset '{name}' must be a mapping in {path}")
    return presets


def build_config(raw: dict[str, Any]) -> ImgVariantsConfig:
    """Validate a merged config dict into an ImgVariantsConfig.

    ``cache_directory: true`` selects the default cache location when no
    explicit ``cache_dir`` is set; ``cache_disabled`` turns caching off.
    """
    data = {k: v for k, v in raw.items() if k not in _RESOLUTION_KEYS}
    if raw.get("cache_directory") is True and not data.get("cache_dir"):
        data["cache_dir"] = DEFAULT_CACHE_PATH
    if raw.get("cache_disabled"):
        data["cache_dir"] = None

    try:
        return ImgVariantsConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(**runtime_overrides: Any) -> ImgVariantsConfig:
    """Resolve the configuration hierarchy and validate the result."""
    return build_config(load_config_hierarchy(**runtime_overrides))
