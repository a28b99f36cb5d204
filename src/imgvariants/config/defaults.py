"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Emission
DEFAULT_EMIT_FILE = "normal"
DEFAULT_PUBLIC_PATH = ""

# Output file naming (Jinja2 template, see imaging.result)
DEFAULT_NAME_TEMPLATE = "{{ name }}-{{ hash }}.{{ ext }}"

# Default cache settings
DEFAULT_CACHE_DIRECTORY = False
DEFAULT_CACHE_DISABLED = False
DEFAULT_CACHE_MAX_MB = 5000.0
DEFAULT_CACHE_PATH = Path.home() / ".cache" / "imgvariants"

# Concurrency (None = one task per variant, unbounded)
DEFAULT_MAX_CONCURRENCY: int | None = None

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "emit_file": DEFAULT_EMIT_FILE,
        "public_path": DEFAULT_PUBLIC_PATH,
        "cache_directory": DEFAULT_CACHE_DIRECTORY,
        "cache_disabled": DEFAULT_CACHE_DISABLED,
        "cache_max_mb": DEFAULT_CACHE_MAX_MB,
        "max_concurrency": DEFAULT_MAX_CONCURRENCY,
        "presets": {},
        "log_level": DEFAULT_LOG_LEVEL,
    }
