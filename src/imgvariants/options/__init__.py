"""Option expansion — presets, normalization and multiplexing."""

from imgvariants.options.multiplex import create_image_options, multiplex
from imgvariants.options.normalize import (
    ALLOWED_IMAGE_PROPERTIES,
    Computed,
    normalize_output_options,
)
from imgvariants.options.presets import expand_outputs, require_preset, resolve_output

__all__ = [
    "ALLOWED_IMAGE_PROPERTIES",
    "Computed",
    "create_image_options",
    "expand_outputs",
    "multiplex",
    "normalize_output_options",
    "require_preset",
    "resolve_output",
]
