"""Error handling — exception hierarchy for the variant pipeline."""

from imgvariants.errors.exceptions import (
    CacheReadError,
    CacheWriteError,
    ConfigError,
    ImgVariantsError,
    NormalizationError,
    TransformError,
    VariantError,
)

__all__ = [
    "ImgVariantsError",
    "ConfigError",
    "NormalizationError",
    "CacheReadError",
    "CacheWriteError",
    "TransformError",
    "VariantError",
]
