"""Normalize raw output specs into canonical list-valued option fields."""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from imgvariants.errors.exceptions import NormalizationError
from imgvariants.types import ImageOptions, NormalizedOptions

ALLOWED_IMAGE_PROPERTIES: tuple[str, ...] = (
    "name",
    "scale",
    "blur",
    "width",
    "height",
    "mode",
    "format",
    "inline",
)

NUMERIC_PROPERTIES = frozenset({"scale", "blur", "width", "height"})

# Longest leading decimal literal, trailing text ignored ("100px" -> 100)
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:Infinity|"
    r"(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?))"
)


@dataclass(frozen=True)
class Computed:
    """An option value derived from the source metadata at normalization time."""

    fn: Callable[..., Any]

    def __call__(self, *args: Any) -> Any:
        return self.fn(*args)


def normalize_property(key: str, value: Any) -> Any:
    """Coerce one scalar value; numeric keys become floats (NaN if unparseable)."""
    if key not in NUMERIC_PROPERTIES:
        return value
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    return parse_float_prefix(str(value))


def parse_float_prefix(text: str) -> float:
    """Parse the numeric prefix of ``text``; NaN when there is none."""
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return math.nan
    return float(match.group(1))


def normalize_output_options(options: Mapping[str, Any], *args: Any) -> NormalizedOptions:
    """Turn every field of ``options`` into a non-empty list of scalars.

    Callables (and ``Computed`` values) are invoked with ``args`` and their
    result normalized in turn. ``None`` entries are dropped from lists, and a
    field whose list ends up empty is dropped entirely.
    """

    def normalize(key: str, value: Any) -> list[Any] | None:
        if callable(value):
            return normalize(key, value(*args))
        if isinstance(value, (list, tuple)):
            out = [normalize_property(key, v) for v in value if v is not None]
            return out or None
        if value is not None:
            return [normalize_property(key, value)]
        return None

    result: NormalizedOptions = {}
    for key, value in options.items():
        out = normalize(key, value)
        if out is not None:
            result[key] = out
    return result


def pick_allowed(normalized: NormalizedOptions) -> NormalizedOptions:
    """Keep only the multiplexed image properties, in declaration order."""
    return {key: normalized[key] for key in ALLOWED_IMAGE_PROPERTIES if key in normalized}


def check_numeric(options: ImageOptions) -> None:
    """Raise NormalizationError if a numeric field of a variant is NaN."""
    for key in NUMERIC_PROPERTIES:
        value = options.get(key)
        if isinstance(value, float) and math.isnan(value):
            raise NormalizationError(
                f"Option '{key}' is not a number", field=key, value=value
            )
