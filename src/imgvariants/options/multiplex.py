"""Expand list-valued option fields into one record per combination."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from imgvariants.options.normalize import (
    ALLOWED_IMAGE_PROPERTIES,
    normalize_output_options,
    pick_allowed,
)
from imgvariants.types import ImageOptions, NormalizedOptions, SourceMeta


def multiplex(options: NormalizedOptions) -> list[ImageOptions]:
    """Cartesian product of ``options`` as a list of flat records.

    Records are ordered by mixed-radix counting where the first key is the
    most significant digit, so values keep their list order and keys keep
    their mapping order. An empty mapping yields a single empty record.
    """
    keys = list(options)
    lists = [options[key] for key in keys]
    radices = [len(values) for values in lists]
    total = math.prod(radices)

    result: list[ImageOptions] = []
    digits = [0] * len(keys)
    for _ in range(total):
        result.append({key: lists[i][digits[i]] for i, key in enumerate(keys)})
        # Increment, least significant digit last
        for pos in range(len(digits) - 1, -1, -1):
            digits[pos] += 1
            if digits[pos] < radices[pos]:
                break
            digits[pos] = 0
    return result


def create_image_options(meta: SourceMeta, output: Mapping[str, Any]) -> list[ImageOptions]:
    """Normalize and multiplex one resolved output spec.

    A callable ``meta`` entry rewrites the source metadata seen by computed
    fields. The ``preset`` name is not multiplexed and is copied onto every
    record.
    """
    context = meta
    meta_fn = output.get("meta")
    if callable(meta_fn):
        context = meta_fn(meta)

    fields = {key: value for key, value in output.items() if key in ALLOWED_IMAGE_PROPERTIES}
    base = normalize_output_options(fields, context)
    out = multiplex(pick_allowed(base))

    preset = output.get("preset")
    if isinstance(preset, str):
        for item in out:
            item["preset"] = preset
    return out
