"""Placeholder metadata for dry runs that skip the transform."""

from __future__ import annotations

from imgvariants.imaging.transform import canonical_format, target_size
from imgvariants.types import ImageOptions, SourceMeta, TransformInfo


def get_synthetic_meta(options: ImageOptions, meta: SourceMeta) -> TransformInfo:
    """Derive the metadata a real transform would report, from options alone."""
    size = target_size(meta, options)
    if size is None:
        size = (round(meta.width), round(meta.height))
    fmt = options.get("format")
    return TransformInfo(
        width=size[0],
        height=size[1],
        format=canonical_format(fmt if fmt is not None else meta.format),
        size=0,
    )
