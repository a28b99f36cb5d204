"""Source image metadata extraction."""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image, UnidentifiedImageError

from imgvariants.errors.exceptions import TransformError
from imgvariants.types import SourceMeta

if TYPE_CHECKING:
    from imgvariants.config.schema import ImgVariantsConfig

_DENSITY_SUFFIX = re.compile(r"@([0-9]+)x")


def get_image_metadata(
    source_bytes: bytes,
    source_path: str | Path,
    config: ImgVariantsConfig | None = None,
) -> SourceMeta:
    """Read natural size and format from the encoded source bytes."""
    try:
        with Image.open(io.BytesIO(source_bytes)) as img:
            width, height = img.size
            fmt = (img.format or "").lower()
    except (UnidentifiedImageError, OSError) as e:
        raise TransformError(
            f"Cannot read image {source_path}: {e}",
            error_type="unreadable_source",
            original=e,
        ) from e
    return SourceMeta(width=width, height=height, format=fmt)


def apply_density_scale(meta: SourceMeta, source_path: str | Path) -> SourceMeta:
    """Apply an ``@2x``-style density suffix: record the scale, shrink to logical size."""
    match = _DENSITY_SUFFIX.search(str(source_path))
    if not match:
        return meta
    scale = int(match.group(1))
    if scale == 0:
        return meta
    return meta.model_copy(
        update={
            "scale": float(scale),
            "width": meta.width / scale,
            "height": meta.height / scale,
        }
    )
