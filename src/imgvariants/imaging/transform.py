"""Pillow-backed variant transform: resize, blur and re-encode."""

from __future__ import annotations

import asyncio
import io
import logging
import math
from typing import Any

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from imgvariants.errors.exceptions import TransformError
from imgvariants.options.normalize import check_numeric
from imgvariants.types import ImageOptions, ResizeMode, SourceMeta, TransformInfo

logger = logging.getLogger(__name__)

# Output format name → Pillow encoder name
_ENCODERS = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "tiff": "TIFF",
}
_ALIASES = {"jpg": "jpeg", "tif": "tiff"}

# Modes Pillow can resize and filter directly
_WORKING_MODES = {"RGB", "RGBA", "L", "LA"}


def canonical_format(name: Any) -> str:
    fmt = str(name).lower()
    return _ALIASES.get(fmt, fmt)


def resolve_format(requested: Any, source_format: str) -> str:
    """Pick the output format: requested, else the source's own."""
    fmt = canonical_format(requested if requested is not None else source_format)
    if fmt not in _ENCODERS:
        raise TransformError(f"Unsupported output format: {fmt}", error_type="unsupported_format")
    return fmt


def resolve_mode(requested: Any) -> ResizeMode:
    if requested is None:
        return ResizeMode.COVER
    try:
        return ResizeMode(str(requested).lower())
    except ValueError as e:
        raise TransformError(f"Unknown resize mode: {requested}") from e


def target_size(meta: SourceMeta, options: ImageOptions) -> tuple[int, int] | None:
    """Output pixel size for ``options``, None when no resize is requested.

    Width and height are logical sizes multiplied by the variant's scale. A
    missing dimension follows the source aspect ratio.
    """
    width = options.get("width")
    height = options.get("height")
    scale = options.get("scale", 1.0)
    if width is None and height is None:
        if "scale" not in options:
            return None
        width, height = meta.width, meta.height
    elif width is None:
        width = height * meta.width / meta.height
    elif height is None:
        height = width * meta.height / meta.width

    pixels = (width * scale, height * scale)
    if not all(math.isfinite(p) for p in pixels):
        raise TransformError(f"Invalid output dimensions: {pixels[0]}x{pixels[1]}")
    size = (round(pixels[0]), round(pixels[1]))
    if size[0] < 1 or size[1] < 1:
        raise TransformError(f"Invalid output dimensions: {size[0]}x{size[1]}")
    return size


async def transform_image(
    source_bytes: bytes,
    meta: SourceMeta,
    options: ImageOptions,
) -> tuple[bytes, TransformInfo]:
    """Produce one variant off the event loop."""
    return await asyncio.to_thread(render_variant, source_bytes, meta, options)


def render_variant(
    source_bytes: bytes,
    meta: SourceMeta,
    options: ImageOptions,
) -> tuple[bytes, TransformInfo]:
    check_numeric(options)
    fmt = resolve_format(options.get("format"), meta.format)
    mode = resolve_mode(options.get("mode"))
    size = target_size(meta, options)
    blur = options.get("blur")
    if blur is not None and (blur < 0 or not math.isfinite(blur)):
        raise TransformError(f"Invalid blur radius: {blur}")

    try:
        with Image.open(io.BytesIO(source_bytes)) as src:
            img = src if src.mode in _WORKING_MODES else src.convert("RGBA")
            if size is not None:
                img = _resize(img, size, mode)
            if blur:
                img = img.filter(ImageFilter.GaussianBlur(radius=blur))
            if fmt == "jpeg" and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")

            buf = io.BytesIO()
            img.save(buf, format=_ENCODERS[fmt])
            data = buf.getvalue()
            width, height = img.size
            channels = len(img.getbands())
    except (UnidentifiedImageError, OSError) as e:
        raise TransformError(
            f"Cannot transform image: {e}", error_type="encode_failure", original=e
        ) from e

    logger.info("Rendered %dx%d %s (%d bytes)", width, height, fmt, len(data))
    return data, TransformInfo(
        width=width, height=height, format=fmt, size=len(data), channels=channels
    )


def _resize(img: Image.Image, size: tuple[int, int], mode: ResizeMode) -> Image.Image:
    if mode == ResizeMode.COVER:
        return ImageOps.fit(img, size, method=Image.Resampling.LANCZOS)
    if mode == ResizeMode.CONTAIN:
        return ImageOps.contain(img, size, method=Image.Resampling.LANCZOS)
    if mode == ResizeMode.INSIDE:
        out = img.copy()
        out.thumbnail(size, Image.Resampling.LANCZOS)
        return out
    return img.resize(size, Image.Resampling.LANCZOS)
