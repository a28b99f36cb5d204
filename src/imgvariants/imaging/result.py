"""Variant result assembly, file emission and serialization."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from jinja2 import ChainableUndefined
from jinja2.sandbox import SandboxedEnvironment

from imgvariants.cache.keys import hash_options, hash_source
from imgvariants.config.defaults import DEFAULT_NAME_TEMPLATE
from imgvariants.config.schema import ImgVariantsConfig
from imgvariants.types import ImageOptions, TransformInfo, VariantResult
from imgvariants.utils.image import image_to_base64

_jinja_env = SandboxedEnvironment(
    autoescape=False,
    undefined=ChainableUndefined,
)

# File extension per output format, where it differs
_EXTENSIONS = {"jpeg": "jpg", "tiff": "tif"}


def create_image_object(
    source_bytes: bytes,
    payload: bytes | None,
    info: TransformInfo,
    options: ImageOptions,
    config: ImgVariantsConfig,
    source_path: str | Path,
) -> VariantResult:
    """Build the result descriptor for one variant.

    The file name comes from the variant's ``name`` template (or the default
    one). Synthetic variants have no payload; their hash is derived from the
    source bytes and options instead.
    """
    if payload is not None:
        digest = hashlib.sha256(payload).hexdigest()
    else:
        digest = hash_options({**options, "source": hash_source(source_bytes)})

    context = {
        "name": Path(source_path).stem,
        "path": _relative_dir(source_path, config.context),
        "ext": _EXTENSIONS.get(info.format, info.format),
        "hash": digest[:16],
        "width": info.width,
        "height": info.height,
        "format": info.format,
        "scale": options.get("scale"),
        "preset": options.get("preset"),
    }
    template = options.get("name") or DEFAULT_NAME_TEMPLATE
    name = render_name(str(template), context)

    inline = options.get("inline") is True
    data = None
    if inline and payload is not None:
        data = f"data:image/{info.format};base64,{image_to_base64(payload)}"

    return VariantResult(
        name=name,
        url=data if data is not None else config.public_path + name,
        width=info.width,
        height=info.height,
        format=info.format,
        size=info.size,
        scale=options.get("scale"),
        preset=options.get("preset"),
        inline=inline,
        data=data,
        options=options,
    )


def render_name(template: str, context: dict[str, Any]) -> str:
    values = {k: v for k, v in context.items() if v is not None}
    return _jinja_env.from_string(template).render(**values)


class DirectoryEmitter:
    """Writes emitted variant files below an output directory."""

    def __init__(self, output_dir: str | Path) -> None:
        self._output_dir = Path(output_dir)

    def __call__(self, name: str, payload: bytes) -> None:
        root = self._output_dir.resolve()
        target = (root / name).resolve()
        if not target.is_relative_to(root):
            raise ValueError(f"Refusing to emit outside {root}: {name}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)


def serialize_results(results: Sequence[VariantResult]) -> str:
    """Render the result list as JSON for downstream consumers."""
    return json.dumps([r.model_dump(mode="json") for r in results], indent=2)


def _relative_dir(source_path: str | Path, context: str | None) -> str:
    if not context:
        return ""
    try:
        rel = Path(source_path).resolve().parent.relative_to(Path(context).resolve())
    except ValueError:
        return ""
    return "" if rel == Path(".") else f"{rel.as_posix()}/"
