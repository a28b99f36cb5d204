"""Resolve output references against the configured preset table."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from imgvariants.config.schema import ImgVariantsConfig, OutputRef
from imgvariants.options.multiplex import create_image_options
from imgvariants.types import ImageOptions, SourceMeta

logger = logging.getLogger(__name__)


def require_preset(name: str, config: ImgVariantsConfig) -> dict[str, Any] | None:
    """Return the preset ``name`` layered over the global base fields.

    Unknown names resolve to None; the caller skips that output.
    """
    preset = config.presets.get(name)
    if preset is None:
        logger.debug("Preset '%s' not configured, skipping", name)
        return None

    base: dict[str, Any] = {}
    if config.name is not None:
        base["name"] = config.name
    if config.meta is not None:
        base["meta"] = config.meta
    return {**base, **preset, "preset": name}


def resolve_output(output: Any, config: ImgVariantsConfig) -> dict[str, Any] | None:
    """Resolve one output reference into the effective output spec.

    A string names a preset. A mapping is used as-is, layered over the preset
    named by its ``preset`` field when that preset exists.
    """
    if isinstance(output, str):
        return require_preset(output, config)
    if isinstance(output, dict):
        preset_name = output.get("preset")
        preset = require_preset(preset_name, config) if isinstance(preset_name, str) else None
        return {**(preset or {}), **output}
    logger.debug("Ignoring output reference of type %s", type(output).__name__)
    return None


def select_outputs(
    local_outputs: OutputRef | Sequence[OutputRef] | None,
    config: ImgVariantsConfig,
) -> list[OutputRef]:
    """Pick the outputs to build: local, then configured defaults, then all presets."""
    if local_outputs is not None:
        if isinstance(local_outputs, (str, dict)):
            return [local_outputs]
        return list(local_outputs)
    if config.default_outputs is not None:
        return list(config.default_outputs)
    return list(config.presets)


def expand_outputs(
    outputs: Sequence[OutputRef],
    meta: SourceMeta,
    config: ImgVariantsConfig,
) -> list[ImageOptions]:
    """Expand every output into variant options, keeping declaration order."""
    options_list: list[ImageOptions] = []
    for output in outputs:
        resolved = resolve_output(output, config)
        if resolved is None:
            continue
        options_list.extend(create_image_options(meta, resolved))
    return options_list
