"""Variant pipeline — expands one source image into its cached variants."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from pathlib import Path

from imgvariants.cache.keys import generate_cache_key, hash_source
from imgvariants.cache.manager import VariantCache
from imgvariants.config.schema import ImgVariantsConfig, OutputRef
from imgvariants.errors.exceptions import VariantError
from imgvariants.imaging.metadata import apply_density_scale, get_image_metadata
from imgvariants.imaging.result import create_image_object
from imgvariants.imaging.synthetic import get_synthetic_meta
from imgvariants.imaging.transform import transform_image
from imgvariants.options.normalize import check_numeric
from imgvariants.options.presets import expand_outputs, select_outputs
from imgvariants.pipeline.interfaces import (
    FileEmitter,
    MetadataExtractor,
    ResultAssembler,
    Transform,
)
from imgvariants.types import EmitMode, ImageOptions, SourceMeta, VariantResult

logger = logging.getLogger(__name__)


class VariantPipeline:
    """Drives one source image through every requested output.

    Per variant: synthetic placeholder, or cache lookup → transform on miss →
    cache store, then result assembly and file emission. Variants run
    concurrently; results keep the multiplexed order.
    """

    def __init__(
        self,
        config: ImgVariantsConfig,
        cache: VariantCache | None = None,
        transform: Transform = transform_image,
        extractor: MetadataExtractor = get_image_metadata,
        assembler: ResultAssembler = create_image_object,
        emitter: FileEmitter | None = None,
    ) -> None:
        self._config = config
        self._cache = cache or VariantCache()
        self._transform = transform
        self._extractor = extractor
        self._assembler = assembler
        self._emitter = emitter

    @property
    def cache(self) -> VariantCache:
        return self._cache

    def build_options(
        self,
        meta: SourceMeta,
        outputs: OutputRef | Sequence[OutputRef] | None = None,
    ) -> list[ImageOptions]:
        """Resolve, normalize and multiplex the outputs for one source."""
        selected = select_outputs(outputs, self._config)
        options_list = expand_outputs(selected, meta, self._config)
        return [merge_source_meta(options, meta) for options in options_list]

    async def run(
        self,
        source_path: str | Path,
        source_bytes: bytes,
        outputs: OutputRef | Sequence[OutputRef] | None = None,
        meta: SourceMeta | None = None,
    ) -> list[VariantResult]:
        """Produce every variant of ``source_path``.

        Every variant runs to completion; the first VariantError in variant
        order is raised afterwards.
        """
        if meta is None:
            meta = self._extractor(source_bytes, source_path, self._config)
        meta = apply_density_scale(meta, source_path)

        options_list = self.build_options(meta, outputs)
        source_id = f"{Path(source_path).resolve()}:{hash_source(source_bytes)}"
        logger.info("Expanding %s into %d variant(s)", source_path, len(options_list))

        limit = self._config.max_concurrency
        semaphore = asyncio.Semaphore(limit) if limit else None

        async def _run_variant(index: int, options: ImageOptions) -> VariantResult:
            guard = semaphore if semaphore is not None else contextlib.nullcontext()
            async with guard:
                try:
                    return await self.process_variant(
                        source_path, source_bytes, source_id, meta, options
                    )
                except Exception as e:
                    logger.error("Variant %d of %s failed: %s", index, source_path, e)
                    raise VariantError(
                        f"Variant {index} of {source_path} failed: {e}",
                        index=index,
                        options=options,
                        inner=e,
                    ) from e

        # Let every variant settle before reporting a failure
        outcomes = await asyncio.gather(
            *[_run_variant(i, o) for i, o in enumerate(options_list)],
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(outcomes)

    async def process_variant(
        self,
        source_path: str | Path,
        source_bytes: bytes,
        source_id: str,
        meta: SourceMeta,
        options: ImageOptions,
    ) -> VariantResult:
        check_numeric(options)
        inline = options.get("inline") is True

        if self._config.emit_file == EmitMode.SYNTHETIC and not inline:
            info = get_synthetic_meta(options, meta)
            return self._assembler(source_bytes, None, info, options, self._config, source_path)

        key = generate_cache_key(source_id, options)
        cached = await self._cache.lookup(key)
        if cached is not None:
            logger.debug("Cache hit for %s %s", source_path, key.base)
            payload, info = cached
        else:
            payload, info = await self._transform(source_bytes, meta, options)
            await self._cache.store(key, payload, info)

        result = self._assembler(source_bytes, payload, info, options, self._config, source_path)
        if not inline and self._config.emit_file != EmitMode.DISABLED:
            if self._emitter is not None:
                self._emitter(result.name, payload)
            else:
                logger.debug("No emitter configured, not writing %s", result.name)
        return result


def merge_source_meta(options: ImageOptions, meta: SourceMeta) -> ImageOptions:
    """Default a variant's scale to the source density when it declares none."""
    if "scale" in options or meta.scale is None:
        return options
    return {**options, "scale": meta.scale}
